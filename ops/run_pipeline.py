#!/usr/bin/env python3
"""
Population Change Maps Pipeline with Click CLI

Loads the population table and census division boundaries once, then builds the
population change maps for a pair of years. Configuration values can be
overridden from the command line without editing config.yaml.

Usage:
    population-maps [OPTIONS] [COMMAND]

    # Run with the configured (or first/last available) years:
    population-maps

    # Pick the years:
    population-maps run --start-year 2016 --end-year 2021

    # List available years:
    population-maps years

    # Override config values:
    population-maps --config visualization.units_per_step=25 run --start-year 2011 --end-year 2021

    # Verbose logging:
    population-maps --verbose
"""

import os
import sys
import time
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import click
from loguru import logger

from analysis.map_population_change import generate_population_change_outputs
from ops.config_loader import Config
from processing.datasets import PopulationDatasets, load_population_datasets
from processing.errors import ConfigurationError, LoadError


class PipelineContext:
    """Click context object holding the config and the datasets loaded from it."""

    def __init__(self, config: Config):
        self.config = config
        self._datasets: Optional[PopulationDatasets] = None

    @property
    def datasets(self) -> PopulationDatasets:
        """Load inputs on first use; raises LoadError."""
        if self._datasets is None:
            self._datasets = load_population_datasets(self.config)
        return self._datasets


def build_overrides(config_overrides) -> Dict[str, Any]:
    """Turn (dot.key, value) pairs into a nested override dict."""
    overrides: Dict[str, Any] = {}
    for key, value in config_overrides:
        keys = key.split(".")
        current = overrides
        for k in keys[:-1]:
            current = current.setdefault(k, {})
        current[keys[-1]] = value
        logger.debug(f"Added override: {key} = {value}")
    return overrides


# Custom Click types for better validation
class ConfigOverride(click.ParamType):
    """Custom parameter type for config overrides."""

    name = "config_override"

    def convert(self, value, param, ctx) -> Tuple[str, Any]:
        if "=" not in value:
            self.fail(f"Invalid format: {value}. Use KEY=VALUE", param, ctx)

        key, val = value.split("=", 1)

        # Auto-parse value type
        if val.lower() in ("true", "false"):
            parsed_val: Any = val.lower() == "true"
        elif val.isdigit():
            parsed_val = int(val)
        elif "." in val and val.replace(".", "").isdigit():
            parsed_val = float(val)
        else:
            parsed_val = val

        return key, parsed_val


# Main CLI group
@click.group(invoke_without_command=True)
@click.option(
    "--config-file",
    type=click.Path(exists=True, dir_okay=False),
    help="Configuration file (defaults to PIPELINE_CONFIG_PATH, ./config.yaml or ops/config.yaml)",
)
@click.option(
    "--config",
    "config_overrides",
    multiple=True,
    type=ConfigOverride(),
    help="Set config values using dot notation (e.g., visualization.units_per_step=25)",
)
@click.option("-v", "--verbose", is_flag=True, help="Enable DEBUG level logging")
@click.option(
    "--trace", is_flag=True, help="Enable TRACE level logging for deep debugging (maximum detail)"
)
@click.option("--log-file", type=str, help="Also log to specified file")
@click.pass_context
def cli(ctx, **kwargs):
    """
    Population Change Maps by Census Division

    Map net population change per 10,000 residents between two years.

    \b
    Examples:
      population-maps                                         # Default years
      population-maps run --start-year 2016 --end-year 2021   # Chosen years
      population-maps years                                   # List available years
      population-maps --config directories.output=maps_out    # Config override

    \b
    Logging Examples:
      population-maps --verbose                               # Enable DEBUG level logging
      population-maps --trace                                 # Enable TRACE level for deep debugging
      population-maps --log-file "pipeline.log"               # Also save logs to file
    """
    # Set up logging first, before anything else
    setup_logging(verbose=kwargs.get("verbose", False), enable_trace=kwargs.get("trace", False))

    # Add file logging if requested
    if kwargs.get("log_file"):
        log_file = kwargs["log_file"]
        log_level = (
            "TRACE" if kwargs.get("trace") else ("DEBUG" if kwargs.get("verbose") else "INFO")
        )
        logger.add(
            log_file,
            level=log_level,
            format="{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function}:{line} | {message}",
            rotation="10 MB",  # Rotate when file gets large
            retention="7 days",  # Keep logs for a week
        )
        logger.info(f"📄 Also logging to file: {log_file}")

    logger.debug(f"🔧 CLI arguments received: {kwargs}")

    try:
        config = Config(
            kwargs.get("config_file"), overrides=build_overrides(kwargs["config_overrides"])
        )
        logger.info(f"📋 Project: {config.get('project_name')}")
        config.print_config_summary()
    except (FileNotFoundError, ValueError) as e:
        logger.critical(f"Configuration error: {e}")
        logger.info("💡 Make sure config.yaml exists and is valid")
        ctx.exit(1)

    ctx.obj = PipelineContext(config)

    # If no subcommand provided, run with the default years
    if ctx.invoked_subcommand is None:
        ctx.invoke(run)


@cli.command()
@click.pass_context
def years(ctx):
    """List the years present in the population table."""
    try:
        available = ctx.obj.datasets.years
    except LoadError as e:
        handle_critical_error(e, "Loading input data")
        ctx.exit(1)

    logger.info(f"📅 {len(available)} years available")
    click.echo(" ".join(str(year) for year in available))


@cli.command()
@click.option("--start-year", help="Year whose population is the denominator")
@click.option("--end-year", help="Year compared against the start year")
@click.option(
    "--output-dir", type=click.Path(file_okay=False), help="Override the output directory"
)
@click.option("--no-static", is_flag=True, help="Skip the static PNG map")
@click.option("--no-geojson", is_flag=True, help="Skip the GeoJSON export")
@click.pass_context
def run(ctx, start_year, end_year, output_dir, no_static, no_geojson):
    """Build the population change maps for one pair of years."""
    pipeline: PipelineContext = ctx.obj
    config = pipeline.config
    total_start = time.time()

    if output_dir:
        config.apply_overrides({"directories": {"output": str(Path(output_dir).resolve())}})

    try:
        datasets = pipeline.datasets
    except LoadError as e:
        handle_critical_error(e, "Loading input data")
        ctx.exit(1)

    available = datasets.years
    if start_year is None:
        start_year = config.get_analysis_setting("default_start_year")
    if end_year is None:
        end_year = config.get_analysis_setting("default_end_year")
    if start_year is None:
        start_year = available[0] if available else None
    if end_year is None:
        end_year = available[-1] if available else None

    logger.info(f"🗺️ Population change {start_year} → {end_year}")
    logger.info("=" * 60)

    try:
        outputs = generate_population_change_outputs(
            datasets,
            config,
            start_year,
            end_year,
            static=not no_static,
            geojson=not no_geojson,
        )
    except ConfigurationError as e:
        logger.error(f"❌ Invalid year selection: {e}")
        ctx.exit(2)

    total_elapsed = time.time() - total_start
    logger.info("=" * 60)
    logger.success("🎉 PIPELINE COMPLETE")
    logger.info(f"⏱️ Total time: {total_elapsed:.1f}s")
    for kind, path in outputs.items():
        logger.info(f"   📄 {kind}: {path}")


def setup_logging(verbose: bool = False, enable_trace: bool = False) -> None:
    """
    Configure loguru logging with appropriate levels.

    Args:
        verbose: If True, set log level to DEBUG
        enable_trace: If True, enable TRACE level logging for deep debugging
    """
    # Remove default logger
    logger.remove()

    # Determine log level
    if enable_trace:
        log_level = "TRACE"
        log_format = "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | <level>{message}</level>"
    elif verbose:
        log_level = "DEBUG"
        log_format = "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | <level>{message}</level>"
    else:
        log_level = "INFO"
        log_format = (
            "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <level>{message}</level>"
        )

    logger.add(
        sys.stderr,
        format=log_format,
        level=log_level,
        colorize=True,
        backtrace=enable_trace,
        diagnose=enable_trace,
    )

    # Read back by handle_critical_error
    os.environ["LOGURU_LEVEL"] = log_level

    if verbose:
        logger.debug("🔧 Verbose logging enabled (DEBUG level)")
    if enable_trace:
        logger.trace("🔍 Trace logging enabled - maximum detail mode")

    logger.success("📋 Logging system initialized")


def handle_critical_error(error: Exception, context: str = "") -> None:
    """
    Handle critical errors with optional trace logging.

    Args:
        error: The exception that occurred
        context: Additional context about where the error occurred
    """
    current_level = os.environ.get("LOGURU_LEVEL", "INFO")
    enable_trace = current_level == "TRACE"

    if enable_trace:
        logger.trace("💥 TRACE MODE: Analyzing critical error with full context")
        logger.trace(f"Error context: {context}")
        logger.trace(f"Error type: {type(error).__name__}")
        logger.trace(f"Error args: {error.args}")

        import traceback

        logger.trace("Full traceback:")
        logger.trace(traceback.format_exc())

    logger.critical(f"💥 CRITICAL ERROR: {context}")
    logger.critical(f"Exception: {type(error).__name__}: {error}")

    if not enable_trace:
        logger.info("💡 For detailed debugging, run with --trace flag")


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
