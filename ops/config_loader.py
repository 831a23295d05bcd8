"""
Configuration Loader for the Population Change Maps Pipeline

This module provides a centralized way to load and access configuration
settings from the config.yaml file.

Usage:
    from ops import Config

    config = Config()
    population_csv = config.get_input_path('population_csv')
    id_column = config.get_column_name('population_district_id')
    output_dir = config.get_output_dir()
"""

import copy
import os
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml  # type: ignore[import-untyped]
from loguru import logger

PACKAGED_CONFIG = Path(__file__).parent / "config.yaml"


class Config:
    """Configuration manager for the population change maps pipeline."""

    # Default values that can be overridden in config
    DEFAULTS: Dict[str, Any] = {
        "columns": {
            "population_geo": "GEO",
            "population_district_id": "DGUID",
            "population_year": "REF_DATE",
            "population_value": "VALUE",
            "geometry_district_id": "DGUID",
            "geometry_district_name": "CDNAME",
            "geometry_province": "PRNAME",
        },
        "analysis": {
            "default_start_year": None,
            "default_end_year": None,
        },
        "visualization": {
            "negative_color": "#b2182b",
            "neutral_color": "#ffffff",
            "positive_color": "#2166ac",
            "no_data_color": "#d9d9d9",
            "units_per_step": 10,
            "tiles": "CartoDB Positron",
            "zoom_start": 4,
            "fill_opacity": 0.75,
            "line_opacity": 0.4,
            "map_dpi": 200,
            "figure_max_width": 14,
        },
        "system": {
            "output_crs": "EPSG:4326",
            "precision_decimals": 6,
        },
    }

    def __init__(
        self,
        config_file: Optional[Union[str, Path]] = None,
        project_root_override: Optional[Union[str, Path]] = None,
        overrides: Optional[Dict[str, Any]] = None,
    ):
        """
        Initialize configuration manager.

        Args:
            config_file: Path to config file. If None, looks for:
                        1. Environment variable PIPELINE_CONFIG_PATH
                        2. config.yaml in current directory
                        3. the config.yaml shipped next to this module
            project_root_override: Override project root detection
            overrides: Nested dict of values applied on top of the file
        """
        if config_file is None:
            env_config = os.environ.get("PIPELINE_CONFIG_PATH")
            if env_config and Path(env_config).exists():
                config_file = env_config
                logger.debug(f"Using config from environment: {config_file}")
            elif Path("config.yaml").exists():
                config_file = "config.yaml"
            elif PACKAGED_CONFIG.exists():
                config_file = PACKAGED_CONFIG
                logger.debug("Using packaged ops/config.yaml")
            else:
                raise FileNotFoundError(
                    "No config.yaml found. Check current directory or set PIPELINE_CONFIG_PATH"
                )

        self.config_path = Path(config_file).resolve()
        if not self.config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {self.config_path}")

        if project_root_override:
            self.project_root = Path(project_root_override).resolve()
            logger.debug(f"Using project root override: {self.project_root}")
        else:
            self.project_root = self._find_project_root()

        logger.debug(f"Loading config from: {self.config_path}")
        logger.debug(f"Project root: {self.project_root}")

        try:
            with open(self.config_path, "r") as f:
                self.data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Error parsing configuration file: {e}")

        if not isinstance(self.data, dict):
            raise ValueError(f"Configuration file must contain a mapping: {self.config_path}")

        if overrides:
            self.apply_overrides(overrides)

    def apply_overrides(self, overrides: Dict[str, Any]) -> None:
        """Apply nested overrides on top of the loaded file."""
        self._apply_nested_override(self.data, copy.deepcopy(overrides))

    def _apply_nested_override(self, base_dict: Dict, override_dict: Dict) -> None:
        for key, value in override_dict.items():
            if isinstance(value, dict) and isinstance(base_dict.get(key), dict):
                self._apply_nested_override(base_dict[key], value)
            else:
                base_dict[key] = value

    def get(self, key_path: str, default: Any = None) -> Any:
        """
        Get configuration value using dot notation with intelligent defaults.

        Args:
            key_path: Dot-separated path to the configuration value
            default: Default value if key not found

        Returns:
            Configuration value
        """
        keys = key_path.split(".")

        # Try to get from config first
        value: Any = self.data
        for key in keys:
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                value = None
                break

        # If not found in config, try defaults
        if value is None:
            value = self.DEFAULTS
            for key in keys:
                if isinstance(value, dict) and key in value:
                    value = value[key]
                else:
                    return default
            if value is None:
                return default

        return value

    def get_input_path(self, filename_key: str) -> Path:
        """
        Get full path to an input file. The path is taken directly from config.yaml
        and joined with the project root.

        Args:
            filename_key: Key for the filename in input_files

        Returns:
            Full absolute path to the input file
        """
        relative_path_str = self.data.get("input_files", {}).get(filename_key)
        if not relative_path_str:
            raise ValueError(
                f"Input filename key '{filename_key}' not found in config: input_files"
            )
        return self.project_root / relative_path_str

    def get_output_dir(self) -> Path:
        """Get (and create) the directory every output file is written to."""
        output_dir = self.project_root / self.get("directories.output", "output")
        output_dir.mkdir(parents=True, exist_ok=True)
        return output_dir

    def get_output_path(self, kind: str, start_year: int, end_year: int) -> Path:
        """
        Get the output file path for one year pair.

        Args:
            kind: One of 'map_html', 'map_png', 'geojson', 'report_md', 'all_years_csv'

        Returns:
            Path inside the output directory
        """
        filenames = {
            "map_html": f"population_change_{start_year}_{end_year}.html",
            "map_png": f"population_change_{start_year}_{end_year}.png",
            "geojson": f"population_change_{start_year}_{end_year}.geojson",
            "report_md": f"population_change_{start_year}_{end_year}_report.md",
            "all_years_csv": "population_all_years.csv",
        }
        if kind not in filenames:
            raise ValueError(f"Unknown output file kind: {kind}")
        return self.get_output_dir() / filenames[kind]

    def get_column_name(self, column_key: str) -> str:
        """Get column name with intelligent defaults."""
        result = self.get(f"columns.{column_key}")
        if isinstance(result, str):
            return result
        raise ValueError(f"Column name not found or not a string: {column_key}")

    def get_analysis_setting(self, setting_key: str) -> Any:
        """Get analysis setting with intelligent defaults."""
        return self.get(f"analysis.{setting_key}")

    def get_visualization_setting(self, setting_key: str) -> Any:
        """Get visualization setting with intelligent defaults."""
        return self.get(f"visualization.{setting_key}")

    def get_system_setting(self, setting_key: str) -> Any:
        """Get system setting with intelligent defaults."""
        return self.get(f"system.{setting_key}")

    def get_metadata(self, key: str) -> str:
        """Get metadata value."""
        result = self.get(f"metadata.{key}", "")
        if isinstance(result, str):
            return result
        return str(result)

    def validate_input_files(self) -> Dict[str, bool]:
        """Validate that input files exist."""
        results: Dict[str, bool] = {}
        for filename_key in self.data.get("input_files", {}):
            try:
                results[filename_key] = self.get_input_path(filename_key).exists()
            except ValueError:
                results[filename_key] = False
        return results

    def print_config_summary(self) -> None:
        """Log a summary of the current configuration."""
        logger.debug("📋 Configuration Summary")
        logger.debug("=" * 50)
        logger.debug(f"Project: {self.get('project_name', 'Unknown')}")
        logger.debug(f"Description: {self.get('description', 'No description')}")
        logger.debug(f"Config file: {self.config_path}")

        logger.debug("📊 Input Files:")
        for file_key, exists in self.validate_input_files().items():
            status = "✅" if exists else "❌"
            logger.debug(f"  {status} {file_key}")

    def _find_project_root(self) -> Path:
        """Project root is the parent of ops/ for the shipped config, else the config directory."""
        if self.config_path.parent.name == "ops":
            return self.config_path.parent.parent
        return self.config_path.parent

