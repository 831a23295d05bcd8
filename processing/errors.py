"""
Error types raised by the population change pipeline.

LoadError is fatal at startup; ConfigurationError reports an invalid year
selection before any computation runs. A district with no usable population is
not an error at all: it is carried through as a missing value (pd.NA).
"""


class PopulationMapsError(Exception):
    """Base class for pipeline errors."""


class LoadError(PopulationMapsError):
    """An input file is missing, unreadable, or structurally invalid."""

    def __init__(self, path, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Could not load {path}: {reason}")


class ConfigurationError(PopulationMapsError):
    """A requested year is not present in the loaded dataset."""

    def __init__(self, year, available_years):
        self.year = year
        self.available_years = list(available_years)
        super().__init__(
            f"Year {year!r} is not in the dataset (available: {self.available_years})"
        )
