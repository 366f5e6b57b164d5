"""Growth analytics engine for brood weighing data."""

__version__ = "0.3.0"
