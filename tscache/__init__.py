"""tscache - cached range queries over an upstream time-series provider."""

__version__ = "0.1.0"
