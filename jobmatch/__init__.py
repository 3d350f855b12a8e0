"""Job search aggregation, resume match scoring and application archiving."""

__version__ = "0.1.0"
