"""Address clustering and multi-stop route planning."""

__version__ = "0.1.0"
