"""knitcheck: structural defect analysis for dependency-injection wiring."""

__version__ = "0.1.0"
