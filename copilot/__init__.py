"""Sales co-pilot knowledge retrieval and folder-routing engine."""

__version__ = "0.1.0"
