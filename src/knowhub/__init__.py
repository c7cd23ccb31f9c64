"""knowhub - hierarchical note vault with a path-addressed workspace."""

__version__ = "0.4.0"
