"""Query translation and frame assembly toolkit."""

__version__ = "0.3.0"
