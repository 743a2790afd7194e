"""CSV to document store migration service."""

__version__ = "0.1.0"
