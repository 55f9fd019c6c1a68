"""Client-side package manager for vault extensions."""

__version__ = "0.1.0"
