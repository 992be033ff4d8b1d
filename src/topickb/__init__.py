"""topickb: versioned, hierarchical topics with attached resources."""

__version__ = "0.1.0"
