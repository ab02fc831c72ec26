"""Team certificate verification and generation."""

__version__ = "1.0.0"
