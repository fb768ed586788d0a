"""MemoryFlow: validation and significance decision engine for extracted memories."""

__version__ = "0.1.0"
