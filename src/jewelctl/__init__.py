"""jewelctl: guided jewelry design sessions."""

__version__ = "0.1.0"
