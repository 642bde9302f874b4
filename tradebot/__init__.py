"""Rule-based trading signal scanner."""

__version__ = "0.1.0"
