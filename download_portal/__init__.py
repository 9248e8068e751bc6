"""Download Portal: password login and single-use download tokens."""

__version__ = "1.0.0"
