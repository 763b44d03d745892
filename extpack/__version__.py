"""Version information for extpack."""

__version__ = "0.3.0"
