"""shopbill: invoicing backend for small businesses and their shops."""

__version__ = "0.1.0"
