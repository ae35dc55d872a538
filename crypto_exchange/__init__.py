"""Best-price Bitcoin order allocation across multiple exchanges."""

__version__ = "0.1.0"
