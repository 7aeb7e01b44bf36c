"""Price feed clients."""
from .supra import SupraQuoteClient

__all__ = ["SupraQuoteClient"]
