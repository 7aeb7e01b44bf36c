"""Supra chain client."""
from .client import SupraClient

__all__ = ["SupraClient"]
