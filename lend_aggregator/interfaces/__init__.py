"""Protocol interfaces for the lending data aggregator."""
from .chain import ViewClient
from .price_oracle import QuoteSource
from .wallet import WalletSession

__all__ = ["QuoteSource", "ViewClient", "WalletSession"]
