"""Service modules"""
from .asset_snapshot import AssetSnapshotBuilder
from .batch import Result, gather_keyed
from .monitor import Monitor
from .pool_metrics import PoolMetricsAggregator
from .price_history import PriceHistoryWindow
from .price_poller import PricePoller
from .scheduler import PeriodicTask
from .wallet_positions import WalletPositionReconciler

__all__ = [
    "AssetSnapshotBuilder",
    "Monitor",
    "PeriodicTask",
    "PoolMetricsAggregator",
    "PriceHistoryWindow",
    "PricePoller",
    "Result",
    "WalletPositionReconciler",
    "gather_keyed",
]
