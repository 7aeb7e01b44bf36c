"""Supra lending market data aggregator."""
