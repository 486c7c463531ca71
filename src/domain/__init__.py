"""Domain models and engines for the crypto portfolio ledger.

This package contains in-memory (Pydantic) models for the catalog, the
movements and the price history, plus the read-side engines that derive
balances, valuations and portfolio aggregates from a ledger snapshot. They are
independent from persistence models so that business logic and testing can
evolve without DB coupling.
"""

__all__ = [
    "balance",
    "catalog",
    "ledger",
    "movements",
    "portfolio",
    "valuation",
]
