from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Protocol

import requests

from domain.catalog import Asset, PriceSyncConfig
from domain.ledger_store import LedgerStore

logger = logging.getLogger(__name__)


class PriceFeedError(RuntimeError):
    def __init__(self, message: str, *, url: str, status_code: int | None = None, payload: Any | None = None) -> None:
        super().__init__(message)
        self.url = url
        self.status_code = status_code
        self.payload = payload


class PriceFeed(Protocol):
    def fetch_price(self, sync_url: str) -> Decimal: ...


class HttpPriceFeed:
    """Reads a USD price from endpoints answering `{"<coin id>": {"usd": <price>}}`."""

    def __init__(self, *, timeout: float = 10.0, session: requests.Session | None = None) -> None:
        self.timeout = timeout
        self._session = session or requests.Session()

    def fetch_price(self, sync_url: str) -> Decimal:
        if not sync_url:
            raise PriceFeedError("sync url must be provided", url=sync_url)
        try:
            response = self._session.request("GET", sync_url, timeout=self.timeout)
            response.raise_for_status()
        except requests.HTTPError as exc:
            status_code = getattr(exc.response, "status_code", None)
            raise PriceFeedError("Price request failed", url=sync_url, status_code=status_code) from exc
        except requests.RequestException as exc:
            raise PriceFeedError("Price request failed", url=sync_url) from exc

        try:
            payload = response.json()
        except ValueError as exc:
            raise PriceFeedError("Price endpoint returned invalid JSON", url=sync_url, payload=response.text) from exc

        return self._parse_price(sync_url, payload)

    @staticmethod
    def _parse_price(sync_url: str, payload: Any) -> Decimal:
        if not isinstance(payload, dict) or not payload:
            raise PriceFeedError("Price endpoint returned an empty payload", url=sync_url, payload=payload)

        # Only the first top level key is read.
        inner = next(iter(payload.values()))
        raw = inner.get("usd") if isinstance(inner, dict) else None
        if raw is None:
            raise PriceFeedError("Price endpoint returned no USD price", url=sync_url, payload=payload)
        try:
            price = Decimal(str(raw))
        except InvalidOperation as exc:
            raise PriceFeedError("Price endpoint returned a non-numeric price", url=sync_url, payload=payload) from exc
        if not price.is_finite():
            raise PriceFeedError("Price endpoint returned a non-numeric price", url=sync_url, payload=payload)
        return price


@dataclass(frozen=True)
class PriceSyncResult:
    symbol: str
    price: Decimal
    previous_price: Decimal
    used_default: bool


class PriceSyncService:
    def __init__(self, store: LedgerStore, feed: PriceFeed) -> None:
        self.store = store
        self.feed = feed

    def sync(self, asset: Asset, sync_config: PriceSyncConfig) -> PriceSyncResult:
        """Fetch and apply the latest price; the configured default is applied when the fetch fails."""
        previous_price = asset.current_price
        used_default = False
        try:
            price = self.feed.fetch_price(sync_config.sync_url)
        except PriceFeedError as err:
            logger.warning(
                "Price sync failed for %s (%s), using default price %s", asset.symbol, err, sync_config.default_price
            )
            price = sync_config.default_price
            used_default = True

        asset.current_price = price
        self.store.replace(asset)
        if not used_default:
            logger.info("Price updated for %s: %s (previous: %s)", asset.symbol, price, previous_price)
        return PriceSyncResult(
            symbol=asset.symbol, price=price, previous_price=previous_price, used_default=used_default
        )

    def sync_all(self) -> list[PriceSyncResult]:
        assets = {asset.id: asset for asset in self.store.fetch(Asset)}
        results: list[PriceSyncResult] = []
        for sync_config in self.store.fetch(PriceSyncConfig):
            asset = assets.get(sync_config.asset_id)
            if asset is None:
                logger.warning("Sync config %s points to a missing asset, skipping", sync_config.id)
                continue
            results.append(self.sync(asset, sync_config))
        logger.info("Synced prices for %d assets", len(results))
        return results


__all__ = ["HttpPriceFeed", "PriceFeed", "PriceFeedError", "PriceSyncResult", "PriceSyncService"]
