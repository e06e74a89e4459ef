"""Futures ticker feeds: MEXC REST polling and a seeded mock generator."""
from typing import Dict, Iterable, List, Optional
import logging
import random

import requests

from splash.config import FEED_TIMEOUT_SEC, FEED_URL, MOCK_DATA_SEED
from splash.errors import FeedError
from splash.state.ticker_state import Snapshot

logger = logging.getLogger(__name__)


def parse_tickers(rows: Iterable[Dict]) -> List[Snapshot]:
    """Convert raw ticker rows to Snapshots, skipping malformed entries."""
    snapshots = []
    for row in rows:
        try:
            snapshots.append(
                Snapshot(
                    symbol=str(row["symbol"]),
                    last_price=float(row["lastPrice"]),
                    fair_price=float(row["fairPrice"]),
                    volume_24h=int(float(row.get("volume24") or 0)),
                )
            )
        except (KeyError, TypeError, ValueError) as exc:
            logger.debug("Skipping malformed ticker row %r: %s", row, exc)
    return snapshots


class MexcTickerFeed:
    """
    Poll the MEXC contract ticker endpoint for every listed symbol.
    """

    def __init__(
        self,
        url: str = FEED_URL,
        timeout: float = FEED_TIMEOUT_SEC,
        session: Optional[requests.Session] = None,
    ):
        self.url = url
        self.timeout = timeout
        self.session = session or requests.Session()
        logger.info(f"MEXC ticker feed using {self.url}")

    def poll_tickers(self) -> List[Snapshot]:
        """
        Fetch one snapshot per symbol.

        Raises:
            FeedError: On network, HTTP or decode failure
        """
        try:
            resp = self.session.get(self.url, timeout=self.timeout)
            resp.raise_for_status()
            payload = resp.json()
        except requests.RequestException as exc:
            raise FeedError(f"network error: {exc}") from exc
        except ValueError as exc:
            raise FeedError(f"JSON decode error: {exc}") from exc

        if not isinstance(payload, dict):
            raise FeedError(f"unexpected payload type: {type(payload).__name__}")

        if not payload.get("success", True) or payload.get("code", 0) != 0:
            raise FeedError(
                f"API returned error code: {payload.get('code')}, success: {payload.get('success')}"
            )

        data = payload.get("data") or []
        if isinstance(data, dict):
            data = [data]
        return parse_tickers(data)

    def close(self) -> None:
        self.session.close()


class MockTickerFeed:
    """
    Seeded random-walk tickers with occasional sharp jumps that decay back.

    Used for demos and offline runs; no network access.
    """

    def __init__(
        self,
        symbols: Iterable[str] = ("BTC_USDT", "ETH_USDT", "SOL_USDT"),
        seed: int = MOCK_DATA_SEED,
        base_price: float = 100.0,
        volatility: float = 0.0005,
        jump_probability: float = 0.002,
        jump_range=(0.03, 0.08),
        decay: float = 0.05,
    ):
        self.rng = random.Random(seed)
        self.volatility = volatility
        self.jump_probability = jump_probability
        self.jump_range = jump_range
        self.decay = decay

        self._prices: Dict[str, float] = {}
        self._anchors: Dict[str, Optional[float]] = {}
        self._volumes: Dict[str, int] = {}
        for symbol in symbols:
            self._prices[symbol] = base_price * self.rng.uniform(0.5, 2.0)
            self._anchors[symbol] = None
            self._volumes[symbol] = self.rng.randint(100_000, 10_000_000)

        logger.info(f"Mock ticker feed with {len(self._prices)} symbols (seed={seed})")

    def poll_tickers(self) -> List[Snapshot]:
        return [self._next(symbol) for symbol in self._prices]

    def _next(self, symbol: str) -> Snapshot:
        price = self._prices[symbol]
        anchor = self._anchors[symbol]

        if anchor is not None:
            price += (anchor - price) * self.decay
            if abs(price - anchor) / anchor < 0.001:
                self._anchors[symbol] = None
        elif self.rng.random() < self.jump_probability:
            self._anchors[symbol] = price
            size = self.rng.uniform(*self.jump_range)
            price *= 1 + size if self.rng.random() < 0.5 else 1 - size
            logger.debug("Mock jump %s %.2f%%", symbol, size * 100)
        else:
            price *= 1 + self.rng.gauss(0.0, self.volatility)

        self._prices[symbol] = price
        fair = price * (1 + self.rng.gauss(0.0, self.volatility / 2))
        return Snapshot(
            symbol=symbol,
            last_price=round(price, 6),
            fair_price=round(fair, 6),
            volume_24h=self._volumes[symbol],
        )
