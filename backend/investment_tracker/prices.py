"""Point-in-time price lookup over a gappy quote history."""
from __future__ import annotations

from bisect import bisect_right
from datetime import date
from typing import Dict, Iterable, List, Optional, Tuple

from .models import PriceQuote


class PriceBook:
    """Index of closing prices per ticker answering as-of queries.

    A query for date ``d`` returns the most recent quote dated on or before
    ``d``; later quotes are never used. Duplicate ``(ticker, date)`` rows
    keep the last one seen.
    """

    def __init__(self, quotes: Iterable[PriceQuote]):
        by_ticker: Dict[str, Dict[date, float]] = {}
        for quote in quotes:
            by_ticker.setdefault(quote.ticker, {})[quote.date] = quote.close
        self._dates: Dict[str, List[date]] = {}
        self._closes: Dict[str, List[float]] = {}
        for ticker, series in by_ticker.items():
            ordered = sorted(series.items())
            self._dates[ticker] = [d for d, _ in ordered]
            self._closes[ticker] = [c for _, c in ordered]

    def __contains__(self, ticker: str) -> bool:
        return ticker in self._dates

    @property
    def tickers(self) -> List[str]:
        return sorted(self._dates)

    def quote_at(self, ticker: str, as_of: date) -> Optional[Tuple[date, float]]:
        """Return ``(quote_date, close)`` for the latest quote on or before ``as_of``."""

        dates = self._dates.get(ticker)
        if not dates:
            return None
        idx = bisect_right(dates, as_of) - 1
        if idx < 0:
            return None
        return dates[idx], self._closes[ticker][idx]

    def price_at(self, ticker: str, as_of: date) -> Optional[float]:
        found = self.quote_at(ticker, as_of)
        return found[1] if found else None

    def first_date(self, ticker: str) -> Optional[date]:
        dates = self._dates.get(ticker)
        return dates[0] if dates else None


__all__ = ["PriceBook"]
