"""FX conversion helpers."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Optional, Set, Tuple

from .config import EngineSettings, get_settings
from .prices import PriceBook

logger = logging.getLogger(__name__)


@dataclass
class FXRateProvider:
    """Look up FX conversion rates to the base currency.

    Rates come from FX pairs stored as ordinary tickers in the price book,
    using the same latest-on-or-before rule as instrument prices.
    """

    prices: PriceBook
    base_currency: Optional[str] = None
    settings: EngineSettings = field(default_factory=get_settings)
    _warned: Set[Tuple[str, str]] = field(default_factory=set, repr=False)

    def __post_init__(self) -> None:
        self.base_currency = (self.base_currency or self.settings.base_currency).upper()

    def rate(self, d: date, from_currency: str, to_currency: str | None = None) -> Optional[float]:
        """Return units of ``to_currency`` per unit of ``from_currency`` on ``d``.

        ``None`` means neither the direct nor the inverse pair is quoted on or
        before ``d``.
        """

        target = (to_currency or self.base_currency).upper()
        source = from_currency.upper()
        if source == target:
            return 1.0
        direct = self.prices.price_at(self.settings.fx_ticker(source, target), d)
        if direct is not None:
            return direct
        inverse = self.prices.price_at(self.settings.fx_ticker(target, source), d)
        if inverse:
            return 1.0 / inverse
        if (source, target) not in self._warned:
            self._warned.add((source, target))
            logger.warning("Missing FX rate for %s->%s on %s", source, target, d.isoformat())
        return None
