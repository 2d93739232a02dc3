"""
Instrument Catalog

Reference instrument universe used to build and price phantom baskets,
with sector labels for exposure breakdowns.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Instrument:
    """A tradable instrument with a reference price."""

    symbol: str
    company_name: str
    price: float
    sector: str = "Other"


DEFAULT_INSTRUMENTS = [
    Instrument("AAPL", "Apple Inc.", 178.72, "Technology"),
    Instrument("MSFT", "Microsoft Corporation", 378.91, "Technology"),
    Instrument("GOOGL", "Alphabet Inc.", 141.80, "Technology"),
    Instrument("AMZN", "Amazon.com Inc.", 178.25, "Consumer Discretionary"),
    Instrument("NVDA", "NVIDIA Corporation", 495.22, "Technology"),
    Instrument("TSLA", "Tesla Inc.", 248.50, "Consumer Discretionary"),
    Instrument("META", "Meta Platforms Inc.", 326.49, "Technology"),
    Instrument("JNJ", "Johnson & Johnson", 156.74, "Healthcare"),
    Instrument("V", "Visa Inc.", 259.31, "Financials"),
    Instrument("JPM", "JPMorgan Chase & Co.", 171.62, "Financials"),
    Instrument("UNH", "UnitedHealth Group Inc.", 527.89, "Healthcare"),
    Instrument("XOM", "Exxon Mobil Corporation", 104.56, "Energy"),
    Instrument("PG", "Procter & Gamble Co.", 152.34, "Consumer Staples"),
    Instrument("MA", "Mastercard Inc.", 417.23, "Financials"),
    Instrument("HD", "The Home Depot Inc.", 345.67, "Consumer Discretionary"),
]


class StaticInstrumentCatalog:
    """In-memory catalog with optional live price overrides."""

    def __init__(self, instruments: Optional[Iterable[Instrument]] = None):
        source = DEFAULT_INSTRUMENTS if instruments is None else instruments
        self._instruments: Dict[str, Instrument] = {i.symbol.upper(): i for i in source}
        self._prices: Dict[str, float] = {}

    def universe(self) -> List[str]:
        """All symbols, sorted so selection order never depends on insertion."""
        return sorted(self._instruments)

    def get(self, symbol: str) -> Optional[Instrument]:
        return self._instruments.get(symbol.upper())

    def price_of(self, symbol: str) -> Optional[float]:
        """Override price if set, else the reference price; None if unknown."""
        symbol = symbol.upper()
        if symbol in self._prices:
            return self._prices[symbol]
        instrument = self._instruments.get(symbol)
        return instrument.price if instrument else None

    def sector_of(self, symbol: str) -> str:
        instrument = self.get(symbol)
        return instrument.sector if instrument else "Other"

    def update_prices(self, prices: Dict[str, float]) -> None:
        """Apply quote overrides; unknown symbols are ignored."""
        for symbol, price in prices.items():
            symbol = symbol.upper()
            if symbol not in self._instruments:
                logger.debug(f"Ignoring price for unknown symbol {symbol}")
                continue
            self._prices[symbol] = float(price)

    def __len__(self) -> int:
        return len(self._instruments)
