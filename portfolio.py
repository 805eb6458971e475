import logging
from typing import Dict, List, Optional

import config
from models import (
    INSUFFICIENT_CASH,
    INSUFFICIENT_SHARES,
    INVALID_QUANTITY,
    UNKNOWN_INSTRUMENT,
    CommandResult,
    Instrument,
    Position,
)

logger = logging.getLogger(__name__)


def cents(value: float) -> float:
    return round(value, 2)


class Ledger:
    """Cash and open positions of the desk. The engines read it, only commands write it."""

    def __init__(self, cash: float = config.START_CASH, positions: Optional[List[Position]] = None,
                 realized_pnl: float = 0.0):
        self.cash = cents(float(cash))
        self.holdings: Dict[str, Position] = {p.ticker: p for p in (positions or []) if p.shares > 0}
        self.realized_pnl = cents(float(realized_pnl))

    @property
    def positions(self) -> List[Position]:
        return list(self.holdings.values())

    def position(self, ticker: str) -> Optional[Position]:
        return self.holdings.get(ticker)

    def buy(self, instrument: Optional[Instrument], qty: int) -> CommandResult:
        if instrument is None:
            return CommandResult.failure(UNKNOWN_INSTRUMENT)
        if qty <= 0:
            return CommandResult.failure(INVALID_QUANTITY)

        cost = instrument.price * qty
        if cost > self.cash:
            return CommandResult.failure(INSUFFICIENT_CASH)

        self.cash = cents(self.cash - cost)
        h = self.holdings.get(instrument.ticker)
        if not h:
            self.holdings[instrument.ticker] = Position(instrument.ticker, qty, instrument.price)
        else:
            new_qty = h.shares + qty
            h.avg_cost = cents((h.avg_cost * h.shares + cost) / new_qty)
            h.shares = new_qty

        logger.info("bought ticker=%s qty=%d price=%.2f cash=%.2f", instrument.ticker, qty, instrument.price, self.cash)
        return CommandResult.success(cents(cost))

    def sell(self, instrument: Optional[Instrument], qty: int) -> CommandResult:
        if instrument is None:
            return CommandResult.failure(UNKNOWN_INSTRUMENT)
        if qty <= 0:
            return CommandResult.failure(INVALID_QUANTITY)

        h = self.holdings.get(instrument.ticker)
        if not h or h.shares < qty:
            return CommandResult.failure(INSUFFICIENT_SHARES)

        proceeds = instrument.price * qty
        pnl = proceeds - h.avg_cost * qty
        self.cash = cents(self.cash + proceeds)
        self.realized_pnl = cents(self.realized_pnl + pnl)
        h.shares -= qty
        if h.shares == 0:
            del self.holdings[instrument.ticker]

        logger.info("sold ticker=%s qty=%d price=%.2f pnl=%.2f", instrument.ticker, qty, instrument.price, pnl)
        return CommandResult.success(cents(proceeds))

    def credit(self, amount: float) -> float:
        if amount > 0:
            self.cash = cents(self.cash + amount)
        return self.cash

    def to_dict(self) -> Dict:
        return {
            "cash": self.cash,
            "positions": [p.to_dict() for p in self.positions],
            "realized_pnl": self.realized_pnl,
        }
