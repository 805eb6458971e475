"""
Market engine: owns the instruments and the live news effects, and runs the
daily close.

Day phases:
    OPEN     -> trading allowed
    CLOSING  -> news rolled, effects folded, prices moved, P/L computed
    SETTLED  -> summary available, waiting for the session clock to reopen
"""
import json
import logging
import math
import os
import random
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

import config
import prices
from models import Instrument, MarketPhase, NewsEffect, NewsItem, Position
from news import DATA_DIR, NewsGenerator, decay_effects, fold_effects

logger = logging.getLogger(__name__)

COMPANIES_PATH = os.path.join(DATA_DIR, "companies.json")


def load_companies(path: str = COMPANIES_PATH) -> List[Dict]:
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def initial_instruments(rng: random.Random, companies: Optional[List[Dict]] = None) -> List[Instrument]:
    companies = companies if companies is not None else load_companies()
    return [prices.new_instrument(c, rng) for c in companies]


def reputation_delta(daily_pnl: float) -> int:
    """Any non-zero day moves reputation by at least one point, never more than three."""
    cap = config.REPUTATION_MAX_DELTA
    steps = daily_pnl / config.REPUTATION_PNL_STEP
    if daily_pnl > 0:
        return min(cap, max(1, math.floor(steps)))
    if daily_pnl < 0:
        return max(-cap, min(-1, math.ceil(steps)))
    return 0


def clamp_reputation(value: int) -> int:
    return max(config.REPUTATION_MIN, min(config.REPUTATION_MAX, value))


@dataclass
class DayReport:
    daily_pnl: float
    pre_value: float
    post_value: float
    reputation_delta: int
    reputation: int
    news_items: List[NewsItem] = field(default_factory=list)

    def to_dict(self) -> Dict:
        return {
            "daily_pnl": self.daily_pnl,
            "pre_value": self.pre_value,
            "post_value": self.post_value,
            "reputation_delta": self.reputation_delta,
            "reputation": self.reputation,
            "news": [n.to_dict() for n in self.news_items],
        }


class MarketEngine:
    def __init__(
        self,
        instruments: List[Instrument],
        rng: random.Random,
        news: Optional[NewsGenerator] = None,
        effects: Optional[List[NewsEffect]] = None,
        reputation: int = config.START_REPUTATION,
    ):
        self.instruments = list(instruments)
        self.rng = rng
        self.news = news or NewsGenerator(rng=rng)
        self.effects: List[NewsEffect] = list(effects or [])
        self.reputation = clamp_reputation(int(reputation))
        self.phase = MarketPhase.OPEN
        self.news_items: List[NewsItem] = []
        self.last_report: Optional[DayReport] = None

    # -------------------- Queries --------------------
    @property
    def is_open(self) -> bool:
        return self.phase == MarketPhase.OPEN

    def instrument(self, ticker: str) -> Optional[Instrument]:
        return next((i for i in self.instruments if i.ticker == ticker), None)

    def price_map(self) -> Dict[str, float]:
        return {i.ticker: i.price for i in self.instruments}

    def portfolio_value(self, positions: Iterable[Position], cash: float = 0.0) -> float:
        px = self.price_map()
        return cash + sum(p.shares * px.get(p.ticker, 0.0) for p in positions)

    def movers(self, n: int = 6) -> List[Dict]:
        moves = []
        for i in self.instruments:
            moves.append({"ticker": i.ticker, "name": i.name, "sector": i.sector, "price": i.price, "pct": i.change_pct})
        moves.sort(key=lambda x: abs(x["pct"]), reverse=True)
        return moves[:n]

    # -------------------- Day cycle --------------------
    def close_day(
        self,
        positions: Iterable[Position],
        cash: float,
        tutorial_ticker: Optional[str] = None,
    ) -> Optional[DayReport]:
        """
        Rolls today's news, moves every price once and settles the day.
        Returns None when the market is not open; nothing changes in that case.
        """
        if self.phase != MarketPhase.OPEN:
            logger.info("close_day_rejected phase=%s", self.phase.value)
            return None

        positions = list(positions)
        self.phase = MarketPhase.CLOSING
        pre_value = self.portfolio_value(positions, cash)

        items, new_effects = self.news.generate(self.instruments)
        live = self.effects + new_effects
        modifiers = fold_effects(self.instruments, live)

        if tutorial_ticker and self.instrument(tutorial_ticker):
            lo, hi = config.TUTORIAL_BOOST
            modifiers[tutorial_ticker] = modifiers.get(tutorial_ticker, 0.0) + self.rng.uniform(lo, hi)

        self.instruments = [prices.advance(i, modifiers.get(i.ticker, 0.0), self.rng) for i in self.instruments]
        self.effects = decay_effects(live)

        post_value = self.portfolio_value(positions, cash)
        daily_pnl = round(post_value - pre_value, 2)
        delta = reputation_delta(daily_pnl)
        self.reputation = clamp_reputation(self.reputation + delta)

        self.news_items = items
        self.last_report = DayReport(
            daily_pnl=daily_pnl,
            pre_value=round(pre_value, 2),
            post_value=round(post_value, 2),
            reputation_delta=delta,
            reputation=self.reputation,
            news_items=items,
        )
        self.phase = MarketPhase.SETTLED
        logger.info(
            "day_closed pnl=%.2f rep_delta=%d reputation=%d news=%d carried_effects=%d",
            daily_pnl, delta, self.reputation, len(items), len(self.effects),
        )
        return self.last_report

    def reopen(self) -> bool:
        if self.phase != MarketPhase.SETTLED:
            return False
        self.news_items = []
        self.phase = MarketPhase.OPEN
        return True
