"""
The trading desk: wires the market, idle engine, session clock and ledger
together and exposes the commands and queries the UI layer calls.

Nothing here raises for an ordinary bad command. Every command returns a
CommandResult and leaves state untouched on failure.
"""
import logging
import random
from typing import Dict, List, Optional

import config
from idle import IdleEngine, wall_clock_ms
from market import MarketEngine, initial_instruments
from models import (
    ALREADY_USED_TODAY,
    DAY_NOT_SETTLED,
    MARKET_CLOSED,
    NOTHING_TO_COLLECT,
    CommandResult,
    Instrument,
    MarketPhase,
    NewsEffect,
    Position,
)
from news import NewsGenerator
from portfolio import Ledger
from session import SessionClock
from storage import MemoryStorage, StorageError

logger = logging.getLogger(__name__)

SAVE_VERSION = 1


def empty_cosmetics() -> Dict:
    return {"owned_item_ids": [], "equipped": {"watch": None, "car": None, "art": None, "office": None}}


def section(blob: Dict, key: str, required: bool = True) -> Dict:
    """A nested object of the save blob. Anything that is not a dict counts as corrupt."""
    value = blob[key] if required else (blob.get(key) or {})
    if not isinstance(value, dict):
        raise ValueError(f"save section {key!r} is not an object")
    return value


class Desk:
    def __init__(self, storage=None, rng: Optional[random.Random] = None, clock=None,
                 news_pools: Optional[Dict] = None, companies: Optional[List[Dict]] = None):
        self.storage = storage if storage is not None else MemoryStorage()
        self.rng = rng or random.Random()
        self.clock = clock or wall_clock_ms
        self.news_pools = news_pools
        self.companies = companies
        self.tutorial_ticker: Optional[str] = None
        self._ticks_since_save = 0

        blob = None
        try:
            blob = self.storage.load()
        except StorageError as exc:
            logger.warning("save_unreadable error=%s", exc)

        if blob is None or not self._restore(blob):
            self._fresh()

        self.last_tick_ms = self.clock()

    # -------------------- Construction --------------------
    def _news(self) -> NewsGenerator:
        return NewsGenerator(pools=self.news_pools, rng=self.rng)

    def _fresh(self, idle_saved: Optional[Dict] = None) -> None:
        self.market = MarketEngine(initial_instruments(self.rng, self.companies), self.rng, news=self._news())
        self.ledger = Ledger()
        self.idle = IdleEngine(clock=self.clock, saved=idle_saved)
        self.session = SessionClock(self.market, self.idle)
        self.cosmetics = empty_cosmetics()

    def _restore(self, blob: Dict) -> bool:
        try:
            m = section(blob, "market")
            instruments = [Instrument.from_dict(d) for d in m["instruments"]]
            if not instruments or any(i.price <= 0 for i in instruments):
                raise ValueError("instrument set empty or holds a non-positive price")
            effects = [NewsEffect.from_dict(d) for d in m.get("effects", [])]
            market = MarketEngine(instruments, self.rng, news=self._news(), effects=effects,
                                  reputation=m.get("reputation", config.START_REPUTATION))
            if m.get("phase") == MarketPhase.SETTLED.value:
                market.phase = MarketPhase.SETTLED

            lg = section(blob, "ledger")
            ledger = Ledger(
                cash=lg["cash"],
                positions=[Position.from_dict(d) for d in lg.get("positions", [])],
                realized_pnl=lg.get("realized_pnl", 0.0),
            )

            idle_saved = section(blob, "idle", required=False)
            idle = IdleEngine(clock=self.clock, saved=idle_saved)
            idle.tap_boost_percent = min(max(0.0, float(idle_saved.get("tap_boost_percent", 0.0))),
                                         config.TAP_BOOST_MAX_PERCENT)
            idle.pending_offline = float(idle_saved.get("pending_offline", 0.0))
            idle.show_welcome_back = idle.pending_offline > 0

            s = section(blob, "session", required=False)
            session = SessionClock(market, idle, day=s.get("day", 1),
                                   new_client_used_today=s.get("new_client_used_today", False))
        except (KeyError, TypeError, ValueError) as exc:
            logger.warning("save_corrupt falling_back=defaults error=%r", exc)
            return False

        self.market = market
        self.ledger = ledger
        self.idle = idle
        self.session = session
        cosmetics = blob.get("cosmetics")
        self.cosmetics = cosmetics if isinstance(cosmetics, dict) else empty_cosmetics()
        logger.info("save_restored day=%d reputation=%d", session.day, market.reputation)
        return True

    # -------------------- Persistence --------------------
    def snapshot(self) -> Dict:
        idle = self.idle.snapshot()
        idle["tap_boost_percent"] = self.idle.tap_boost_percent
        idle["pending_offline"] = self.idle.pending_offline
        return {
            "version": SAVE_VERSION,
            "market": {
                "instruments": [i.to_dict() for i in self.market.instruments],
                "effects": [e.to_dict() for e in self.market.effects],
                "reputation": self.market.reputation,
                "phase": self.market.phase.value,
            },
            "session": self.session.snapshot(),
            "ledger": self.ledger.to_dict(),
            "idle": idle,
            "cosmetics": self.cosmetics,
        }

    def save(self) -> bool:
        if self.tutorial_ticker:
            return False
        try:
            self.storage.save(self.snapshot())
        except StorageError as exc:
            logger.warning("save_failed error=%s", exc)
            return False
        self._ticks_since_save = 0
        return True

    # -------------------- Trading commands --------------------
    def buy(self, ticker: str, qty: int) -> CommandResult:
        if not self.market.is_open:
            return CommandResult.failure(MARKET_CLOSED)
        result = self.ledger.buy(self.market.instrument(ticker), qty)
        if result.ok:
            self.session.post(f"Bought {qty} shares of {ticker} at ${self.market.instrument(ticker).price:.2f}")
            self.save()
        return result

    def sell(self, ticker: str, qty: int) -> CommandResult:
        if not self.market.is_open:
            return CommandResult.failure(MARKET_CLOSED)
        result = self.ledger.sell(self.market.instrument(ticker), qty)
        if result.ok:
            self.session.post(f"Sold {qty} shares of {ticker} at ${self.market.instrument(ticker).price:.2f}")
            self.save()
        return result

    def use_new_client(self) -> CommandResult:
        amount = self.session.use_new_client()
        if amount is None:
            return CommandResult.failure(ALREADY_USED_TODAY)
        self.ledger.credit(amount)
        self.idle.increase_fund_size(amount)
        self.save()
        return CommandResult.success(amount)

    # -------------------- Day cycle --------------------
    def close_day(self) -> CommandResult:
        report = self.market.close_day(self.ledger.positions, self.ledger.cash, self.tutorial_ticker)
        if report is None:
            return CommandResult.failure(MARKET_CLOSED)

        if report.pre_value > 0:
            daily_return = report.daily_pnl / report.pre_value
            self.idle.apply_trading_performance(daily_return, report.post_value)

        self.session.post(f"Day {self.session.day} closed. P/L: ${report.daily_pnl:,.2f}")
        self.save()
        return CommandResult.success(report.daily_pnl)

    def start_next_day(self) -> CommandResult:
        if not self.session.start_next_day():
            return CommandResult.failure(DAY_NOT_SETTLED)
        self.save()
        return CommandResult.success(self.session.day)

    # -------------------- Idle commands --------------------
    def tap(self) -> CommandResult:
        return CommandResult.success(self.idle.tap())

    def activate_boost(self, boost_id: str) -> CommandResult:
        result = self.idle.activate_boost(boost_id)
        if not result.ok:
            return result

        if boost_id == config.INSTANT_COLLECT_ID:
            # collects whatever is waiting, the cooldown starts either way
            amount = 0.0
            if self.idle.pending_offline > 0:
                amount = self.idle.collect_offline_earnings()
                self.ledger.credit(amount)
                self.session.post(f"Instant collect: +${amount:,.2f}")
            else:
                self.session.post("No offline earnings to collect right now.")
            result = CommandResult.success(amount)
        else:
            self.session.post(f"Activated: {self.idle.boosts[boost_id].name}")

        self.save()
        return result

    def collect_offline_earnings(self) -> CommandResult:
        if self.idle.pending_offline <= 0:
            return CommandResult.failure(NOTHING_TO_COLLECT)
        amount = self.idle.collect_offline_earnings()
        self.ledger.credit(amount)
        self.save()
        return CommandResult.success(amount)

    def idle_tick(self) -> float:
        """One pass of the idle loop. Decay follows real elapsed time, not the tick count."""
        now = self.clock()
        delta_seconds = max(0.0, (now - self.last_tick_ms) / 1000.0)
        self.last_tick_ms = now

        tier = self.session.tier
        income = self.idle.tick(tier)
        self.ledger.credit(income)
        self.idle.decay_tap_boost(delta_seconds)

        self._ticks_since_save += 1
        if self._ticks_since_save >= config.SAVE_EVERY_TICKS:
            self.save()
        return income

    def suspend(self) -> None:
        """The view went to the background."""
        self.idle.touch()
        self.save()

    def resume(self) -> float:
        """The view came back. Offline earnings are computed once, ticking restarts from now."""
        amount = self.idle.compute_offline_earnings(self.session.tier)
        self.last_tick_ms = self.clock()
        return amount

    # -------------------- Game control --------------------
    def reset(self) -> None:
        try:
            self.storage.clear()
        except StorageError as exc:
            logger.warning("save_clear_failed error=%s", exc)
        self.tutorial_ticker = None
        self._fresh()
        self.last_tick_ms = self.clock()
        self.session.feed.clear()
        self.session.post("Game reset. Welcome back to your trading desk!")

    def start_tutorial(self, ticker: str = config.TUTORIAL_TICKER) -> None:
        self._fresh(idle_saved=self.idle.snapshot())
        self.tutorial_ticker = ticker
        self.session.feed.clear()
        self.session.post("Welcome to the tutorial! Let's learn how to trade.")

    def end_tutorial(self) -> None:
        self.tutorial_ticker = None

    # -------------------- Queries --------------------
    def boosts(self) -> List[Dict]:
        out = []
        for b in self.idle.boosts.values():
            out.append({
                "id": b.id,
                "name": b.name,
                "description": b.description,
                "multiplier": b.multiplier,
                "active": self.idle.is_boost_active(b.id),
                "time_remaining_ms": self.idle.boost_time_remaining(b.id),
                "cooldown_remaining_ms": self.idle.boost_cooldown_remaining(b.id),
            })
        return out

    def state(self) -> Dict:
        tier = self.session.tier
        return {
            "day": self.session.day,
            "phase": self.market.phase.value,
            "reputation": self.market.reputation,
            "career_level": tier,
            "cash": self.ledger.cash,
            "positions": [p.to_dict() for p in self.ledger.positions],
            "realized_pnl": self.ledger.realized_pnl,
            "total_value": round(self.market.portfolio_value(self.ledger.positions, self.ledger.cash), 2),
            "instruments": [i.to_dict() for i in self.market.instruments],
            "news": [n.to_dict() for n in self.market.news_items],
            "last_report": self.market.last_report.to_dict() if self.market.last_report else None,
            "movers": self.market.movers(6),
            "new_client_used_today": self.session.new_client_used_today,
            "feed": self.session.messages(),
            "idle": {
                "income_per_second": self.idle.income_per_second(tier),
                "tap_boost_percent": round(self.idle.tap_boost_percent, 2),
                "fund_size": self.idle.fund_size,
                "total_earned": self.idle.total_earned,
                "pending_offline": self.idle.pending_offline,
                "show_welcome_back": self.idle.show_welcome_back,
                "boosts": self.boosts(),
            },
            "tutorial": self.tutorial_ticker is not None,
        }
