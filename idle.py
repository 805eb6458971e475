"""
Idle income engine.

Keeps producing fund income while the desk is idle or closed: a base rate per
career level, a tap boost that bleeds away over time, rewarded boosts with
cooldowns, and catch-up earnings for the time the player was away.

The engine never touches cash. ``tick`` and ``collect_offline_earnings`` report
amounts and the caller credits them to the ledger.
"""
import logging
import time
from typing import Callable, Dict, List, Optional

import config
from models import BOOST_COOLDOWN, UNKNOWN_BOOST, CommandResult, RewardedBoost

logger = logging.getLogger(__name__)

Clock = Callable[[], int]


def wall_clock_ms() -> int:
    return int(time.time() * 1000)


def cents(value: float) -> float:
    return round(value, 2)


def default_boosts() -> List[RewardedBoost]:
    return [RewardedBoost(**b) for b in config.REWARDED_BOOSTS]


def optional_ms(value) -> Optional[int]:
    return None if value is None else int(value)


class IdleEngine:
    def __init__(self, clock: Optional[Clock] = None, saved: Optional[Dict] = None):
        self.clock = clock or wall_clock_ms
        saved = saved or {}
        if not isinstance(saved, dict):
            raise ValueError(f"idle state is not an object: {saved!r}")

        self.tap_boost_percent = 0.0
        self.fund_size = float(saved.get("fund_size", config.START_FUND_SIZE))
        self.last_active_ms = int(saved.get("last_active_ms", self.clock()))
        self.total_earned = float(saved.get("total_earned", 0.0))
        self.pending_offline = 0.0
        self.show_welcome_back = False

        self.boosts: Dict[str, RewardedBoost] = {b.id: b for b in default_boosts()}
        for stamp in saved.get("boosts", []):
            if not isinstance(stamp, dict):
                raise ValueError(f"boost stamp is not an object: {stamp!r}")
            boost = self.boosts.get(stamp.get("id"))
            if boost is None:
                continue
            boost.activated_at = optional_ms(stamp.get("activated_at"))
            boost.last_used_at = optional_ms(stamp.get("last_used_at"))

    # -------------------- Tap boost --------------------
    def tap(self) -> float:
        self.tap_boost_percent = min(self.tap_boost_percent + config.TAP_BOOST_INCREMENT, config.TAP_BOOST_MAX_PERCENT)
        return self.tap_boost_percent

    def decay_tap_boost(self, delta_seconds: float) -> float:
        # clock skew can hand us a negative delta
        delta_seconds = max(0.0, delta_seconds)
        decay = config.TAP_BOOST_DECAY_PER_SECOND * delta_seconds
        self.tap_boost_percent = max(0.0, self.tap_boost_percent - decay)
        return self.tap_boost_percent

    # -------------------- Income --------------------
    def base_income(self, tier: str) -> float:
        lo, hi = config.BASE_INCOME_BY_CAREER[tier]
        progress = min(self.fund_size / config.FUND_SIZE_FOR_MAX_INCOME, 1.0)
        return min(lo + (hi - lo) * progress, hi)

    def active_multiplier(self, at_ms: Optional[int] = None) -> float:
        at_ms = self.clock() if at_ms is None else at_ms
        multiplier = 1.0
        for boost in self.boosts.values():
            if boost.is_active_at(at_ms):
                multiplier *= boost.multiplier
        return multiplier

    def income_per_second(self, tier: str) -> float:
        tap = 1.0 + self.tap_boost_percent / 100.0
        return cents(self.base_income(tier) * tap * self.active_multiplier())

    def tick(self, tier: str) -> float:
        income = self.income_per_second(tier)
        self.total_earned = cents(self.total_earned + income)
        self.touch()
        return income

    def touch(self) -> None:
        self.last_active_ms = self.clock()

    # -------------------- Rewarded boosts --------------------
    def activate_boost(self, boost_id: str) -> CommandResult:
        boost = self.boosts.get(boost_id)
        if boost is None:
            return CommandResult.failure(UNKNOWN_BOOST)

        now = self.clock()
        ends = boost.cooldown_ends_at()
        if ends is not None and now < ends:
            return CommandResult.failure(BOOST_COOLDOWN)

        boost.activated_at = now
        boost.last_used_at = now
        logger.info("boost_activated id=%s multiplier=%.2f", boost_id, boost.multiplier)
        return CommandResult.success()

    def boost_time_remaining(self, boost_id: str) -> int:
        boost = self.boosts.get(boost_id)
        if not boost or boost.activated_at is None or boost.duration_ms == 0:
            return 0
        elapsed = max(0, self.clock() - boost.activated_at)
        return max(0, boost.duration_ms - elapsed)

    def boost_cooldown_remaining(self, boost_id: str) -> int:
        boost = self.boosts.get(boost_id)
        if not boost or boost.last_used_at is None:
            return 0
        elapsed = max(0, self.clock() - boost.last_used_at)
        return max(0, boost.cooldown_ms - elapsed)

    def is_boost_active(self, boost_id: str) -> bool:
        return self.boost_time_remaining(boost_id) > 0

    def is_boost_on_cooldown(self, boost_id: str) -> bool:
        return self.boost_cooldown_remaining(boost_id) > 0

    # -------------------- Offline catch-up --------------------
    def offline_seconds(self) -> float:
        elapsed = (self.clock() - self.last_active_ms) / 1000.0
        return min(max(0.0, elapsed), float(config.MAX_OFFLINE_SECONDS))

    def compute_offline_earnings(self, tier: str) -> float:
        """
        Income for the time since ``last_active_ms``, capped at MAX_OFFLINE_SECONDS.

        Boosts count only if they were running when the player left. The pending
        amount is replaced on every call, so calling twice never pays twice.
        """
        offline = self.offline_seconds()
        if offline < config.OFFLINE_MIN_SECONDS:
            if self.pending_offline <= 0:
                self.pending_offline = 0.0
                self.show_welcome_back = False
            return 0.0

        multiplier = self.active_multiplier(at_ms=self.last_active_ms)
        earnings = cents(self.base_income(tier) * offline * multiplier)
        self.pending_offline = earnings
        self.show_welcome_back = earnings > 0
        logger.info("offline_earnings seconds=%.0f multiplier=%.2f amount=%.2f", offline, multiplier, earnings)
        return earnings

    def collect_offline_earnings(self) -> float:
        amount = self.pending_offline
        self.total_earned = cents(self.total_earned + amount)
        self.pending_offline = 0.0
        self.show_welcome_back = False
        self.touch()
        return amount

    def dismiss_welcome_back(self) -> float:
        return self.collect_offline_earnings()

    # -------------------- Fund size --------------------
    def increase_fund_size(self, amount: float) -> float:
        self.fund_size = cents(self.fund_size + amount)
        return self.fund_size

    def apply_trading_performance(self, daily_return: float, portfolio_value: float) -> float:
        if daily_return > 0:
            growth = portfolio_value * daily_return * config.FUND_GROWTH_FACTOR
            self.fund_size = cents(self.fund_size + growth)
        elif daily_return < config.FUND_SHRINK_THRESHOLD:
            shrink = self.fund_size * abs(daily_return) * config.FUND_SHRINK_FACTOR
            self.fund_size = max(config.MIN_FUND_SIZE, cents(self.fund_size - shrink))
        return self.fund_size

    # -------------------- Persistence --------------------
    def snapshot(self) -> Dict:
        return {
            "fund_size": self.fund_size,
            "last_active_ms": self.last_active_ms,
            "total_earned": self.total_earned,
            "boosts": [
                {"id": b.id, "activated_at": b.activated_at, "last_used_at": b.last_used_at}
                for b in self.boosts.values()
            ],
        }
