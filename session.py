import logging
from collections import deque
from typing import Dict, Iterable, List, Optional

import config
from idle import IdleEngine
from market import MarketEngine

logger = logging.getLogger(__name__)


def career_level(reputation: int) -> str:
    for level, threshold in config.CAREER_THRESHOLDS:
        if reputation >= threshold:
            return level
    return config.CAREER_THRESHOLDS[-1][0]


class SessionClock:
    """
    Day counter and per-day flags. The only place a day ends and the next one starts.

    The career tier is read from market reputation once per day and handed to
    the idle engine, which never looks at the market itself.
    """

    def __init__(self, market: MarketEngine, idle: IdleEngine, day: int = 1,
                 new_client_used_today: bool = False, feed: Optional[Iterable[str]] = None):
        self.market = market
        self.idle = idle
        self.day = max(1, int(day))
        self.new_client_used_today = bool(new_client_used_today)
        self.feed = deque(feed or ["Welcome to your trading desk. Good luck!"], maxlen=config.FEED_LIMIT)
        self.tier = career_level(market.reputation)

    def post(self, message: str) -> None:
        self.feed.append(message)

    def use_new_client(self) -> Optional[float]:
        """Capital for today's new client, or None if one was already onboarded."""
        if self.new_client_used_today:
            return None
        self.new_client_used_today = True
        amount = float(config.NEW_CLIENT_CAPITAL[self.tier])
        self.post(f"New client onboarded. Capital added: ${amount:,.0f}")
        return amount

    def start_next_day(self) -> bool:
        headlines = [n.headline for n in self.market.news_items]
        if not self.market.reopen():
            return False

        self.day += 1
        self.new_client_used_today = False
        self.tier = career_level(self.market.reputation)

        self.feed.clear()
        self.post("--- New Trading Day ---")
        if headlines:
            for h in headlines:
                self.post(f"• {h}")
        else:
            self.post("Quiet day. No major headlines.")

        logger.info("day_started day=%d tier=%s reputation=%d", self.day, self.tier, self.market.reputation)
        return True

    def messages(self) -> List[str]:
        return list(self.feed)

    def snapshot(self) -> Dict:
        return {"day": self.day, "new_client_used_today": self.new_client_used_today}
