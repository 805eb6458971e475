"""Plain data types shared by the market, news, idle and ledger engines."""
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Dict, List, Optional

# -------------------- Reason codes --------------------
UNKNOWN_INSTRUMENT = "unknown_instrument"
INVALID_QUANTITY = "invalid_quantity"
INVALID_SIDE = "invalid_side"
INSUFFICIENT_CASH = "insufficient_cash"
INSUFFICIENT_SHARES = "insufficient_shares"
MARKET_CLOSED = "market_closed"
DAY_NOT_SETTLED = "day_not_settled"
ALREADY_USED_TODAY = "already_used_today"
UNKNOWN_BOOST = "unknown_boost"
BOOST_COOLDOWN = "boost_cooldown"
NOTHING_TO_COLLECT = "nothing_to_collect"


class Scope(str, Enum):
    INSTRUMENT = "instrument"
    CATEGORY = "category"
    GLOBAL = "global"


class MarketPhase(str, Enum):
    OPEN = "OPEN"
    CLOSING = "CLOSING"
    SETTLED = "SETTLED"


# News pools are keyed by the player-facing kind of headline
POOL_SCOPES = {
    "company": Scope.INSTRUMENT,
    "sector": Scope.CATEGORY,
    "macro": Scope.GLOBAL,
}


@dataclass
class CommandResult:
    """Outcome of a player command. Failures carry a reason code, never an exception."""

    ok: bool
    error: Optional[str] = None
    amount: float = 0.0

    @classmethod
    def success(cls, amount: float = 0.0) -> "CommandResult":
        return cls(ok=True, amount=amount)

    @classmethod
    def failure(cls, error: str) -> "CommandResult":
        return cls(ok=False, error=error)

    def to_dict(self) -> Dict:
        out = {"ok": self.ok}
        if self.error:
            out["error"] = self.error
        if self.ok:
            out["amount"] = self.amount
        return out


@dataclass
class Instrument:
    ticker: str
    name: str
    sector: str
    price: float
    previous_price: float
    volatility: float
    price_history: List[float] = field(default_factory=list)

    @property
    def change_pct(self) -> float:
        if self.previous_price == 0:
            return 0.0
        return (self.price - self.previous_price) / self.previous_price

    def to_dict(self) -> Dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict) -> "Instrument":
        return cls(
            ticker=str(data["ticker"]),
            name=str(data["name"]),
            sector=str(data["sector"]),
            price=float(data["price"]),
            previous_price=float(data.get("previous_price", data["price"])),
            volatility=float(data["volatility"]),
            price_history=[float(p) for p in data.get("price_history", [])],
        )


@dataclass
class Position:
    ticker: str
    shares: int
    avg_cost: float

    def to_dict(self) -> Dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict) -> "Position":
        return cls(ticker=str(data["ticker"]), shares=int(data["shares"]), avg_cost=float(data["avg_cost"]))


@dataclass
class NewsEffect:
    """A timed push on daily returns. ``modifier`` is signed and drawn once, when the news breaks."""

    id: str
    scope: Scope
    target: str
    direction: str
    strength: str
    days_remaining: int
    modifier: float

    def to_dict(self) -> Dict:
        out = asdict(self)
        out["scope"] = self.scope.value
        return out

    @classmethod
    def from_dict(cls, data: Dict) -> "NewsEffect":
        return cls(
            id=str(data["id"]),
            scope=Scope(data["scope"]),
            target=str(data["target"]),
            direction=str(data["direction"]),
            strength=str(data["strength"]),
            days_remaining=int(data["days_remaining"]),
            modifier=float(data["modifier"]),
        )


@dataclass
class NewsItem:
    id: str
    headline: str
    body: str
    scope: Scope
    category: str
    affected_tickers: List[str] = field(default_factory=list)
    affected_sector: Optional[str] = None

    def to_dict(self) -> Dict:
        out = asdict(self)
        out["scope"] = self.scope.value
        return out


@dataclass
class RewardedBoost:
    id: str
    name: str
    description: str
    multiplier: float
    duration_ms: int
    cooldown_ms: int
    activated_at: Optional[int] = None
    last_used_at: Optional[int] = None

    def is_active_at(self, at_ms: int) -> bool:
        if self.activated_at is None or self.duration_ms <= 0:
            return False
        return 0 <= at_ms - self.activated_at < self.duration_ms

    def cooldown_ends_at(self) -> Optional[int]:
        if self.last_used_at is None:
            return None
        return self.last_used_at + self.cooldown_ms
