"""
Daily headline generation and the news effects that push prices.

Templates come in three pools (company, sector, macro). Each headline becomes a
NewsItem for display and a NewsEffect that the market folds into daily returns
until its days run out.
"""
import json
import logging
import os
import random
from dataclasses import replace
from typing import Dict, Iterable, List, Optional, Tuple

import config
from models import Instrument, NewsEffect, NewsItem, POOL_SCOPES, Scope

logger = logging.getLogger(__name__)

DATA_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "data")
NEWS_PATH = os.path.join(DATA_DIR, "news.json")

SCOPE_WEIGHTS = {
    Scope.INSTRUMENT: config.INSTRUMENT_WEIGHT,
    Scope.CATEGORY: config.CATEGORY_WEIGHT,
    Scope.GLOBAL: config.GLOBAL_WEIGHT,
}


def empty_pools() -> Dict:
    return {"company": {}, "sector": {}, "macro": []}


def load_pools(path: str = NEWS_PATH) -> Dict:
    """Reads the template pools. A missing or broken file means a quiet market, not a crash."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = json.load(f)
    except (OSError, ValueError) as exc:
        logger.warning("news_pools_unavailable path=%s error=%s", path, exc)
        return empty_pools()

    pools = empty_pools()
    if isinstance(raw, dict):
        pools["company"] = dict(raw.get("company") or {})
        pools["sector"] = dict(raw.get("sector") or {})
        pools["macro"] = list(raw.get("macro") or [])
    return pools


def strength_modifier(strength: str, direction: str, rng: random.Random) -> float:
    lo, hi = config.STRENGTH_RANGES[strength]
    sign = 1.0 if direction == "positive" else -1.0
    return sign * rng.uniform(lo, hi)


def fold_effects(instruments: Iterable[Instrument], effects: Iterable[NewsEffect]) -> Dict[str, float]:
    """
    Sums every live effect into a per-ticker return modifier.

    Company effects apply in full, sector effects at CATEGORY_WEIGHT to each
    member, macro effects at GLOBAL_WEIGHT to everything. Pure addition, so the
    order effects arrive in does not matter.
    """
    instruments = list(instruments)
    known = {i.ticker for i in instruments}
    modifiers: Dict[str, float] = {}

    for effect in effects:
        w = SCOPE_WEIGHTS[effect.scope]
        if effect.scope == Scope.INSTRUMENT:
            hit = [effect.target] if effect.target in known else []
        elif effect.scope == Scope.CATEGORY:
            hit = [i.ticker for i in instruments if i.sector == effect.target]
        else:
            hit = [i.ticker for i in instruments]

        for t in hit:
            modifiers[t] = modifiers.get(t, 0.0) + effect.modifier * w

    return modifiers


def decay_effects(effects: Iterable[NewsEffect]) -> List[NewsEffect]:
    out = []
    for e in effects:
        left = e.days_remaining - 1
        if left > 0:
            out.append(replace(e, days_remaining=left))
    return out


class NewsGenerator:
    def __init__(self, pools: Optional[Dict] = None, rng: Optional[random.Random] = None):
        self.pools = pools if pools is not None else load_pools()
        self.rng = rng or random.Random()

    def roll_count(self) -> int:
        return self.rng.choices(range(len(config.NEWS_COUNT_WEIGHTS)), weights=config.NEWS_COUNT_WEIGHTS)[0]

    def roll_kind(self) -> str:
        kinds = list(config.NEWS_SCOPE_WEIGHTS.keys())
        weights = [config.NEWS_SCOPE_WEIGHTS[k] for k in kinds]
        return self.rng.choices(kinds, weights=weights)[0]

    def roll_days(self, kind: str) -> int:
        lo, hi = config.EFFECT_DAYS[kind]
        return self.rng.randint(lo, hi)

    def _token(self) -> str:
        return "%08x" % self.rng.getrandbits(32)

    def _pick_target(self, kind: str, instruments: List[Instrument], used: set) -> Optional[Tuple[str, List[Dict]]]:
        if kind == "company":
            candidates = [i.ticker for i in instruments if self.pools["company"].get(i.ticker)]
        elif kind == "sector":
            sectors = sorted({i.sector for i in instruments})
            candidates = [s for s in sectors if self.pools["sector"].get(s)]
        else:
            if not self.pools["macro"]:
                return None
            return config.MACRO_TARGET, self.pools["macro"]

        available = [c for c in candidates if c not in used]
        if not available:
            return None
        target = self.rng.choice(available)
        used.add(target)
        return target, self.pools[kind][target]

    def generate(self, instruments: Iterable[Instrument]) -> Tuple[List[NewsItem], List[NewsEffect]]:
        instruments = list(instruments)
        count = self.roll_count()
        if count == 0:
            return [], []

        by_ticker = {i.ticker: i for i in instruments}
        used = {"company": set(), "sector": set(), "macro": set()}
        items: List[NewsItem] = []
        effects: List[NewsEffect] = []

        for slot in range(count):
            kind = self.roll_kind()
            picked = self._pick_target(kind, instruments, used[kind])
            if picked is None:
                logger.debug("news_slot_skipped kind=%s slot=%d", kind, slot)
                continue

            target, templates = picked
            template = self.rng.choice(templates)
            scope = POOL_SCOPES[kind]
            token = self._token()

            if kind == "company":
                category = by_ticker[target].sector
                affected = [target]
                sector = None
            elif kind == "sector":
                category = target
                affected = [i.ticker for i in instruments if i.sector == target]
                sector = target
            else:
                category = config.MACRO_CATEGORY
                affected = []
                sector = None

            items.append(NewsItem(
                id=f"{kind}-{target}-{token}",
                headline=template["headline"],
                body=template["body"],
                scope=scope,
                category=category,
                affected_tickers=affected,
                affected_sector=sector,
            ))
            effects.append(NewsEffect(
                id=f"effect-{kind}-{target}-{token}",
                scope=scope,
                target=target,
                direction=template["direction"],
                strength=template["strength"],
                days_remaining=self.roll_days(kind),
                modifier=strength_modifier(template["strength"], template["direction"], self.rng),
            ))

        return items, effects
