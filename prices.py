import random
from dataclasses import replace
from typing import Dict, List

import config
from models import Instrument


def push_history(history: List[float], price: float, limit: int = config.HISTORY_LENGTH) -> List[float]:
    """Returns a new window with ``price`` appended and the oldest samples dropped."""
    out = list(history) + [price]
    if len(out) > limit:
        out = out[len(out) - limit:]
    return out


def advance(instrument: Instrument, modifier: float, rng: random.Random) -> Instrument:
    """
    One daily close for one instrument.

    The uniform draw is the only randomness, so a seeded rng replays the same path.
    The input instrument is left untouched.
    """
    base_return = rng.uniform(-1.0, 1.0) * instrument.volatility
    total_return = base_return + modifier

    new_price = round(max(config.MIN_PRICE, instrument.price * (1.0 + total_return)), 2)

    return replace(
        instrument,
        previous_price=instrument.price,
        price=new_price,
        price_history=push_history(instrument.price_history, new_price),
    )


def seed_history(instrument: Instrument, rng: random.Random, length: int = config.HISTORY_LENGTH) -> List[float]:
    """Synthetic back-history so charts are not empty on day one."""
    half = length // 2
    out = []
    for i in range(length):
        variance = (rng.random() - 0.5) * instrument.volatility * instrument.price * 2
        px = instrument.price + variance * (i - half) / half
        out.append(round(max(config.MIN_PRICE, px), 2))
    return out


def new_instrument(company: Dict, rng: random.Random) -> Instrument:
    px = float(company["start_price"])
    inst = Instrument(
        ticker=company["ticker"],
        name=company["name"],
        sector=company["sector"],
        price=px,
        previous_price=px,
        volatility=float(company["volatility"]),
    )
    inst.price_history = seed_history(inst, rng)
    return inst
