from __future__ import annotations

import random

from ism.models import Instrument

from .models import RefreshConfig, TickDeltas


def draw_tick_deltas(instrument: Instrument, rng: random.Random, config: RefreshConfig) -> TickDeltas:
    capital_range = config.price_move_fraction * instrument.capital_market_price
    futures_range = config.price_move_fraction * instrument.futures_price
    return TickDeltas(
        capital_market=rng.uniform(-capital_range, capital_range),
        futures=rng.uniform(-futures_range, futures_range),
        percentage_change=rng.uniform(-config.percentage_move_points, config.percentage_move_points),
    )


def clamp_price(value: float) -> float:
    return max(0.0, value)


def apply_tick(instrument: Instrument, deltas: TickDeltas, config: RefreshConfig) -> dict[str, float]:
    capital_market_price = clamp_price(instrument.capital_market_price + deltas.capital_market)
    futures_price = clamp_price(instrument.futures_price + deltas.futures)

    if config.percentage_change_mode == "derived":
        percentage_change = instrument.percentage_change + calc_move_rate(
            instrument.capital_market_price, capital_market_price
        )
    else:
        percentage_change = instrument.percentage_change + deltas.percentage_change

    return {
        "capital_market_price": capital_market_price,
        "futures_price": futures_price,
        "percentage_change": percentage_change,
    }


def calc_move_rate(previous_price: float, current_price: float) -> float:
    if previous_price <= 0:
        return 0.0
    return (current_price - previous_price) / previous_price * 100
