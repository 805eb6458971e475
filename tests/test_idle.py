import pytest

import config
from idle import IdleEngine
from models import BOOST_COOLDOWN, UNKNOWN_BOOST

HOUR_MS = 3600 * 1000


@pytest.fixture
def engine(clock):
    # fund size 0 puts Associate at exactly 5/s
    return IdleEngine(clock=clock, saved={"fund_size": 0})


def test_tap_is_clamped(engine):
    for _ in range(80):
        engine.tap()
    assert engine.tap_boost_percent == config.TAP_BOOST_MAX_PERCENT


def test_decay_uses_elapsed_seconds_and_floors_at_zero(engine):
    for _ in range(5):
        engine.tap()
    engine.decay_tap_boost(10)
    assert engine.tap_boost_percent == pytest.approx(8.0)
    engine.decay_tap_boost(1000)
    assert engine.tap_boost_percent == 0.0


def test_negative_elapsed_does_not_grow_the_boost(engine):
    engine.tap()
    engine.decay_tap_boost(-30)
    assert engine.tap_boost_percent == pytest.approx(2.0)


def test_base_income_slides_with_fund_size(clock):
    small = IdleEngine(clock=clock, saved={"fund_size": 0})
    half = IdleEngine(clock=clock, saved={"fund_size": 5_000_000})
    big = IdleEngine(clock=clock, saved={"fund_size": 50_000_000})

    assert small.base_income("Junior") == 1
    assert half.base_income("Junior") == pytest.approx(3.0)
    assert big.base_income("Junior") == 5
    assert big.base_income("Partner") == 300


def test_income_rises_with_tap_boost(engine):
    rates = []
    for _ in range(10):
        rates.append(engine.income_per_second("Associate"))
        engine.tap()
    assert rates == sorted(rates)
    assert rates[0] == 5.0
    assert engine.income_per_second("Associate") == pytest.approx(6.0)


def test_income_rises_with_active_boost(engine):
    before = engine.income_per_second("Associate")
    assert engine.activate_boost("double-income").ok
    assert engine.income_per_second("Associate") == before * 2


def test_tick_accumulates_and_marks_activity(engine, clock):
    clock.advance(seconds=30)
    assert engine.tick("Associate") == 5.0
    assert engine.tick("Associate") == 5.0
    assert engine.total_earned == 10.0
    assert engine.last_active_ms == clock()


def test_cooldown_boundary(engine, clock):
    assert engine.activate_boost("double-income").ok
    used = clock()
    cooldown = config.REWARDED_BOOSTS[0]["cooldown_ms"]

    clock.now_ms = used + cooldown - 1
    result = engine.activate_boost("double-income")
    assert not result.ok
    assert result.error == BOOST_COOLDOWN
    assert engine.boosts["double-income"].last_used_at == used

    clock.now_ms = used + cooldown
    assert engine.activate_boost("double-income").ok
    assert engine.boosts["double-income"].activated_at == clock()


def test_unknown_boost(engine):
    result = engine.activate_boost("free-money")
    assert not result.ok
    assert result.error == UNKNOWN_BOOST


def test_boost_window_and_cooldown_queries(engine, clock):
    engine.activate_boost("double-income")
    clock.advance(ms=10 * 60 * 1000)
    assert engine.is_boost_active("double-income")
    assert engine.boost_time_remaining("double-income") == 20 * 60 * 1000
    assert engine.boost_cooldown_remaining("double-income") == 50 * 60 * 1000

    clock.advance(ms=20 * 60 * 1000)
    assert not engine.is_boost_active("double-income")
    assert engine.active_multiplier() == 1.0
    assert engine.is_boost_on_cooldown("double-income")


def test_reactivation_resets_window_without_stacking(engine, clock):
    engine.activate_boost("double-income")
    clock.advance(ms=HOUR_MS)
    engine.activate_boost("double-income")
    assert engine.active_multiplier() == 2.0
    assert engine.boost_time_remaining("double-income") == 30 * 60 * 1000


def test_offline_one_hour(clock):
    engine = IdleEngine(clock=clock, saved={"fund_size": 0, "last_active_ms": clock() - HOUR_MS})
    assert engine.compute_offline_earnings("Associate") == 18000.0
    assert engine.pending_offline == 18000.0
    assert engine.show_welcome_back
    assert engine.total_earned == 0.0


def test_offline_is_capped(clock):
    engine = IdleEngine(clock=clock, saved={"fund_size": 0, "last_active_ms": clock() - 10 * HOUR_MS})
    assert engine.compute_offline_earnings("Associate") == 5 * 28800


def test_short_absence_pays_nothing(engine, clock):
    clock.advance(seconds=59)
    assert engine.compute_offline_earnings("Associate") == 0.0
    assert engine.pending_offline == 0.0
    assert not engine.show_welcome_back


def test_clock_skew_pays_nothing(clock):
    engine = IdleEngine(clock=clock, saved={"fund_size": 0, "last_active_ms": clock() + HOUR_MS})
    assert engine.compute_offline_earnings("Associate") == 0.0
    assert engine.pending_offline == 0.0


def test_recompute_overwrites_instead_of_accumulating(clock):
    engine = IdleEngine(clock=clock, saved={"fund_size": 0, "last_active_ms": clock() - HOUR_MS})
    engine.compute_offline_earnings("Associate")
    engine.compute_offline_earnings("Associate")
    assert engine.pending_offline == 18000.0


def test_pending_survives_a_short_recompute(clock):
    engine = IdleEngine(clock=clock, saved={"fund_size": 0, "last_active_ms": clock() - HOUR_MS})
    engine.compute_offline_earnings("Associate")
    engine.touch()
    clock.advance(seconds=5)
    assert engine.compute_offline_earnings("Associate") == 0.0
    assert engine.pending_offline == 18000.0
    assert engine.show_welcome_back


def test_collect_moves_pending_into_total(clock):
    engine = IdleEngine(clock=clock, saved={"fund_size": 0, "last_active_ms": clock() - HOUR_MS})
    engine.compute_offline_earnings("Associate")
    clock.advance(seconds=3)

    assert engine.collect_offline_earnings() == 18000.0
    assert engine.total_earned == 18000.0
    assert engine.pending_offline == 0.0
    assert not engine.show_welcome_back
    assert engine.last_active_ms == clock()


def test_offline_uses_boosts_running_when_player_left(engine, clock):
    engine.activate_boost("double-income")
    clock.advance(ms=5 * 60 * 1000)
    engine.touch()
    clock.advance(ms=HOUR_MS)
    # the boost expired while away, it still counts because it was on at exit
    assert engine.compute_offline_earnings("Associate") == 5 * 3600 * 2


def test_offline_ignores_boosts_started_after_return(engine, clock):
    clock.advance(ms=HOUR_MS)
    engine.activate_boost("double-income")
    assert engine.compute_offline_earnings("Associate") == 5 * 3600


def test_instant_collect_is_a_cooldown_only_boost(engine):
    result = engine.activate_boost(config.INSTANT_COLLECT_ID)
    assert result.ok
    assert result.amount == 0.0
    assert engine.pending_offline == 0.0
    assert engine.active_multiplier() == 1.0
    assert engine.activate_boost(config.INSTANT_COLLECT_ID).error == BOOST_COOLDOWN


@pytest.mark.parametrize("boosts", [
    ["double-income"],
    "double-income",
    [{"id": "double-income", "activated_at": "yesterday"}],
    [{"id": "double-income", "last_used_at": [1]}],
])
def test_malformed_boost_stamps_are_rejected(clock, boosts):
    with pytest.raises((TypeError, ValueError)):
        IdleEngine(clock=clock, saved={"boosts": boosts})


def test_idle_state_must_be_an_object(clock):
    with pytest.raises(ValueError):
        IdleEngine(clock=clock, saved=["x"])


def test_trading_performance_moves_fund_size(clock):
    engine = IdleEngine(clock=clock, saved={"fund_size": 100000})
    engine.apply_trading_performance(0.02, 200000)
    assert engine.fund_size == 100000 + 200000 * 0.02 * 0.01

    engine.apply_trading_performance(-0.02, 200000)
    assert engine.fund_size == 100040.0

    engine.apply_trading_performance(-0.5, 200000)
    assert engine.fund_size == pytest.approx(100040.0 * (1 - 0.5 * 0.005), abs=0.01)


def test_fund_size_never_drops_below_floor(clock):
    engine = IdleEngine(clock=clock, saved={"fund_size": config.MIN_FUND_SIZE})
    engine.apply_trading_performance(-0.9, 0)
    assert engine.fund_size == config.MIN_FUND_SIZE


def test_snapshot_restores_boost_timers(engine, clock):
    engine.activate_boost("double-income")
    clock.advance(seconds=90)
    copy = IdleEngine(clock=clock, saved=engine.snapshot())

    assert copy.boost_time_remaining("double-income") == engine.boost_time_remaining("double-income")
    assert copy.boost_cooldown_remaining("double-income") == engine.boost_cooldown_remaining("double-income")
    assert copy.income_per_second("Associate") == engine.income_per_second("Associate")
