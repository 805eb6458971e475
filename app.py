import logging
import threading
import time
from typing import Optional

from flask import Flask, jsonify, request

import config
from desk import Desk
from models import INVALID_QUANTITY, INVALID_SIDE, UNKNOWN_INSTRUMENT, CommandResult
from storage import JsonFileStorage

logger = logging.getLogger(__name__)

app = Flask(__name__)
app.config["IDLE_TICKER"] = True

# -------------------- Shared state --------------------
state_lock = threading.RLock()
desk: Optional[Desk] = None


def init_desk(new_desk: Optional[Desk] = None) -> Desk:
    """Installs the desk the routes talk to. Offline earnings are settled once on start."""
    global desk
    with state_lock:
        desk = new_desk or Desk(storage=JsonFileStorage(config.SAVE_PATH))
        desk.resume()
    return desk


def get_desk() -> Desk:
    if desk is None:
        return init_desk()
    return desk


# -------------------- Background thread (Gunicorn/Render safe) --------------------
tick_thread_started = False
tick_thread_lock = threading.Lock()


def background_loop():
    while True:
        time.sleep(config.TICK_SECONDS)
        with state_lock:
            if desk is not None:
                desk.idle_tick()


def ensure_tick_thread():
    global tick_thread_started
    if tick_thread_started or not app.config["IDLE_TICKER"]:
        return
    with tick_thread_lock:
        if tick_thread_started:
            return
        threading.Thread(target=background_loop, daemon=True).start()
        tick_thread_started = True


@app.before_request
def _start_bg_once():
    get_desk()
    ensure_tick_thread()


# -------------------- Helpers --------------------
def reply(result: CommandResult, **extra):
    body = result.to_dict()
    body.update(extra)
    return jsonify(body), (200 if result.ok else 400)


def read_json() -> dict:
    return request.get_json(force=True, silent=True) or {}


def check_admin(password: str) -> bool:
    return password == config.ADMIN_PASSWORD


# -------------------- Market APIs --------------------
@app.get("/api/state")
def api_state():
    with state_lock:
        return jsonify(get_desk().state())


@app.post("/api/trade")
def api_trade():
    data = read_json()
    ticker = (data.get("ticker") or "").strip().upper()
    side = (data.get("side") or "").strip().upper()
    try:
        qty = int(data.get("qty") or 0)
    except (TypeError, ValueError):
        return reply(CommandResult.failure(INVALID_QUANTITY))

    if side not in ("BUY", "SELL"):
        return reply(CommandResult.failure(INVALID_SIDE))
    if not ticker:
        return reply(CommandResult.failure(UNKNOWN_INSTRUMENT))

    with state_lock:
        d = get_desk()
        result = d.buy(ticker, qty) if side == "BUY" else d.sell(ticker, qty)
        return reply(result, cash=d.ledger.cash)


@app.post("/api/client")
def api_new_client():
    with state_lock:
        d = get_desk()
        return reply(d.use_new_client(), cash=d.ledger.cash)


@app.post("/api/day/close")
def api_close_day():
    with state_lock:
        d = get_desk()
        result = d.close_day()
        report = d.market.last_report.to_dict() if result.ok else None
        return reply(result, report=report)


@app.post("/api/day/next")
def api_next_day():
    with state_lock:
        d = get_desk()
        return reply(d.start_next_day(), day=d.session.day)


# -------------------- Idle APIs --------------------
@app.post("/api/idle/tap")
def api_tap():
    with state_lock:
        return reply(get_desk().tap())


@app.post("/api/idle/boost")
def api_boost():
    boost_id = (read_json().get("boost_id") or "").strip()
    with state_lock:
        d = get_desk()
        return reply(d.activate_boost(boost_id), boosts=d.boosts())


@app.post("/api/idle/collect")
def api_collect():
    with state_lock:
        d = get_desk()
        return reply(d.collect_offline_earnings(), cash=d.ledger.cash)


@app.post("/api/idle/suspend")
def api_suspend():
    with state_lock:
        get_desk().suspend()
    return jsonify({"ok": True})


@app.post("/api/idle/resume")
def api_resume():
    with state_lock:
        d = get_desk()
        amount = d.resume()
        return jsonify({"ok": True, "pending_offline": amount, "show_welcome_back": d.idle.show_welcome_back})


# -------- Admin APIs --------
@app.post("/api/admin/reset")
def api_admin_reset():
    data = read_json()
    if not check_admin(data.get("password") or ""):
        return jsonify({"ok": False, "error": "Unauthorized"}), 401
    with state_lock:
        get_desk().reset()
    logger.info("admin_reset")
    return jsonify({"ok": True})


@app.post("/api/admin/tutorial")
def api_admin_tutorial():
    data = read_json()
    if not check_admin(data.get("password") or ""):
        return jsonify({"ok": False, "error": "Unauthorized"}), 401
    with state_lock:
        d = get_desk()
        if data.get("enabled", True):
            d.start_tutorial(data.get("ticker") or config.TUTORIAL_TICKER)
        else:
            d.end_tutorial()
        return jsonify({"ok": True, "tutorial": d.tutorial_ticker})


if __name__ == "__main__":
    if not logging.getLogger().handlers:
        logging.basicConfig(
            level=getattr(logging, config.LOG_LEVEL.upper(), logging.INFO),
            format="%(asctime)s %(name)s [%(levelname)s] %(message)s",
        )
    init_desk()
    app.run(host=config.HOST, port=config.PORT, debug=False, threaded=True)
