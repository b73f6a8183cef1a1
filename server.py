"""
Curve Web Server — Layer 3 transport (FastAPI + WebSocket)

Runs the simulation clock at ~60 fps and streams frames to browser
renderers over WebSocket. Pointer and control messages from the client
are applied to the controller between frames.
"""

import asyncio
import json
import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, WebSocket, WebSocketDisconnect

from clock import SimulationClock
from controller import CurveController, FrameSnapshot
import physics as _phys
from presets import PhysicsPreset

logger = logging.getLogger(__name__)

# ── Controller ──────────────────────────────────────────────────────────────

TARGET_FPS = 60

ctrl = CurveController()
clock = SimulationClock(ctrl, target_fps=TARGET_FPS)


# ── Lifespan (startup/shutdown) ─────────────────────────────────────────────

@asynccontextmanager
async def lifespan(app: FastAPI):
    task = asyncio.create_task(sim_loop())
    yield
    task.cancel()


app = FastAPI(lifespan=lifespan)

clients: list[WebSocket] = []

PARAM_LIMITS = {attr: (mn, mx) for attr, _label, mn, mx, _step in _phys.PARAM_RANGES}


# ── Async simulation loop ───────────────────────────────────────────────────

async def sim_loop():
    """Main loop: one tick + one broadcast per frame."""
    while True:
        started = time.perf_counter()
        snapshot = clock.step(started)

        if clients:
            frame_msg = _build_frame_message(snapshot)
            dead: list[WebSocket] = []
            for ws in clients:
                try:
                    await ws.send_text(frame_msg)
                except Exception:
                    dead.append(ws)
            for ws in dead:
                if ws in clients:
                    clients.remove(ws)
                    logger.info("[WS] dropped dead client (%d left)", len(clients))

        await asyncio.sleep(clock.sleep_time(started))


def _round_pair(v) -> list:
    return [round(float(v[0]), 2), round(float(v[1]), 2)]


def _build_frame_message(snapshot: FrameSnapshot) -> str:
    """Serialize a snapshot plus queued events into a JSON frame message."""
    tangents = [{"t": t, "pos": _round_pair(pos), "dir": [round(float(d[0]), 4),
                                                          round(float(d[1]), 4)]}
                for t, pos, d in snapshot.tangents()]

    particles = []
    if snapshot.particles_enabled:
        particles = [p.as_dict() for p in snapshot.particles]

    # Drain pending events
    events = list(ctrl.pending_events)
    ctrl.pending_events.clear()

    frame = {
        "type": "frame",
        "tick": snapshot.tick,
        "points": [_round_pair(p) for p in snapshot.points],
        "velocities": [_round_pair(v) for v in snapshot.velocities],
        "curve": [_round_pair(p) for p in snapshot.curve_points()],
        "tangents": tangents,
        "particles": particles,
        "held": snapshot.held,
        "params": dict(snapshot.params),
        "effects": dict(snapshot.effects),
        "events": events,
        "status": ctrl.status_msg,
        "fps": clock.fps,
    }
    return json.dumps(frame, separators=(',', ':'))


def _clamp_param(attr: str, value: float) -> float:
    mn, mx = PARAM_LIMITS[attr]
    return max(mn, min(mx, value))


# ── WebSocket endpoint ──────────────────────────────────────────────────────

@app.websocket("/ws")
async def websocket_endpoint(ws: WebSocket):
    await ws.accept()
    clients.append(ws)
    logger.info("[WS] client connected (%d total)", len(clients))

    await ws.send_text(json.dumps({
        "type": "init",
        "width": ctrl.width,
        "height": ctrl.height,
        "margin": _phys.BOUNDARY_MARGIN,
        "presets": PhysicsPreset.names(),
        "params": ctrl.get_params(),
        "target_fps": TARGET_FPS,
    }))

    try:
        while True:
            data = await ws.receive_text()
            try:
                msg = json.loads(data)
            except json.JSONDecodeError:
                continue

            if not isinstance(msg, dict):
                continue

            try:
                cmd = msg.get("cmd", "")
                if cmd == "pointer_move":
                    ctrl.on_pointer_move(float(msg.get("x", 0.0)), float(msg.get("y", 0.0)))
                elif cmd == "pointer_down":
                    ctrl.on_pointer_down(float(msg.get("x", 0.0)), float(msg.get("y", 0.0)))
                elif cmd == "pointer_up":
                    ctrl.on_pointer_up()
                elif cmd == "pointer_leave":
                    ctrl.on_pointer_leave()
                elif cmd == "touch_start":
                    ctrl.on_touch_start(float(msg.get("x", 0.0)), float(msg.get("y", 0.0)))
                elif cmd == "touch_move":
                    ctrl.on_touch_move(float(msg.get("x", 0.0)), float(msg.get("y", 0.0)))
                elif cmd == "touch_end":
                    ctrl.on_touch_end()
                elif cmd == "set_param":
                    attr = msg.get("attr", "")
                    if attr in PARAM_LIMITS:
                        ctrl.set_param(attr, _clamp_param(attr, float(msg.get("value", 0.0))))
                elif cmd == "adjust_param":
                    idx = int(msg.get("index", 0))
                    direction = int(msg.get("direction", 0))
                    fine = msg.get("fine", False)
                    if 0 <= idx < len(_phys.PARAM_RANGES):
                        attr, label, mn, mx, step = _phys.PARAM_RANGES[idx]
                        s = step / 10.0 if fine else step
                        new_val = _clamp_param(attr, getattr(ctrl.params, attr) + direction * s)
                        ctrl.set_param(attr, new_val)
                        await ws.send_text(json.dumps({
                            "type": "param_update",
                            "index": idx,
                            "value": round(new_val, 6),
                        }))
                elif cmd == "preset":
                    ctrl.apply_preset(str(msg.get("name", "")))
                elif cmd == "reset":
                    ctrl.reset()
                elif cmd == "toggle_physics":
                    ctrl.toggle_physics()
                elif cmd == "set_particles":
                    ctrl.set_particles_enabled(bool(msg.get("enabled", True)))
                elif cmd == "set_effect":
                    name = msg.get("name", "")
                    if name in ctrl.effects:
                        ctrl.set_effect(name, bool(msg.get("enabled", True)))
                elif cmd == "resize":
                    ctrl.resize(float(msg.get("width", ctrl.width)),
                                float(msg.get("height", ctrl.height)))
                elif cmd == "get_state":
                    await ws.send_text(json.dumps({
                        "type": "state_json",
                        "data": ctrl.get_state_json(),
                    }))
                elif cmd == "get_params":
                    await ws.send_text(json.dumps({
                        "type": "params",
                        "data": ctrl.get_params(),
                    }))
            except (TypeError, ValueError) as exc:
                logger.warning("[WS] skipped bad message %r: %s", msg, exc)
    except WebSocketDisconnect:
        pass
    finally:
        if ws in clients:
            clients.remove(ws)
        ctrl.on_pointer_leave()
        logger.info("[WS] client disconnected (%d left)", len(clients))


# ── HTTP routes ─────────────────────────────────────────────────────────────

@app.get("/state")
async def state():
    return ctrl.get_state()


@app.get("/presets")
async def presets():
    return {name: PhysicsPreset.get(name) for name in PhysicsPreset.names()}


# ── Run with uvicorn ────────────────────────────────────────────────────────

if __name__ == "__main__":
    import uvicorn
    from logging_config import setup_logging

    setup_logging()
    uvicorn.run("server:app", host="0.0.0.0", port=8000, reload=False)
