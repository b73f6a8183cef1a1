"""
WebSocket transport tests — message dispatch and frame serialization.
The background simulation loop is not started (no lifespan context).
"""

import sys
import os
import json
import numpy as np
import pytest
from fastapi.testclient import TestClient

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import server
from controller import CurveController
from curve import CURVE_STEPS


@pytest.fixture
def client(monkeypatch):
    monkeypatch.setattr(server, "ctrl", CurveController(rng=np.random.default_rng(0)))
    monkeypatch.setattr(server, "clients", [])
    return TestClient(server.app)


class TestWebSocket:

    def test_init_message(self, client):
        with client.websocket_connect("/ws") as ws:
            init = ws.receive_json()
        assert init["type"] == "init"
        assert (init["width"], init["height"]) == (800.0, 600.0)
        assert "stiff" in init["presets"]

    def test_preset_then_params(self, client):
        with client.websocket_connect("/ws") as ws:
            ws.receive_json()
            ws.send_json({"cmd": "preset", "name": "stiff"})
            ws.send_json({"cmd": "get_params"})
            reply = ws.receive_json()
        values = {d["attr"]: d["value"] for d in reply["data"]}
        assert reply["type"] == "params"
        assert values == {"stiffness": 0.1, "damping": 0.95, "mouse_influence": 0.3}

    def test_set_param_clamped_to_slider_range(self, client):
        with client.websocket_connect("/ws") as ws:
            ws.receive_json()
            ws.send_json({"cmd": "set_param", "attr": "stiffness", "value": 5.0})
            ws.send_json({"cmd": "get_state"})
            reply = ws.receive_json()
        state = json.loads(reply["data"])
        assert state["params"]["stiffness"] == 0.20

    def test_adjust_param(self, client):
        with client.websocket_connect("/ws") as ws:
            ws.receive_json()
            ws.send_json({"cmd": "adjust_param", "index": 1, "direction": 1})
            reply = ws.receive_json()
        assert reply == {"type": "param_update", "index": 1, "value": pytest.approx(0.91)}

    def test_malformed_message_skipped(self, client):
        with client.websocket_connect("/ws") as ws:
            ws.receive_json()
            ws.send_text("{not json")
            ws.send_json({"cmd": "get_params"})
            assert ws.receive_json()["type"] == "params"

    @pytest.mark.parametrize("payload", [
        "[1, 2]",
        '"just a string"',
        '{"cmd": "set_param", "attr": "damping", "value": "abc"}',
        '{"cmd": "pointer_move", "x": null, "y": 10}',
        '{"cmd": "set_effect", "name": ["glow"], "enabled": true}',
    ])
    def test_bad_message_keeps_connection_open(self, client, payload):
        with client.websocket_connect("/ws") as ws:
            ws.receive_json()
            ws.send_text(payload)
            ws.send_json({"cmd": "get_params"})
            reply = ws.receive_json()
        values = {d["attr"]: d["value"] for d in reply["data"]}
        assert reply["type"] == "params"
        assert values["damping"] == 0.90

    def test_bad_message_keeps_held_point(self, client):
        ctrl = server.ctrl
        x, y = ctrl.points[1].x, ctrl.points[1].y
        with client.websocket_connect("/ws") as ws:
            ws.receive_json()
            ws.send_json({"cmd": "pointer_down", "x": x, "y": y})
            ws.send_json({"cmd": "resize", "width": "wide"})
            ws.send_json({"cmd": "pointer_move", "x": 310.0, "y": 150.0})
            ws.send_json({"cmd": "get_state"})
            state = json.loads(ws.receive_json()["data"])
        assert state["points"]["P1"] == [310.0, 150.0]
        assert (state["width"], state["height"]) == (800.0, 600.0)

    def test_pointer_drag(self, client):
        ctrl = server.ctrl
        x, y = ctrl.points[1].x, ctrl.points[1].y
        with client.websocket_connect("/ws") as ws:
            ws.receive_json()
            ws.send_json({"cmd": "pointer_down", "x": x, "y": y})
            ws.send_json({"cmd": "pointer_move", "x": 300.0, "y": 140.0})
            ws.send_json({"cmd": "get_state"})
            state = json.loads(ws.receive_json()["data"])
        assert state["points"]["P1"] == [300.0, 140.0]
        assert state["particles"] > 0

    def test_reset_and_resize(self, client):
        with client.websocket_connect("/ws") as ws:
            ws.receive_json()
            ws.send_json({"cmd": "resize", "width": 1000, "height": 500})
            ws.send_json({"cmd": "reset"})
            ws.send_json({"cmd": "get_state"})
            state = json.loads(ws.receive_json()["data"])
        assert (state["width"], state["height"]) == (1000.0, 500.0)
        assert [e["type"] for e in server.ctrl.pending_events] == ["resize", "reset"]


class TestHttp:

    def test_state_route(self, client):
        resp = client.get("/state")
        assert resp.status_code == 200
        assert resp.json()["points"]["P0"] == [120.0, 360.0]

    def test_presets_route(self, client):
        data = client.get("/presets").json()
        assert data["light"] == {"stiffness": 0.01, "damping": 0.8, "influence": 2.0}


class TestFrameMessage:

    def test_frame_contents_and_event_drain(self, client):
        server.ctrl.reset()
        frame = json.loads(server._build_frame_message(server.ctrl.tick()))

        assert frame["type"] == "frame"
        assert len(frame["points"]) == 4
        assert len(frame["curve"]) == CURVE_STEPS + 1
        assert len(frame["tangents"]) == 5
        assert len(frame["particles"]) == 30
        assert frame["events"] == [{"type": "reset"}]
        assert server.ctrl.pending_events == []

    def test_particles_hidden_when_disabled(self, client):
        server.ctrl.reset()
        server.ctrl.set_particles_enabled(False)
        frame = json.loads(server._build_frame_message(server.ctrl.tick()))
        assert frame["particles"] == []

    def test_particle_entries_use_rounded_wire_form(self, client):
        server.ctrl.reset()
        snap = server.ctrl.tick()
        frame = json.loads(server._build_frame_message(snap))
        assert frame["particles"][0] == snap.particles[0].as_dict()
        assert set(frame["particles"][0]) == {"x", "y", "life", "size", "color", "rot"}
        assert frame["params"] == dict(snap.params)
