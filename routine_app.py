from __future__ import annotations

import logging
import math
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from flask import Flask, jsonify, request, send_from_directory

from app_shared import settings
from app_shared.routine_common import summarize_graph, summarize_track
from hardware import DRIVETRAIN_DEFINITIONS, build_default_hardware_config, validate_and_build_hardware_config
from path_core import KeyframeTrack, OrientedPoint, build_path_preview, point_from_raw
from routine_core import (
    RoutineGraph,
    build_project_payload,
    estimate_routine_motion,
    graph_from_project_payload,
)

logger = logging.getLogger(__name__)

BASE_DIR = Path(__file__).resolve().parent
STATIC_DIR = BASE_DIR / "static"
EDITOR_PAGE = "routine_editor.html"


class RoutineState:
    def __init__(self) -> None:
        self.graph = RoutineGraph()
        self.project: Dict[str, Any] = {"name": "Untitled routine"}
        self.last_track: Optional[KeyframeTrack] = None
        self._lock = threading.Lock()

    def current_graph(self) -> RoutineGraph:
        with self._lock:
            return self.graph

    def status(self) -> Dict[str, Any]:
        with self._lock:
            graph = self.graph
            project = dict(self.project)
            track = self.last_track
        return {
            "project_name": project.get("name"),
            "graph": summarize_graph(graph),
            "last_preview": summarize_track(track) if track is not None else None,
        }

    def set_hardware(self, raw: Any) -> Tuple[bool, Optional[Dict[str, Any]], str]:
        graph = self.current_graph()
        if raw is None:
            return graph.set_hardware(None)
        ok, cfg, msg = validate_and_build_hardware_config(raw)
        if not ok or cfg is None:
            return False, None, msg
        return graph.set_hardware(cfg)

    def set_drivetrain(self, drivetrain_id: Any, *, apply_defaults: bool) -> Tuple[bool, Optional[Dict[str, Any]], str]:
        graph = self.current_graph()
        if drivetrain_id is not None:
            drivetrain_id = str(drivetrain_id)
        ok, payload, msg = graph.set_drivetrain(drivetrain_id)
        if not ok:
            return False, None, msg
        if apply_defaults and drivetrain_id is not None and graph.hardware is None:
            ok, _, msg = graph.set_hardware(build_default_hardware_config(drivetrain_id))
            if not ok:
                return False, None, msg
        return True, payload, "ok"

    def preview_keyframes(self, data: Dict[str, Any]) -> Tuple[bool, Optional[KeyframeTrack], str]:
        try:
            baseline = [point_from_raw(p) for p in data.get("baseline", [])]
            optimized = [point_from_raw(p) for p in data.get("optimized", [])]
        except (KeyError, TypeError, ValueError):
            return False, None, "baseline/optimized must be arrays of points with finite x and y"
        if len(optimized) != 4:
            return False, None, "optimized must hold exactly 4 control points"

        kwargs: Dict[str, Any] = {"handoff_pause": settings.HANDOFF_PAUSE}
        for key, name, lo, hi in (
            ("baselineSamples", "baseline_samples", 2.0, float(settings.MAX_PREVIEW_SAMPLES)),
            ("optimizedSamples", "optimized_samples", 2.0, float(settings.MAX_PREVIEW_SAMPLES)),
            ("baselineFraction", "baseline_fraction", 0.0, 1.0),
            ("revealStart", "reveal_start", 0.0, 1.0),
            ("handoffPause", "handoff_pause", 0.0, 1.0),
        ):
            if key not in data:
                continue
            try:
                value = float(data[key])
            except (OverflowError, TypeError, ValueError):
                return False, None, f"{key} must be numeric"
            if not math.isfinite(value):
                return False, None, f"{key} must be finite"
            if not (lo <= value <= hi):
                return False, None, f"{key} must be within [{lo:g}, {hi:g}]"
            kwargs[name] = value

        track = build_path_preview(baseline, optimized, **kwargs)
        with self._lock:
            self.last_track = track
        return True, track, "ok"

    def preview_routine(self, start: Optional[OrientedPoint]) -> Dict[str, Any]:
        motion = estimate_routine_motion(
            self.current_graph(),
            start,
            field_size=settings.FIELD_SIZE_IN,
            robot_half_size=settings.ROBOT_HALF_SIZE_IN,
            max_velocity=settings.MAX_VELOCITY,
            turn_rate=settings.TURN_RATE_DPS,
        )
        return motion.to_dict()

    def workflow(self) -> Dict[str, Any]:
        with self._lock:
            graph = self.graph
            project = dict(self.project)
        return build_project_payload(
            graph,
            name=str(project.get("name", "")),
            project_id=project.get("id"),
            user_id=project.get("userId"),
            project_hash=project.get("projectHash"),
            template_type=project.get("templateType"),
            created_at=project.get("createdAt"),
            updated_at=project.get("updatedAt"),
        )

    def load_workflow(self, data: Dict[str, Any]) -> Tuple[bool, str]:
        ok, graph, msg = graph_from_project_payload(data)
        if not ok or graph is None:
            return False, msg
        with self._lock:
            self.graph = graph
            self.project = {
                k: data.get(k)
                for k in ("id", "userId", "projectHash", "name", "templateType", "createdAt", "updatedAt")
                if data.get(k) is not None
            }
            self.project.setdefault("name", "Untitled routine")
            self.last_track = None
        logger.info("loaded workflow '%s' (%d nodes)", self.project["name"], len(graph.nodes()))
        return True, "ok"


app = Flask(__name__)
state = RoutineState()


def _json_body() -> Optional[Dict[str, Any]]:
    data = request.get_json(force=True, silent=True)
    return data if isinstance(data, dict) else None


def _bad_body():
    return jsonify({"ok": False, "error": "request body must be a JSON object"}), 400


@app.get("/")
def routine_index():
    if STATIC_DIR.exists() and (STATIC_DIR / EDITOR_PAGE).exists():
        return send_from_directory(str(STATIC_DIR), EDITOR_PAGE)
    return jsonify({"message": "routine app running (UI not installed yet)", "status": state.status()})


@app.get("/api/status")
def api_status():
    return jsonify(state.status())


@app.get("/api/graph")
def api_graph_get():
    graph = state.current_graph()
    ok, msg = graph.validate_structure()
    return jsonify({"ok": True, "graph": graph.to_dict(), "valid": ok, "error": None if ok else msg})


@app.post("/api/graph/nodes")
def api_graph_nodes_post():
    data = _json_body()
    if data is None:
        return _bad_body()
    node_raw = data.get("node", None)
    if not isinstance(node_raw, dict):
        return jsonify({"ok": False, "error": "node must be an object"}), 400
    ok, node, msg = state.current_graph().add_node(
        node_raw,
        connect_from=data.get("connectFrom", None),
        source_handle=data.get("sourceHandle", None),
    )
    code = 200 if ok else 400
    return jsonify({"ok": ok, "node": node, "error": None if ok else msg}), code


@app.patch("/api/graph/nodes/<node_id>")
def api_graph_nodes_patch(node_id: str):
    data = _json_body()
    if data is None:
        return _bad_body()
    graph = state.current_graph()
    if not graph.has_node(node_id):
        return jsonify({"ok": False, "node": None, "error": "node not found"}), 404

    node: Any = None
    if "params" in data:
        params = data["params"]
        if not isinstance(params, dict):
            return jsonify({"ok": False, "error": "params must be an object"}), 400
        ok, node, msg = graph.update_node_params(node_id, params)
        if not ok:
            return jsonify({"ok": False, "node": None, "error": msg}), 400
    if "position" in data:
        pos = data["position"]
        if not isinstance(pos, dict):
            return jsonify({"ok": False, "error": "position must be an object"}), 400
        ok, node, msg = graph.move_node(node_id, pos.get("x", None), pos.get("y", None))
        if not ok:
            return jsonify({"ok": False, "node": None, "error": msg}), 400
    if node is None:
        return jsonify({"ok": False, "error": "nothing to update (expected params and/or position)"}), 400
    return jsonify({"ok": True, "node": node, "error": None})


@app.delete("/api/graph/nodes/<node_id>")
def api_graph_nodes_delete(node_id: str):
    graph = state.current_graph()
    if not graph.has_node(node_id):
        return jsonify({"ok": False, "error": "node not found"}), 404
    ok, removed, msg = graph.delete_node(node_id)
    code = 200 if ok else 400
    return jsonify({"ok": ok, "removed": removed, "error": None if ok else msg}), code


@app.post("/api/graph/edges")
def api_graph_edges_post():
    data = _json_body()
    if data is None:
        return _bad_body()
    source = str(data.get("source", "") or "")
    target = str(data.get("target", "") or "")
    graph = state.current_graph()
    if not graph.has_node(source) or not graph.has_node(target):
        return jsonify({"ok": False, "edge": None, "error": "source/target node not found"}), 404
    ok, edge, msg = graph.add_edge(source, target, data.get("sourceHandle", None))
    code = 200 if ok else 400
    return jsonify({"ok": ok, "edge": edge, "error": None if ok else msg}), code


@app.delete("/api/graph/edges/<edge_id>")
def api_graph_edges_delete(edge_id: str):
    graph = state.current_graph()
    if not graph.has_edge(edge_id):
        return jsonify({"ok": False, "error": "edge not found"}), 404
    ok, _, msg = graph.delete_edge(edge_id)
    code = 200 if ok else 400
    return jsonify({"ok": ok, "error": None if ok else msg}), code


@app.post("/api/graph/edits")
def api_graph_edits():
    data = _json_body()
    if data is None:
        return _bad_body()
    edits = data.get("edits", None)
    if not isinstance(edits, list):
        return jsonify({"ok": False, "error": "edits must be an array"}), 400
    ok, graph, msg = state.current_graph().apply_edits(edits)
    code = 200 if ok else 400
    return jsonify({"ok": ok, "graph": graph, "error": None if ok else msg}), code


@app.get("/api/hardware")
def api_hardware_get():
    graph = state.current_graph()
    hw = graph.hardware
    return jsonify({"ok": True, "hardware": None if hw is None else hw.to_dict(), "drivetrain": graph.drivetrain_id})


@app.put("/api/hardware")
def api_hardware_put():
    data = _json_body()
    if data is None:
        return _bad_body()
    ok, hw, msg = state.set_hardware(data.get("hardware", None))
    code = 200 if ok else 400
    return jsonify({"ok": ok, "hardware": hw, "error": None if ok else msg}), code


@app.get("/api/drivetrains")
def api_drivetrains():
    items: List[Dict[str, Any]] = [d.to_dict() for d in DRIVETRAIN_DEFINITIONS.values()]
    return jsonify({"ok": True, "drivetrains": items})


@app.put("/api/drivetrain")
def api_drivetrain_put():
    data = _json_body()
    if data is None:
        return _bad_body()
    ok, payload, msg = state.set_drivetrain(
        data.get("drivetrain", None),
        apply_defaults=bool(data.get("applyDefaultWiring", False)),
    )
    code = 200 if ok else 400
    return jsonify({"ok": ok, "drivetrain": None if payload is None else payload["drivetrain"], "error": None if ok else msg}), code


@app.post("/api/preview/keyframes")
def api_preview_keyframes():
    data = _json_body()
    if data is None:
        return _bad_body()
    ok, track, msg = state.preview_keyframes(data)
    if not ok or track is None:
        return jsonify({"ok": False, "error": msg}), 400
    out = track.to_dict()
    out.update({"ok": True, "summary": summarize_track(track), "error": None})
    return jsonify(out)


@app.get("/api/preview/routine")
def api_preview_routine():
    start: Optional[OrientedPoint] = None
    if "x" in request.args or "y" in request.args:
        try:
            p = point_from_raw({"x": request.args.get("x"), "y": request.args.get("y")})
            heading = float(request.args.get("heading", 0.0))
        except (KeyError, TypeError, ValueError):
            return jsonify({"ok": False, "error": "x/y/heading must be finite numbers"}), 400
        start = OrientedPoint(p.x, p.y, heading)
    out = state.preview_routine(start)
    out.update({"ok": True, "error": None})
    return jsonify(out)


@app.get("/api/workflow")
def api_workflow_get():
    return jsonify({"ok": True, "project": state.workflow(), "error": None})


@app.put("/api/workflow")
def api_workflow_put():
    data = _json_body()
    if data is None:
        return _bad_body()
    project = data.get("project", None)
    if not isinstance(project, dict):
        return jsonify({"ok": False, "error": "project must be an object"}), 400
    ok, msg = state.load_workflow(project)
    code = 200 if ok else 400
    return jsonify({"ok": ok, "status": state.status(), "error": None if ok else msg}), code


if __name__ == "__main__":
    settings.configure_logging()
    app.run(host=settings.HOST, port=settings.PORT, debug=False)
