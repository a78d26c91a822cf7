from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Tuple

from hardware.drivetrains import is_drivetrain_id
from hardware.hardware_config import HardwareConfig, validate_and_build_hardware_config

from .graph import RoutineGraph
from .node_models import RoutineEdge, RoutineNode
from .node_validate import build_node

WORKFLOW_VERSION = 1

# Motor config written by the project creation form: role -> motor name
_LEGACY_ROLE_ORDER = ("fl", "fr", "bl", "br")
_HARDWARE_KEYS = ("motors", "servos", "i2cDevices", "expansionHub")


def graph_to_workflow_data(graph: RoutineGraph) -> Dict[str, Any]:
    data = graph.to_dict()
    return {"version": WORKFLOW_VERSION, "nodes": data["nodes"], "edges": data["edges"]}


def _edge_from_raw(raw: Any, idx: int) -> Tuple[bool, Optional[RoutineEdge], str]:
    if not isinstance(raw, Mapping):
        return False, None, f"edges[{idx}] must be an object"
    source = str(raw.get("source", "") or "").strip()
    target = str(raw.get("target", "") or "").strip()
    if not source or not target:
        return False, None, f"edges[{idx}] requires source and target"
    handle = raw.get("sourceHandle", None)
    handle = None if handle in (None, "") else str(handle)
    edge_id = str(raw.get("id", "") or "").strip()
    if not edge_id:
        edge_id = f"e{source}-{handle}-{target}" if handle else f"e{source}-{target}"
    return True, RoutineEdge(id=edge_id, source=source, target=target, source_handle=handle), "ok"


def graph_from_workflow_data(
    raw: Any,
    hardware: Optional[HardwareConfig] = None,
    drivetrain_id: Optional[str] = None,
) -> Tuple[bool, Optional[RoutineGraph], str]:
    """
    Rebuild a graph from stored workflow data. An empty object (what a new
    project starts with) gives an empty graph.
    """
    if raw is None:
        raw = {}
    if not isinstance(raw, Mapping):
        return False, None, "workflowData must be an object"

    version = raw.get("version", WORKFLOW_VERSION)
    if version != WORKFLOW_VERSION:
        return False, None, f"workflowData version {version!r} is not supported"

    raw_nodes = raw.get("nodes", [])
    raw_edges = raw.get("edges", [])
    if not isinstance(raw_nodes, list) or not isinstance(raw_edges, list):
        return False, None, "workflowData.nodes and workflowData.edges must be arrays"

    nodes: List[RoutineNode] = []
    for i, rn in enumerate(raw_nodes):
        ok, node, msg = build_node(rn)
        if not ok or node is None:
            return False, None, f"nodes[{i}]: {msg}"
        nodes.append(node)

    edges: List[RoutineEdge] = []
    for i, re_ in enumerate(raw_edges):
        ok, edge, msg = _edge_from_raw(re_, i)
        if not ok or edge is None:
            return False, None, msg
        edges.append(edge)

    if drivetrain_id is not None and not is_drivetrain_id(drivetrain_id):
        return False, None, f"drivetrain '{drivetrain_id}' is unknown"

    graph = RoutineGraph()
    ok, _, msg = graph.load(nodes, edges, hardware=hardware, drivetrain_id=drivetrain_id)
    if not ok:
        return False, None, msg
    return True, graph, "ok"


def hardware_config_to_motor_config(config: Optional[HardwareConfig], drivetrain_id: Optional[str] = None) -> Dict[str, Any]:
    """A routine with no wiring yet stores only the version and drivetrain."""
    out: Dict[str, Any] = {"version": WORKFLOW_VERSION, "drivetrain": drivetrain_id}
    if config is not None:
        out.update(config.to_dict())
    return out


def _is_legacy_motor_config(raw: Mapping[str, Any]) -> bool:
    return bool(raw) and set(raw.keys()) <= set(_LEGACY_ROLE_ORDER)


def hardware_config_from_motor_config(
    raw: Any,
) -> Tuple[bool, Optional[Tuple[Optional[HardwareConfig], Optional[str]]], str]:
    """
    Returns (ok, (config, drivetrain_id), msg); config is None when nothing
    is wired. Also reads the older
    {"fl": name, "fr": name, "bl": name, "br": name} form, wiring the four
    drive motors to ports 0..3 in that order.
    """
    if raw is None:
        raw = {}
    if not isinstance(raw, Mapping):
        return False, None, "motorConfig must be an object"

    if _is_legacy_motor_config(raw):
        motors = []
        for port, role in enumerate(_LEGACY_ROLE_ORDER):
            name = str(raw.get(role, "") or "").strip()
            if name:
                motors.append({"id": role, "name": name, "port": port})
        ok, cfg, msg = validate_and_build_hardware_config({"motors": motors})
        if not ok or cfg is None:
            return False, None, msg
        return True, (cfg, None), "ok"

    version = raw.get("version", WORKFLOW_VERSION)
    if version != WORKFLOW_VERSION:
        return False, None, f"motorConfig version {version!r} is not supported"

    drivetrain_id = raw.get("drivetrain", None)
    if drivetrain_id is not None and not is_drivetrain_id(drivetrain_id):
        return False, None, f"drivetrain '{drivetrain_id}' is unknown"

    body = {k: v for k, v in raw.items() if k not in ("version", "drivetrain")}
    if not body:
        return True, (None, drivetrain_id), "ok"
    unknown = sorted(set(body) - set(_HARDWARE_KEYS))
    if unknown:
        return False, None, f"motorConfig has unknown keys: {', '.join(unknown)}"
    ok, cfg, msg = validate_and_build_hardware_config(body)
    if not ok or cfg is None:
        return False, None, msg
    return True, (cfg, drivetrain_id), "ok"


def build_project_payload(
    graph: RoutineGraph,
    *,
    name: str,
    project_id: Optional[str] = None,
    user_id: Optional[str] = None,
    project_hash: Optional[str] = None,
    template_type: Optional[str] = None,
    created_at: Optional[str] = None,
    updated_at: Optional[str] = None,
) -> Dict[str, Any]:
    """Project record handed to the project store. Store-owned fields pass through untouched."""
    now = datetime.now(timezone.utc).isoformat()
    return {
        "id": project_id,
        "userId": user_id,
        "projectHash": project_hash,
        "name": str(name),
        "templateType": template_type,
        "motorConfig": hardware_config_to_motor_config(graph.hardware, graph.drivetrain_id),
        "workflowData": graph_to_workflow_data(graph),
        "createdAt": created_at or now,
        "updatedAt": updated_at or now,
    }


def graph_from_project_payload(raw: Any) -> Tuple[bool, Optional[RoutineGraph], str]:
    if not isinstance(raw, Mapping):
        return False, None, "project payload must be an object"
    ok, hw, msg = hardware_config_from_motor_config(raw.get("motorConfig", None))
    if not ok or hw is None:
        return False, None, f"motorConfig: {msg}"
    config, drivetrain_id = hw
    ok, graph, msg = graph_from_workflow_data(raw.get("workflowData", None), config, drivetrain_id)
    if not ok:
        return False, None, f"workflowData: {msg}"
    return True, graph, "ok"
