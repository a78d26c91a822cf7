from __future__ import annotations

from typing import Any, Dict

from hardware.hardware_config import validate_drivetrain_wiring
from path_core.keyframes import KeyframeTrack
from routine_core.graph import RoutineGraph
from routine_core.node_models import node_category


def summarize_track(track: KeyframeTrack) -> Dict[str, Any]:
    return {
        "num_frames": len(track),
        "visible_frames": sum(1 for o in track.opacity if o > 0.0),
        "empty": track.is_empty(),
        "start_time": track.times[0] if track.times else 0.0,
        "end_time": track.times[-1] if track.times else 0.0,
    }


def summarize_graph(graph: RoutineGraph) -> Dict[str, Any]:
    nodes = graph.nodes()
    by_category: Dict[str, int] = {}
    for n in nodes:
        cat = node_category(n.type)
        by_category[cat] = by_category.get(cat, 0) + 1
    entry = graph.entry_node()
    ok, msg = graph.validate_structure()

    # wiring is only judged once both a drivetrain and a hardware config are set
    wiring_ok: Any = None
    wiring_msg = "no drivetrain or hardware set"
    if graph.drivetrain_id is not None and graph.hardware is not None:
        wiring_ok, wiring_msg = validate_drivetrain_wiring(graph.drivetrain_id, graph.hardware)

    return {
        "num_nodes": len(nodes),
        "num_edges": len(graph.edges()),
        "nodes_by_category": by_category,
        "entry_node": None if entry is None else entry.id,
        "drivetrain": graph.drivetrain_id,
        "has_hardware": graph.hardware is not None,
        "wiring_valid": wiring_ok,
        "wiring_message": wiring_msg,
        "valid": ok,
        "validation_message": msg,
    }
