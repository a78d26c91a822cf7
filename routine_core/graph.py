from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Set, Tuple

from hardware.drivetrains import is_drivetrain_id
from hardware.hardware_config import HardwareConfig
from path_core.types import point_from_raw

from .node_models import BRANCH_OUTLETS, CYCLE_MEDIATOR_TYPES, RoutineEdge, RoutineNode
from .node_validate import build_node, build_node_params, validate_node_against

logger = logging.getLogger(__name__)

EditResult = Tuple[bool, Any, str]


@dataclass
class _Draft:
    nodes: Dict[str, RoutineNode] = field(default_factory=dict)
    edges: Dict[str, RoutineEdge] = field(default_factory=dict)
    hardware: Optional[HardwareConfig] = None
    drivetrain_id: Optional[str] = None

    def copy(self) -> "_Draft":
        return _Draft(dict(self.nodes), dict(self.edges), self.hardware, self.drivetrain_id)

    def outgoing(self, node_id: str) -> List[RoutineEdge]:
        return [e for e in self.edges.values() if e.source == node_id]

    def incoming(self, node_id: str) -> List[RoutineEdge]:
        return [e for e in self.edges.values() if e.target == node_id]

    def new_edge_id(self, source: str, target: str, source_handle: Optional[str]) -> str:
        base = f"e{source}-{source_handle}-{target}" if source_handle else f"e{source}-{target}"
        edge_id = base
        n = 2
        while edge_id in self.edges:
            edge_id = f"{base}-{n}"
            n += 1
        return edge_id


def validate_structure(
    nodes: Mapping[str, RoutineNode], edges: Mapping[str, RoutineEdge]
) -> Tuple[bool, str]:
    """
    Structural rules of a routine:
      - edges reference existing nodes, no duplicate (source, outlet, target)
      - start has no incoming edges, end has no outgoing edges
      - only loop nodes may point at themselves
      - only branch nodes fan out, one edge per named outlet
      - exactly one entry node, at least one terminal node, all reachable from the entry
      - every cycle passes through a loop or if node
    """
    if not nodes:
        if edges:
            return False, "edges present without nodes"
        return True, "ok"

    out_edges: Dict[str, List[RoutineEdge]] = {nid: [] for nid in nodes}
    in_degree: Dict[str, int] = {nid: 0 for nid in nodes}
    seen_triples: Set[Tuple[str, Optional[str], str]] = set()

    for e in edges.values():
        if e.source not in nodes:
            return False, f"edge '{e.id}' source '{e.source}' does not exist"
        if e.target not in nodes:
            return False, f"edge '{e.id}' target '{e.target}' does not exist"
        triple = (e.source, e.source_handle, e.target)
        if triple in seen_triples:
            return False, f"edge '{e.id}' duplicates an existing connection"
        seen_triples.add(triple)
        out_edges[e.source].append(e)
        in_degree[e.target] += 1

    for nid, node in nodes.items():
        outs = out_edges[nid]
        if node.type == "start" and in_degree[nid] > 0:
            return False, f"start node '{nid}' cannot have incoming edges"
        if node.type == "end" and outs:
            return False, f"end node '{nid}' cannot have outgoing edges"

        outlets = BRANCH_OUTLETS.get(node.type, None)
        if outlets is None:
            if len(outs) > 1:
                return False, f"{node.type} node '{nid}' can have only one outgoing edge"
            for e in outs:
                if e.source_handle is not None:
                    return False, f"{node.type} node '{nid}' has no outlet '{e.source_handle}'"
                if e.target == nid:
                    return False, f"{node.type} node '{nid}' cannot connect to itself"
            continue

        used: Set[str] = set()
        for e in outs:
            if e.source_handle not in outlets:
                return False, f"{node.type} node '{nid}' edge must use one of outlets: {', '.join(outlets)}"
            if e.source_handle in used:
                return False, f"{node.type} node '{nid}' outlet '{e.source_handle}' is already connected"
            used.add(e.source_handle)
            if e.target == nid and node.type != "loop":
                return False, f"{node.type} node '{nid}' cannot connect to itself"

    roots = [nid for nid, d in in_degree.items() if d == 0]
    if len(roots) != 1:
        if not roots:
            return False, "routine has no entry node"
        return False, f"routine must have exactly one entry node, found {len(roots)}: {', '.join(sorted(roots))}"

    if not any(not outs for outs in out_edges.values()):
        return False, "routine has no terminal node"

    reached = {roots[0]}
    stack = [roots[0]]
    while stack:
        for e in out_edges[stack.pop()]:
            if e.target not in reached:
                reached.add(e.target)
                stack.append(e.target)
    if len(reached) != len(nodes):
        unreached = sorted(set(nodes) - reached)
        return False, f"nodes not reachable from the entry: {', '.join(unreached)}"

    # with mediators removed, what remains must be acyclic (Kahn)
    plain = {nid for nid, n in nodes.items() if n.type not in CYCLE_MEDIATOR_TYPES}
    indeg = {nid: 0 for nid in plain}
    for e in edges.values():
        if e.source in plain and e.target in plain:
            indeg[e.target] += 1
    ready = [nid for nid, d in indeg.items() if d == 0]
    visited = 0
    while ready:
        nid = ready.pop()
        visited += 1
        for e in out_edges[nid]:
            if e.target in plain:
                indeg[e.target] -= 1
                if indeg[e.target] == 0:
                    ready.append(e.target)
    if visited != len(plain):
        return False, "every cycle must pass through a loop or if node"

    return True, "ok"


def _outlet_rank(node: RoutineNode, edge: RoutineEdge) -> int:
    outlets = BRANCH_OUTLETS.get(node.type, ())
    if edge.source_handle in outlets:
        return outlets.index(edge.source_handle)
    return len(outlets)


def execution_order_of(nodes: Mapping[str, RoutineNode], edges: Mapping[str, RoutineEdge]) -> List[RoutineNode]:
    """
    Entry-first depth-first walk. Branches are taken in outlet order (if: true
    before false, loop: body before next); each node appears once.
    """
    if not nodes:
        return []
    targeted = {e.target for e in edges.values()}
    roots = [nid for nid in nodes if nid not in targeted]
    if not roots:
        return []

    by_source: Dict[str, List[RoutineEdge]] = {}
    for e in edges.values():
        by_source.setdefault(e.source, []).append(e)

    order: List[RoutineNode] = []
    seen: Set[str] = set()
    stack = [roots[0]]
    while stack:
        nid = stack.pop()
        if nid in seen:
            continue
        seen.add(nid)
        node = nodes[nid]
        order.append(node)
        outs = sorted(by_source.get(nid, []), key=lambda e: _outlet_rank(node, e))
        for e in reversed(outs):
            if e.target not in seen:
                stack.append(e.target)
    return order


class RoutineGraph:
    """
    Flat node/edge arena. Every edit runs against a copy, the copy is
    validated, and only then swapped in under the lock.
    """

    def __init__(self, *, hardware: Optional[HardwareConfig] = None, drivetrain_id: Optional[str] = None) -> None:
        if drivetrain_id is not None and not is_drivetrain_id(drivetrain_id):
            raise ValueError(f"Unknown drivetrain '{drivetrain_id}'")
        self._state = _Draft(hardware=hardware, drivetrain_id=drivetrain_id)
        self._lock = threading.Lock()

    # ---------- read side ----------

    @property
    def hardware(self) -> Optional[HardwareConfig]:
        return self._state.hardware

    @property
    def drivetrain_id(self) -> Optional[str]:
        return self._state.drivetrain_id

    def nodes(self) -> List[RoutineNode]:
        with self._lock:
            return list(self._state.nodes.values())

    def edges(self) -> List[RoutineEdge]:
        with self._lock:
            return list(self._state.edges.values())

    def get_node(self, node_id: str) -> Optional[RoutineNode]:
        with self._lock:
            return self._state.nodes.get(node_id, None)

    def has_node(self, node_id: str) -> bool:
        return self.get_node(node_id) is not None

    def has_edge(self, edge_id: str) -> bool:
        with self._lock:
            return edge_id in self._state.edges

    def entry_node(self) -> Optional[RoutineNode]:
        order = self.execution_order()
        return order[0] if order else None

    def execution_order(self) -> List[RoutineNode]:
        with self._lock:
            return execution_order_of(self._state.nodes, self._state.edges)

    def validate_structure(self) -> Tuple[bool, str]:
        with self._lock:
            return validate_structure(self._state.nodes, self._state.edges)

    def to_dict(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "nodes": [n.to_dict() for n in self._state.nodes.values()],
                "edges": [e.to_dict() for e in self._state.edges.values()],
            }

    # ---------- edits ----------

    def add_node(
        self, raw: Mapping[str, Any], connect_from: Optional[str] = None, source_handle: Optional[str] = None
    ) -> EditResult:
        return self._commit("add_node", lambda d: _op_add_node(d, raw, connect_from, source_handle))

    def update_node_params(self, node_id: str, changes: Mapping[str, Any]) -> EditResult:
        return self._commit("update_node_params", lambda d: _op_update_node(d, node_id, changes))

    def move_node(self, node_id: str, x: Any, y: Any) -> EditResult:
        return self._commit("move_node", lambda d: _op_move_node(d, node_id, x, y))

    def delete_node(self, node_id: str) -> EditResult:
        return self._commit("delete_node", lambda d: _op_delete_node(d, node_id))

    def add_edge(self, source: str, target: str, source_handle: Optional[str] = None) -> EditResult:
        return self._commit("add_edge", lambda d: _op_add_edge(d, source, target, source_handle, None))

    def delete_edge(self, edge_id: str) -> EditResult:
        return self._commit("delete_edge", lambda d: _op_delete_edge(d, edge_id))

    def set_hardware(self, config: Optional[HardwareConfig]) -> EditResult:
        def op(d: _Draft) -> EditResult:
            d.hardware = config
            return True, None if config is None else config.to_dict(), "ok"

        return self._commit("set_hardware", op)

    def set_drivetrain(self, drivetrain_id: Optional[str]) -> EditResult:
        def op(d: _Draft) -> EditResult:
            if drivetrain_id is not None and not is_drivetrain_id(drivetrain_id):
                return False, None, f"drivetrain '{drivetrain_id}' is unknown"
            d.drivetrain_id = drivetrain_id
            return True, {"drivetrain": drivetrain_id}, "ok"

        return self._commit("set_drivetrain", op)

    def apply_edits(self, edits: Iterable[Mapping[str, Any]]) -> EditResult:
        """
        Apply a batch of edits as one transaction. Each edit is
        {"op": addNode|updateNode|moveNode|deleteNode|addEdge|deleteEdge, ...}.
        Structure is only checked once, after the last edit.
        """

        def op(d: _Draft) -> EditResult:
            if not isinstance(edits, (list, tuple)):
                return False, None, "edits must be an array"
            for i, edit in enumerate(edits):
                ok, _, msg = _apply_one(d, edit)
                if not ok:
                    return False, None, f"edits[{i}]: {msg}"
            return True, None, "ok"

        ok, _, msg = self._commit("apply_edits", op)
        if not ok:
            return False, None, msg
        return True, self.to_dict(), "ok"

    def load(
        self,
        nodes: Iterable[RoutineNode],
        edges: Iterable[RoutineEdge],
        *,
        hardware: Optional[HardwareConfig] = None,
        drivetrain_id: Optional[str] = None,
    ) -> EditResult:
        """Replace the whole routine with already-built nodes and edges."""

        def op(d: _Draft) -> EditResult:
            if drivetrain_id is not None and not is_drivetrain_id(drivetrain_id):
                return False, None, f"drivetrain '{drivetrain_id}' is unknown"
            d.nodes = {}
            d.edges = {}
            for n in nodes:
                if n.id in d.nodes:
                    return False, None, f"duplicate node id '{n.id}'"
                d.nodes[n.id] = n
            for e in edges:
                if e.id in d.edges:
                    return False, None, f"duplicate edge id '{e.id}'"
                d.edges[e.id] = e
            d.hardware = hardware
            d.drivetrain_id = drivetrain_id
            return True, None, "ok"

        return self._commit("load", op)

    def _commit(self, name: str, op: Callable[[_Draft], EditResult]) -> EditResult:
        with self._lock:
            draft = self._state.copy()
            ok, payload, msg = op(draft)
            if not ok:
                logger.info("graph edit %s rejected: %s", name, msg)
                return False, None, msg

            ok, msg = validate_structure(draft.nodes, draft.edges)
            if not ok:
                logger.info("graph edit %s rejected: %s", name, msg)
                return False, None, msg

            if draft.hardware is not self._state.hardware or draft.drivetrain_id != self._state.drivetrain_id:
                check = list(draft.nodes.values())
            else:
                check = [n for nid, n in draft.nodes.items() if self._state.nodes.get(nid, None) is not n]
            for node in check:
                ok, msg = validate_node_against(node, draft.hardware, draft.drivetrain_id)
                if not ok:
                    logger.info("graph edit %s rejected: %s", name, msg)
                    return False, None, msg

            self._state = draft
            logger.debug("graph edit %s applied (%d nodes, %d edges)", name, len(draft.nodes), len(draft.edges))
            return True, payload, "ok"


# ---------- edit operations on a draft ----------

def _op_add_node(
    d: _Draft, raw: Mapping[str, Any], connect_from: Optional[str], source_handle: Optional[str]
) -> EditResult:
    ok, node, msg = build_node(raw)
    if not ok or node is None:
        return False, None, msg
    if node.id in d.nodes:
        return False, None, f"node id '{node.id}' already exists"
    d.nodes[node.id] = node
    if connect_from is not None:
        ok, _, msg = _op_add_edge(d, connect_from, node.id, source_handle, None)
        if not ok:
            return False, None, msg
    return True, node.to_dict(), "ok"


def _op_update_node(d: _Draft, node_id: str, changes: Mapping[str, Any]) -> EditResult:
    node = d.nodes.get(node_id, None)
    if node is None:
        return False, None, f"node '{node_id}' not found"
    if not isinstance(changes, Mapping):
        return False, None, "changes must be an object"

    changes = dict(changes)
    label = node.label
    if "label" in changes:
        label = str(changes.pop("label") or "").strip() or node.type

    merged = node.params.to_dict()
    for key, value in changes.items():
        if value is None:
            merged.pop(key, None)
        else:
            merged[key] = value

    ok, params, msg = build_node_params(node.type, merged)
    if not ok:
        return False, None, msg
    updated = replace(node, params=params, label=label)
    d.nodes[node_id] = updated
    return True, updated.to_dict(), "ok"


def _op_move_node(d: _Draft, node_id: str, x: Any, y: Any) -> EditResult:
    node = d.nodes.get(node_id, None)
    if node is None:
        return False, None, f"node '{node_id}' not found"
    try:
        position = point_from_raw({"x": x, "y": y})
    except (KeyError, TypeError, ValueError):
        return False, None, "x/y must be finite numbers"
    moved = replace(node, position=position)
    d.nodes[node_id] = moved
    return True, moved.to_dict(), "ok"


def _op_delete_node(d: _Draft, node_id: str) -> EditResult:
    """
    Removes the node and its edges. A node with exactly one predecessor and
    one successor is spliced out: the predecessor is reconnected to the
    successor on the same outlet.
    """
    if node_id not in d.nodes:
        return False, None, f"node '{node_id}' not found"
    incoming = [e for e in d.incoming(node_id) if e.source != node_id]
    outgoing = [e for e in d.outgoing(node_id) if e.target != node_id]

    removed = [e.id for e in d.edges.values() if e.source == node_id or e.target == node_id]
    for edge_id in removed:
        del d.edges[edge_id]
    del d.nodes[node_id]

    bridged: Optional[Dict[str, Any]] = None
    if len(incoming) == 1 and len(outgoing) == 1:
        src = incoming[0]
        ok, bridged, _ = _op_add_edge(d, src.source, outgoing[0].target, src.source_handle, None)
        if not ok:
            bridged = None
    return True, {"id": node_id, "removedEdges": removed, "bridgedEdge": bridged}, "ok"


def _op_add_edge(
    d: _Draft, source: str, target: str, source_handle: Optional[str], edge_id: Optional[str]
) -> EditResult:
    source = str(source)
    target = str(target)
    if source not in d.nodes:
        return False, None, f"node '{source}' not found"
    if target not in d.nodes:
        return False, None, f"node '{target}' not found"
    handle = None if source_handle in (None, "") else str(source_handle)
    if edge_id is None:
        edge_id = d.new_edge_id(source, target, handle)
    elif edge_id in d.edges:
        return False, None, f"edge id '{edge_id}' already exists"
    edge = RoutineEdge(id=edge_id, source=source, target=target, source_handle=handle)
    d.edges[edge.id] = edge
    return True, edge.to_dict(), "ok"


def _op_delete_edge(d: _Draft, edge_id: str) -> EditResult:
    if edge_id not in d.edges:
        return False, None, f"edge '{edge_id}' not found"
    del d.edges[edge_id]
    return True, {"id": edge_id}, "ok"


def _apply_one(d: _Draft, edit: Any) -> EditResult:
    if not isinstance(edit, Mapping):
        return False, None, "edit must be an object"
    kind = str(edit.get("op", ""))
    if kind == "addNode":
        return _op_add_node(d, edit.get("node", {}), edit.get("connectFrom", None), edit.get("sourceHandle", None))
    if kind == "updateNode":
        return _op_update_node(d, str(edit.get("id", "")), edit.get("params", {}))
    if kind == "moveNode":
        return _op_move_node(d, str(edit.get("id", "")), edit.get("x", None), edit.get("y", None))
    if kind == "deleteNode":
        return _op_delete_node(d, str(edit.get("id", "")))
    if kind == "addEdge":
        edge_id = edit.get("id", None)
        return _op_add_edge(
            d,
            edit.get("source", ""),
            edit.get("target", ""),
            edit.get("sourceHandle", None),
            None if edge_id is None else str(edge_id),
        )
    if kind == "deleteEdge":
        return _op_delete_edge(d, str(edit.get("id", "")))
    return False, None, f"unknown edit op '{kind}'"
