from .graph import RoutineGraph, execution_order_of, validate_structure
from .node_models import (
    BRANCH_OUTLETS,
    NODE_TYPES,
    PARAMS_BY_NODE_TYPE,
    RoutineEdge,
    RoutineNode,
    node_category,
)
from .node_validate import build_node, build_node_params, check_hardware_refs
from .path_projection import node_path_points
from .routine_sim import MotionSegment, RoutineMotion, estimate_routine_motion, trapezoid_velocity
from .workflow_codec import (
    WORKFLOW_VERSION,
    build_project_payload,
    graph_from_project_payload,
    graph_from_workflow_data,
    graph_to_workflow_data,
    hardware_config_from_motor_config,
    hardware_config_to_motor_config,
)

__all__ = [
    "BRANCH_OUTLETS",
    "MotionSegment",
    "NODE_TYPES",
    "PARAMS_BY_NODE_TYPE",
    "RoutineEdge",
    "RoutineGraph",
    "RoutineMotion",
    "RoutineNode",
    "WORKFLOW_VERSION",
    "build_node",
    "build_node_params",
    "build_project_payload",
    "check_hardware_refs",
    "estimate_routine_motion",
    "execution_order_of",
    "graph_from_project_payload",
    "graph_from_workflow_data",
    "graph_to_workflow_data",
    "hardware_config_from_motor_config",
    "hardware_config_to_motor_config",
    "node_category",
    "node_path_points",
    "trapezoid_velocity",
    "validate_structure",
]
