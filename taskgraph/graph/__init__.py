"""
任务依赖图引擎

提供环检测、完成状态守卫、样式推导和撤销/重做历史。
"""

from .model import (
    Dependency,
    Position,
    Project,
    RoutingStyle,
    Selection,
    Snapshot,
    Task,
    Viewport,
)
from .analyzer import (
    all_parents_completed,
    detect_cycles,
    find_dangling_arrows,
    has_incomplete_parent,
    is_acyclic,
    prune_dangling,
)
from .guard import attempt_set_completion, is_blocked
from .style import ArrowKind, ArrowState, GraphState, TaskKind, TaskState, derive_state
from .history import HistoryStore
from .visualizer import GraphVisualizer

__all__ = [
    "Dependency",
    "Position",
    "Project",
    "RoutingStyle",
    "Selection",
    "Snapshot",
    "Task",
    "Viewport",
    "all_parents_completed",
    "detect_cycles",
    "find_dangling_arrows",
    "has_incomplete_parent",
    "is_acyclic",
    "prune_dangling",
    "attempt_set_completion",
    "is_blocked",
    "ArrowKind",
    "ArrowState",
    "GraphState",
    "TaskKind",
    "TaskState",
    "derive_state",
    "HistoryStore",
    "GraphVisualizer",
]
