"""
样式推导

根据图的当前形状和选择状态，计算每个任务和箭头的展示状态。
每次变更后对完整快照重新计算，不做增量更新。
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, Optional, Sequence

from .analyzer import all_parents_completed, detect_cycles, has_incomplete_parent
from .model import Dependency, Task


class TaskKind(str, Enum):
    """任务展示状态（互斥，按优先级判定）"""
    SELECTED = "selected"   # 被选中
    BLOCKED = "blocked"     # 已完成但父任务未完成
    READY = "ready"         # 未完成且父任务均已完成
    DEFAULT = "default"     # 其他


class ArrowKind(str, Enum):
    """箭头展示状态"""
    NORMAL = "normal"
    CYCLIC = "cyclic"


@dataclass(frozen=True)
class TaskState:
    """任务展示状态"""
    kind: TaskKind
    completed: bool = False     # 独立于 kind 的完成标记

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind.value, "completed": self.completed}


@dataclass(frozen=True)
class ArrowState:
    """箭头展示状态"""
    kind: ArrowKind
    selected: bool = False      # 仅影响强调，与 kind 同时生效

    @property
    def cyclic(self) -> bool:
        return self.kind == ArrowKind.CYCLIC

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind.value, "selected": self.selected}


@dataclass(frozen=True)
class GraphState:
    """整张图的展示状态"""
    task_states: Dict[str, TaskState] = field(default_factory=dict)
    arrow_states: Dict[str, ArrowState] = field(default_factory=dict)
    cyclic_arrow_ids: FrozenSet[str] = frozenset()

    @property
    def has_cycles(self) -> bool:
        return bool(self.cyclic_arrow_ids)

    def tasks_of_kind(self, kind: TaskKind) -> list:
        return [task_id for task_id, state in self.task_states.items() if state.kind == kind]

    def to_dict(self) -> Dict[str, Any]:
        """JSON 友好的表示，键顺序与快照顺序一致"""
        return {
            "tasks": {task_id: state.to_dict() for task_id, state in self.task_states.items()},
            "arrows": {arrow_id: state.to_dict() for arrow_id, state in self.arrow_states.items()},
        }


def derive_task_kind(
    task: Task,
    tasks: Sequence[Task],
    arrows: Sequence[Dependency],
    selected_task_id: Optional[str] = None,
) -> TaskKind:
    """按 selected > blocked > ready > default 的优先级判定任务状态"""
    if task.id == selected_task_id:
        return TaskKind.SELECTED
    if has_incomplete_parent(task.id, tasks, arrows):
        return TaskKind.BLOCKED
    if not task.completed and all_parents_completed(task.id, tasks, arrows):
        return TaskKind.READY
    return TaskKind.DEFAULT


def derive_state(
    tasks: Sequence[Task],
    arrows: Sequence[Dependency],
    selected_task_id: Optional[str] = None,
    selected_arrow_id: Optional[str] = None,
) -> GraphState:
    """
    推导全图展示状态

    Args:
        tasks: 快照中的全部任务
        arrows: 快照中的全部箭头
        selected_task_id: 选中的任务 ID
        selected_arrow_id: 选中的箭头 ID

    Returns:
        GraphState
    """
    cyclic = detect_cycles(arrows)

    arrow_states = {
        arrow.id: ArrowState(
            kind=ArrowKind.CYCLIC if arrow.id in cyclic else ArrowKind.NORMAL,
            selected=arrow.id == selected_arrow_id,
        )
        for arrow in arrows
    }

    task_states = {
        task.id: TaskState(
            kind=derive_task_kind(task, tasks, arrows, selected_task_id),
            completed=task.completed,
        )
        for task in tasks
    }

    return GraphState(
        task_states=task_states,
        arrow_states=arrow_states,
        cyclic_arrow_ids=cyclic,
    )
