"""
任务图数据模型

任务（节点）、依赖（箭头）、快照与项目。所有对象不可变，
修改通过 dataclasses.replace 生成新对象。
"""

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Dict, Iterable, Optional, Tuple


class RoutingStyle(str, Enum):
    """箭头走线样式"""
    STRAIGHT = "straight"       # 直线
    ORTHOGONAL = "orthogonal"   # 折线
    CURVED = "curved"           # 曲线

    @classmethod
    def parse(cls, value: str) -> "RoutingStyle":
        """解析走线样式，兼容画布端的 smoothstep / bezier 命名"""
        aliases = {
            "smoothstep": cls.ORTHOGONAL,
            "step": cls.ORTHOGONAL,
            "bezier": cls.CURVED,
            "default": cls.CURVED,
        }
        key = value.strip().lower()
        if key in aliases:
            return aliases[key]
        return cls(key)


@dataclass(frozen=True)
class Position:
    """画布坐标"""
    x: float = 0.0
    y: float = 0.0


@dataclass(frozen=True)
class Task:
    """任务节点"""
    id: str                                      # 任务 ID（分配后不可变）
    label: str = ""                              # 标签
    completed: bool = False                      # 是否完成
    position: Position = field(default_factory=Position)

    def with_label(self, label: str) -> "Task":
        return replace(self, label=label)

    def with_completed(self, completed: bool) -> "Task":
        return replace(self, completed=completed)

    def moved_to(self, x: float, y: float) -> "Task":
        return replace(self, position=Position(x, y))


@dataclass(frozen=True)
class Dependency:
    """依赖箭头: source 完成后 target 才能完成"""
    id: str
    source: str
    target: str
    routing_style: RoutingStyle = RoutingStyle.STRAIGHT

    @property
    def is_self_loop(self) -> bool:
        return self.source == self.target

    def restyled(self, style: RoutingStyle) -> "Dependency":
        return replace(self, routing_style=style)


@dataclass(frozen=True)
class Snapshot:
    """某一时刻的完整图状态 (tasks, arrows)"""
    tasks: Tuple[Task, ...] = ()
    arrows: Tuple[Dependency, ...] = ()

    def __post_init__(self):
        # 允许传入 list，统一存为 tuple
        object.__setattr__(self, "tasks", tuple(self.tasks))
        object.__setattr__(self, "arrows", tuple(self.arrows))

    @property
    def task_ids(self) -> Tuple[str, ...]:
        return tuple(t.id for t in self.tasks)

    @property
    def arrow_ids(self) -> Tuple[str, ...]:
        return tuple(a.id for a in self.arrows)

    def task_index(self) -> Dict[str, Task]:
        """任务 ID -> 任务"""
        return {t.id: t for t in self.tasks}

    def get_task(self, task_id: str) -> Optional[Task]:
        for task in self.tasks:
            if task.id == task_id:
                return task
        return None

    def get_arrow(self, arrow_id: str) -> Optional[Dependency]:
        for arrow in self.arrows:
            if arrow.id == arrow_id:
                return arrow
        return None

    def has_arrow_between(self, source: str, target: str) -> bool:
        return any(a.source == source and a.target == target for a in self.arrows)

    def with_tasks(self, tasks: Iterable[Task]) -> "Snapshot":
        return Snapshot(tasks=tuple(tasks), arrows=self.arrows)

    def with_arrows(self, arrows: Iterable[Dependency]) -> "Snapshot":
        return Snapshot(tasks=self.tasks, arrows=tuple(arrows))


@dataclass(frozen=True)
class Selection:
    """选择状态：至多选中一个任务或一个箭头，二者互斥"""
    task_id: Optional[str] = None
    arrow_id: Optional[str] = None

    def __post_init__(self):
        if self.task_id is not None and self.arrow_id is not None:
            raise ValueError("Selection cannot hold a task and an arrow at the same time")

    @classmethod
    def of_task(cls, task_id: str) -> "Selection":
        return cls(task_id=task_id)

    @classmethod
    def of_arrow(cls, arrow_id: str) -> "Selection":
        return cls(arrow_id=arrow_id)

    @property
    def is_empty(self) -> bool:
        return self.task_id is None and self.arrow_id is None


@dataclass(frozen=True)
class Viewport:
    """画布视口，仅用于持久化"""
    x: float = 0.0
    y: float = 0.0
    zoom: float = 1.0


@dataclass(frozen=True)
class Project:
    """持久化单元"""
    id: str
    title: str
    tasks: Tuple[Task, ...] = ()
    arrows: Tuple[Dependency, ...] = ()
    task_id_counter: int = 1
    last_saved_at: Optional[str] = None
    viewport: Optional[Viewport] = None
    routing_style: Optional[RoutingStyle] = None   # 项目最近使用的走线样式

    def __post_init__(self):
        object.__setattr__(self, "tasks", tuple(self.tasks))
        object.__setattr__(self, "arrows", tuple(self.arrows))

    @property
    def snapshot(self) -> Snapshot:
        return Snapshot(tasks=self.tasks, arrows=self.arrows)

    def with_snapshot(self, snapshot: Snapshot) -> "Project":
        return replace(self, tasks=snapshot.tasks, arrows=snapshot.arrows)

    def stamped(self, when: Optional[datetime] = None) -> "Project":
        """更新保存时间"""
        return replace(self, last_saved_at=(when or datetime.now()).isoformat())
