"""
任务图可视化器

提供任务图的 ASCII 可视化（依赖树、进度条、摘要）。
"""

from typing import Dict, List, Optional, Set

from .analyzer import outgoing
from .model import Snapshot, Task
from .style import GraphState, TaskKind, derive_state


class GraphVisualizer:
    """
    任务图可视化器

    支持功能:
    - 依赖树
    - 进度条
    - 摘要
    """

    # 状态图标
    STATE_ICONS = {
        TaskKind.SELECTED: "◆",
        TaskKind.BLOCKED: "⊘",
        TaskKind.READY: "◎",
        TaskKind.DEFAULT: "○",
    }
    COMPLETED_ICON = "✓"
    CYCLE_MARK = "↺"

    def __init__(self, snapshot: Snapshot, state: Optional[GraphState] = None):
        """
        初始化可视化器

        Args:
            snapshot: 图快照
            state: 已推导的展示状态，None 时现场推导
        """
        self._snapshot = snapshot
        self._state = state or derive_state(snapshot.tasks, snapshot.arrows)
        self._tasks: Dict[str, Task] = snapshot.task_index()

    def icon_for(self, task: Task) -> str:
        """任务图标：完成标记优先于状态图标，blocked 除外"""
        state = self._state.task_states.get(task.id)
        if state is None:
            return "?"
        if state.kind == TaskKind.BLOCKED:
            return self.STATE_ICONS[TaskKind.BLOCKED]
        if task.completed:
            return self.COMPLETED_ICON
        return self.STATE_ICONS[state.kind]

    def render_progress_bar(self, width: int = 40) -> str:
        """
        渲染进度条

        Args:
            width: 进度条宽度

        Returns:
            进度条字符串
        """
        total = len(self._snapshot.tasks)
        completed = sum(1 for t in self._snapshot.tasks if t.completed)
        percent = (completed / total * 100) if total > 0 else 0

        filled = int(width * percent / 100)
        empty = width - filled

        bar = f"[{'█' * filled}{'░' * empty}]"
        return f"{bar} {completed}/{total} ({percent:.0f}%)"

    def render_tree(self) -> str:
        """
        渲染依赖树

        从没有入边的任务开始，沿依赖方向展开。
        只出现在环中的任务作为额外的根渲染；环路以 ↺ 标记截断。
        """
        lines: List[str] = []
        rendered: Set[str] = set()

        targets = {a.target for a in self._snapshot.arrows if a.source in self._tasks}
        roots = [t.id for t in self._snapshot.tasks if t.id not in targets]
        roots += [t.id for t in self._snapshot.tasks if t.id in targets]

        for root in roots:
            if root not in rendered:
                self._render_tree_node(root, lines, "", True, set(), rendered)

        return "\n".join(lines)

    def render_summary(self) -> str:
        """渲染摘要"""
        total = len(self._snapshot.tasks)
        completed = sum(1 for t in self._snapshot.tasks if t.completed)
        ready = len(self._state.tasks_of_kind(TaskKind.READY))
        blocked = len(self._state.tasks_of_kind(TaskKind.BLOCKED))
        cyclic = len(self._state.cyclic_arrow_ids)

        lines = [
            f"Tasks:         {total}",
            f"Completed:     {completed}",
            f"Ready:         {ready}",
            f"Blocked:       {blocked}",
            f"Arrows:        {len(self._snapshot.arrows)}",
            f"Cyclic arrows: {cyclic}",
            f"Progress:      {self.render_progress_bar(25)}",
        ]
        return "\n".join(lines)

    def _render_tree_node(
        self,
        task_id: str,
        lines: List[str],
        prefix: str,
        is_last: bool,
        on_path: Set[str],
        rendered: Set[str],
    ):
        """递归渲染树节点"""
        task = self._tasks.get(task_id)
        if task is None:
            return

        connector = "└── " if is_last else "├── "

        if task_id in on_path:
            lines.append(f"{prefix}{connector}{self.CYCLE_MARK} {task.label} [{task.id}]")
            return

        lines.append(f"{prefix}{connector}{self.icon_for(task)} {task.label} [{task.id}]")
        rendered.add(task_id)

        child_prefix = prefix + ("    " if is_last else "│   ")
        children = [a.target for a in outgoing(task_id, self._snapshot.arrows) if a.target in self._tasks]
        on_path = on_path | {task_id}
        for i, child_id in enumerate(children):
            self._render_tree_node(
                child_id, lines, child_prefix, i == len(children) - 1, on_path, rendered
            )
