"""
图分析器

纯函数：环检测、父任务完成判定、悬空箭头校验。
所有函数只读输入，不修改快照。
"""

from collections import deque
from typing import Dict, FrozenSet, List, Sequence, Tuple

from .model import Dependency, Snapshot, Task


def _adjacency(arrows: Sequence[Dependency]) -> Dict[str, List[str]]:
    """构建 source -> [target] 邻接表，终点也作为键出现（保持首次出现顺序）"""
    graph: Dict[str, List[str]] = {}
    for arrow in arrows:
        graph.setdefault(arrow.source, []).append(arrow.target)
        graph.setdefault(arrow.target, [])
    return graph


def _strongly_connected(graph: Dict[str, List[str]]) -> Dict[str, int]:
    """
    计算强连通分量（Tarjan，显式栈实现）

    Returns:
        节点 -> 分量编号
    """
    index: Dict[str, int] = {}
    lowlink: Dict[str, int] = {}
    on_path = set()
    path: List[str] = []
    component: Dict[str, int] = {}
    counter = 0
    component_count = 0

    for root in graph:
        if root in index:
            continue

        index[root] = lowlink[root] = counter
        counter += 1
        path.append(root)
        on_path.add(root)
        work: List[Tuple[str, int]] = [(root, 0)]

        while work:
            node, i = work[-1]
            neighbors = graph[node]

            if i < len(neighbors):
                work[-1] = (node, i + 1)
                neighbor = neighbors[i]
                if neighbor not in index:
                    index[neighbor] = lowlink[neighbor] = counter
                    counter += 1
                    path.append(neighbor)
                    on_path.add(neighbor)
                    work.append((neighbor, 0))
                elif neighbor in on_path:
                    # 回边：neighbor 仍在当前遍历路径上
                    lowlink[node] = min(lowlink[node], index[neighbor])
                continue

            work.pop()
            if work:
                parent = work[-1][0]
                lowlink[parent] = min(lowlink[parent], lowlink[node])

            if lowlink[node] == index[node]:
                while True:
                    member = path.pop()
                    on_path.discard(member)
                    component[member] = component_count
                    if member == node:
                        break
                component_count += 1

    return component


def detect_cycles(arrows: Sequence[Dependency]) -> FrozenSet[str]:
    """
    检测参与环的箭头

    箭头两端位于同一强连通分量时，它位于某个有向环上。
    自环总是被标记；同一对节点间的重复箭头会全部被标记。

    Args:
        arrows: 快照中的全部箭头

    Returns:
        参与至少一个环的箭头 ID 集合
    """
    if not arrows:
        return frozenset()

    component = _strongly_connected(_adjacency(arrows))
    return frozenset(
        arrow.id
        for arrow in arrows
        if arrow.is_self_loop or component[arrow.source] == component[arrow.target]
    )


def incoming(task_id: str, arrows: Sequence[Dependency]) -> List[Dependency]:
    """指向该任务的箭头"""
    return [a for a in arrows if a.target == task_id]


def outgoing(task_id: str, arrows: Sequence[Dependency]) -> List[Dependency]:
    """从该任务出发的箭头"""
    return [a for a in arrows if a.source == task_id]


def all_parents_completed(task_id: str, tasks: Sequence[Task], arrows: Sequence[Dependency]) -> bool:
    """
    所有父任务是否已完成

    没有入边时为 True。入边的源任务不存在（悬空箭头）视为未完成。
    """
    by_id = {t.id: t for t in tasks}
    for arrow in incoming(task_id, arrows):
        parent = by_id.get(arrow.source)
        if parent is None or not parent.completed:
            return False
    return True


def has_incomplete_parent(task_id: str, tasks: Sequence[Task], arrows: Sequence[Dependency]) -> bool:
    """
    任务已完成但存在未完成的父任务（过期的完成状态）

    仅用于诊断显示，不阻止编辑。
    """
    task = next((t for t in tasks if t.id == task_id), None)
    if task is None or not task.completed:
        return False
    return not all_parents_completed(task_id, tasks, arrows)


def find_dangling_arrows(tasks: Sequence[Task], arrows: Sequence[Dependency]) -> Tuple[Dependency, ...]:
    """找出端点引用了不存在任务的箭头"""
    known = {t.id for t in tasks}
    return tuple(a for a in arrows if a.source not in known or a.target not in known)


def prune_dangling(snapshot: Snapshot) -> Snapshot:
    """移除悬空箭头，用于持久化前的清理"""
    dangling = {a.id for a in find_dangling_arrows(snapshot.tasks, snapshot.arrows)}
    if not dangling:
        return snapshot
    return snapshot.with_arrows(a for a in snapshot.arrows if a.id not in dangling)


def is_acyclic(tasks: Sequence[Task], arrows: Sequence[Dependency]) -> bool:
    """拓扑排序（Kahn）判断图是否无环"""
    nodes = {t.id for t in tasks}
    for arrow in arrows:
        nodes.add(arrow.source)
        nodes.add(arrow.target)

    in_degree: Dict[str, int] = {node: 0 for node in nodes}
    graph: Dict[str, List[str]] = {node: [] for node in nodes}
    for arrow in arrows:
        graph[arrow.source].append(arrow.target)
        in_degree[arrow.target] += 1

    queue = deque(node for node, degree in in_degree.items() if degree == 0)
    visited = 0
    while queue:
        node = queue.popleft()
        visited += 1
        for neighbor in graph[node]:
            in_degree[neighbor] -= 1
            if in_degree[neighbor] == 0:
                queue.append(neighbor)

    return visited == len(nodes)
