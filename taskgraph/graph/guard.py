"""
完成状态守卫

任务只有在所有父任务完成后才能被标记为完成；
已完成的任务可以随时取消完成。
"""

from typing import Sequence

from ..logging import get_logger
from .analyzer import all_parents_completed
from .model import Dependency, Task

log = get_logger()


def attempt_set_completion(
    task: Task,
    requested_completed: bool,
    tasks: Sequence[Task],
    arrows: Sequence[Dependency],
) -> bool:
    """
    计算请求后的完成状态

    已完成任务：按请求值返回（允许取消完成）。
    未完成任务请求完成：仅当所有父任务已完成时返回 True，否则返回 False。
    被拦截的升级与用户主动取消勾选结果相同，不抛出异常。

    Args:
        task: 目标任务
        requested_completed: 请求的完成状态
        tasks: 快照中的全部任务
        arrows: 快照中的全部箭头

    Returns:
        实际生效的完成状态
    """
    if task.completed:
        return requested_completed

    if not requested_completed:
        return False

    if all_parents_completed(task.id, tasks, arrows):
        return True

    log.graph_log(f"Completion of task {task.id} clamped: parents incomplete", task_id=task.id)
    return False


def is_blocked(task: Task, tasks: Sequence[Task], arrows: Sequence[Dependency]) -> bool:
    """未完成且当前无法被标记为完成"""
    return not task.completed and not all_parents_completed(task.id, tasks, arrows)
