"""
Taskgraph 测试共享 fixtures

为所有测试提供统一的 fixtures 和测试工具。
"""

import pytest
import tempfile
import shutil
from pathlib import Path
from typing import Iterable, Tuple

from click.testing import CliRunner

from taskgraph.graph.model import Dependency, RoutingStyle, Snapshot, Task
from taskgraph.logging import LoggingConfig, get_logger
from taskgraph.repository import InMemoryProjectRepository
from taskgraph.session import EditorSession


# =============================================================================
# Environment Fixtures
# =============================================================================

@pytest.fixture(autouse=True)
def quiet_logging():
    """每个测试后关闭控制台日志，避免处理器持有已关闭的流"""
    yield
    get_logger().configure(LoggingConfig(console_enabled=False))


@pytest.fixture
def runner():
    """Click CLI 测试运行器"""
    return CliRunner()


@pytest.fixture
def temp_dir():
    """临时目录 fixture"""
    tmp = Path(tempfile.mkdtemp())
    yield tmp
    shutil.rmtree(tmp, ignore_errors=True)


# =============================================================================
# Factory Fixtures
# =============================================================================

def make_tasks(*items) -> Tuple[Task, ...]:
    """
    创建任务

    每项为 "id" 或 ("id", completed)。
    """
    tasks = []
    for item in items:
        if isinstance(item, tuple):
            task_id, completed = item
        else:
            task_id, completed = item, False
        tasks.append(Task(id=task_id, label=f"Task {task_id}", completed=completed))
    return tuple(tasks)


def make_arrows(*pairs: Tuple[str, str]) -> Tuple[Dependency, ...]:
    """按 (source, target) 顺序创建箭头，ID 为 e1, e2, ..."""
    return tuple(
        Dependency(id=f"e{i}", source=source, target=target)
        for i, (source, target) in enumerate(pairs, 1)
    )


def make_snapshot(tasks: Iterable, pairs: Iterable[Tuple[str, str]] = ()) -> Snapshot:
    return Snapshot(tasks=make_tasks(*tasks), arrows=make_arrows(*pairs))


@pytest.fixture
def repository():
    """内存项目仓库"""
    return InMemoryProjectRepository()


@pytest.fixture
def session(repository):
    """已打开一个新项目的编辑会话（初始任务 ID 为 "0"）"""
    s = EditorSession(repository, routing_style=RoutingStyle.STRAIGHT)
    s.new_project("Test project")
    return s
