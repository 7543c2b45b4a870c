"""
完成状态守卫测试
"""

import logging

import pytest

from taskgraph.graph.analyzer import all_parents_completed
from taskgraph.graph.guard import attempt_set_completion, is_blocked

from conftest import make_arrows, make_tasks


class TestAttemptSetCompletion:
    """完成状态请求测试"""

    def test_complete_with_completed_parent(self):
        """父任务已完成时可以完成"""
        tasks = make_tasks(("1", True), "2")
        arrows = make_arrows(("1", "2"))
        assert attempt_set_completion(tasks[1], True, tasks, arrows) is True

    def test_complete_with_incomplete_parent_is_clamped(self):
        """父任务未完成时被钳制为 False"""
        tasks = make_tasks("1", "2")
        arrows = make_arrows(("1", "2"))
        assert attempt_set_completion(tasks[1], True, tasks, arrows) is False

    def test_clamp_logged_with_task_id(self, caplog):
        """钳制记录带任务 ID 的 debug 日志"""
        tasks = make_tasks("1", "2")
        arrows = make_arrows(("1", "2"))
        with caplog.at_level(logging.DEBUG, logger="taskgraph"):
            attempt_set_completion(tasks[1], True, tasks, arrows)

        record = caplog.records[-1]
        assert record.levelno == logging.DEBUG
        assert record.task_id == "2"

    def test_complete_root_task(self):
        """没有依赖的任务可以直接完成"""
        tasks = make_tasks("1")
        assert attempt_set_completion(tasks[0], True, tasks, ()) is True

    def test_uncomplete_always_allowed(self):
        """已完成任务总是可以取消完成"""
        tasks = make_tasks("1", ("2", True))
        arrows = make_arrows(("1", "2"))
        assert attempt_set_completion(tasks[1], False, tasks, arrows) is False

    def test_completed_task_keeps_completion_even_if_stale(self):
        """已完成任务的请求按原值生效，即使父任务未完成"""
        tasks = make_tasks("1", ("2", True))
        arrows = make_arrows(("1", "2"))
        assert attempt_set_completion(tasks[1], True, tasks, arrows) is True

    def test_incomplete_stays_incomplete(self):
        """未完成任务请求 False"""
        tasks = make_tasks("1")
        assert attempt_set_completion(tasks[0], False, tasks, ()) is False

    def test_dangling_parent_blocks(self):
        """悬空的父任务阻止完成"""
        tasks = make_tasks("2")
        arrows = make_arrows(("ghost", "2"))
        assert attempt_set_completion(tasks[0], True, tasks, arrows) is False

    def test_cyclic_graph_does_not_raise(self):
        """有环的图不抛异常"""
        tasks = make_tasks("1", "2")
        arrows = make_arrows(("1", "2"), ("2", "1"))
        assert attempt_set_completion(tasks[0], True, tasks, arrows) is False

    @pytest.mark.parametrize("parent_done", [True, False])
    @pytest.mark.parametrize("task_done", [True, False])
    @pytest.mark.parametrize("requested", [True, False])
    def test_upgrade_only_when_parents_completed(self, parent_done, task_done, requested):
        """未完成 → 完成 仅在父任务全部完成时发生；完成 → 未完成 总是允许"""
        tasks = make_tasks(("1", parent_done), ("2", task_done))
        arrows = make_arrows(("1", "2"))
        result = attempt_set_completion(tasks[1], requested, tasks, arrows)

        if not task_done and result:
            assert all_parents_completed("2", tasks, arrows)
        if task_done and not requested:
            assert result is False


class TestIsBlocked:
    """阻塞诊断测试"""

    def test_blocked(self):
        tasks = make_tasks("1", "2")
        arrows = make_arrows(("1", "2"))
        assert is_blocked(tasks[1], tasks, arrows) is True

    def test_not_blocked_when_parent_done(self):
        tasks = make_tasks(("1", True), "2")
        arrows = make_arrows(("1", "2"))
        assert is_blocked(tasks[1], tasks, arrows) is False

    def test_completed_task_not_blocked(self):
        tasks = make_tasks("1", ("2", True))
        arrows = make_arrows(("1", "2"))
        assert is_blocked(tasks[1], tasks, arrows) is False
