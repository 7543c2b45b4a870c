"""
样式推导测试
"""

import json

from taskgraph.graph.style import ArrowKind, TaskKind, derive_state

from conftest import make_arrows, make_snapshot, make_tasks


class TestTaskStates:
    """任务状态测试"""

    def test_root_task_is_ready(self):
        """没有依赖的未完成任务为 ready"""
        state = derive_state(make_tasks("1"), ())
        assert state.task_states["1"].kind == TaskKind.READY

    def test_task_with_incomplete_parent_is_default(self):
        """父任务未完成的未完成任务为 default"""
        snapshot = make_snapshot(["1", "2"], [("1", "2")])
        state = derive_state(snapshot.tasks, snapshot.arrows)
        assert state.task_states["1"].kind == TaskKind.READY
        assert state.task_states["2"].kind == TaskKind.DEFAULT

    def test_completed_consistent_task_is_default(self):
        """一致的已完成任务为 default，并带完成标记"""
        snapshot = make_snapshot([("1", True), ("2", True)], [("1", "2")])
        state = derive_state(snapshot.tasks, snapshot.arrows)
        assert state.task_states["2"].kind == TaskKind.DEFAULT
        assert state.task_states["2"].completed is True

    def test_stale_completion_is_blocked(self):
        """已完成但父任务未完成为 blocked"""
        snapshot = make_snapshot(["1", ("2", True)], [("1", "2")])
        state = derive_state(snapshot.tasks, snapshot.arrows)
        assert state.task_states["2"].kind == TaskKind.BLOCKED
        assert state.task_states["2"].completed is True

    def test_selected_takes_priority(self):
        """选中优先于其他状态"""
        snapshot = make_snapshot(["1", ("2", True)], [("1", "2")])
        state = derive_state(snapshot.tasks, snapshot.arrows, selected_task_id="2")
        assert state.task_states["2"].kind == TaskKind.SELECTED
        assert state.task_states["2"].completed is True

    def test_tasks_of_kind(self):
        """按状态筛选任务"""
        snapshot = make_snapshot(["1", "2", "3"], [("1", "2")])
        state = derive_state(snapshot.tasks, snapshot.arrows)
        assert state.tasks_of_kind(TaskKind.READY) == ["1", "3"]


class TestArrowStates:
    """箭头状态测试"""

    def test_normal_arrow(self):
        snapshot = make_snapshot(["1", "2"], [("1", "2")])
        state = derive_state(snapshot.tasks, snapshot.arrows)
        assert state.arrow_states["e1"].kind == ArrowKind.NORMAL
        assert state.arrow_states["e1"].selected is False
        assert state.has_cycles is False

    def test_cyclic_and_selected(self):
        """环与选中可以同时生效"""
        snapshot = make_snapshot(["1", "2"], [("1", "2"), ("2", "1")])
        state = derive_state(snapshot.tasks, snapshot.arrows, selected_arrow_id="e2")
        assert state.arrow_states["e2"].cyclic is True
        assert state.arrow_states["e2"].selected is True
        assert state.arrow_states["e1"].selected is False
        assert state.cyclic_arrow_ids == {"e1", "e2"}


class TestDeterminism:
    """确定性与幂等性测试"""

    def test_repeated_calls_identical(self):
        """重复调用输出字节一致"""
        snapshot = make_snapshot(["1", ("2", True), "3"], [("1", "2"), ("2", "3"), ("3", "1")])
        first = json.dumps(derive_state(snapshot.tasks, snapshot.arrows, "3").to_dict())
        second = json.dumps(derive_state(snapshot.tasks, snapshot.arrows, "3").to_dict())
        assert first == second

    def test_idempotent(self):
        """对同一快照再次推导结果不变"""
        snapshot = make_snapshot([("1", True), "2"], [("1", "2")])
        state = derive_state(snapshot.tasks, snapshot.arrows)
        again = derive_state(snapshot.tasks, snapshot.arrows)
        assert state == again

    def test_order_follows_snapshot(self):
        """输出顺序与快照顺序一致"""
        snapshot = make_snapshot(["b", "a", "c"], [("c", "a"), ("b", "a")])
        state = derive_state(snapshot.tasks, snapshot.arrows)
        assert list(state.task_states) == ["b", "a", "c"]
        assert list(state.arrow_states) == ["e1", "e2"]

    def test_does_not_mutate_snapshot(self):
        """推导不修改快照"""
        snapshot = make_snapshot(["1", "2"], [("1", "2")])
        before = (snapshot.tasks, snapshot.arrows)
        derive_state(snapshot.tasks, snapshot.arrows, "1")
        assert (snapshot.tasks, snapshot.arrows) == before
