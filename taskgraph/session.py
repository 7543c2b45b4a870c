"""
编辑会话

持有当前活动项目、选择状态和撤销/重做历史。
每次图变更都生成新快照，然后依次：推导样式 → 记录历史 → 持久化。
"""

import uuid
from dataclasses import replace
from typing import List, Optional, Tuple

from .errors import ProjectFileError, ProjectNotFoundError, TaskgraphError, UnknownTaskError
from .graph.analyzer import find_dangling_arrows, prune_dangling
from .graph.guard import attempt_set_completion
from .graph.history import HistoryStore
from .graph.model import Dependency, Position, Project, RoutingStyle, Selection, Snapshot, Task
from .graph.style import GraphState, derive_state
from .logging import LogLevel, get_logger
from .project_file import export_project, import_project
from .repository import ProjectRepository

log = get_logger()

INITIAL_TASK_LABEL = "Initial task"


class EditorSession:
    """
    编辑会话

    支持功能:
    - 项目创建/切换/复制/删除/重命名/导入/导出
    - 任务与依赖的增删改
    - 选择状态（任务与箭头互斥）
    - 撤销/重做
    """

    def __init__(
        self,
        repository: ProjectRepository,
        routing_style: RoutingStyle = RoutingStyle.STRAIGHT,
        history_limit: Optional[int] = None,
        default_title: str = "New project",
        prune_on_save: bool = False,
    ):
        """
        初始化编辑会话

        Args:
            repository: 项目仓库
            routing_style: 默认走线样式，用于新建项目和未记录样式的项目
            history_limit: 历史记录上限
            default_title: 新建项目的默认标题
            prune_on_save: 保存前是否移除悬空箭头
        """
        self._repository = repository
        self._default_routing_style = routing_style
        self._routing_style = routing_style
        self._history = HistoryStore(limit=history_limit)
        self._default_title = default_title
        self._prune_on_save = prune_on_save
        self._project: Optional[Project] = None
        self._selection = Selection()
        self._state = derive_state((), ())

    # ------------------------------------------------------------------
    # 状态访问
    # ------------------------------------------------------------------

    @property
    def project(self) -> Optional[Project]:
        return self._project

    @property
    def snapshot(self) -> Snapshot:
        if self._project is None:
            return Snapshot()
        return self._project.snapshot

    @property
    def selection(self) -> Selection:
        return self._selection

    @property
    def state(self) -> GraphState:
        return self._state

    @property
    def history(self) -> HistoryStore:
        return self._history

    @property
    def routing_style(self) -> RoutingStyle:
        return self._routing_style

    @property
    def repository(self) -> ProjectRepository:
        return self._repository

    def _require_project(self) -> Project:
        if self._project is None:
            raise TaskgraphError("No active project")
        return self._project

    def _require_task(self, task_id: str) -> Task:
        task = self.snapshot.get_task(task_id)
        if task is None:
            raise UnknownTaskError(task_id)
        return task

    def _rederive(self) -> None:
        snapshot = self.snapshot
        self._state = derive_state(
            snapshot.tasks,
            snapshot.arrows,
            self._selection.task_id,
            self._selection.arrow_id,
        )

    def _activate(self, project: Project) -> Project:
        """设为活动项目：沿用项目记录的走线样式（没有时用默认样式），重置历史和选择"""
        self._routing_style = project.routing_style or self._default_routing_style
        project = replace(
            project.with_snapshot(
                project.snapshot.with_arrows(a.restyled(self._routing_style) for a in project.arrows)
            ),
            routing_style=self._routing_style,
        )
        self._project = project
        self._selection = Selection()
        self._history.reset()
        self._history.record(project.snapshot)
        self._rederive()
        self._repository.mark_last(project.id)
        log.graph_log(f"Active project: {project.title} ({project.id})", project_id=project.id, level=LogLevel.INFO)
        return project

    def _persist(self, project: Project) -> Project:
        project = project.stamped()
        self._repository.save(project)
        self._project = project
        return project

    def _commit(self, snapshot: Snapshot, **changes) -> Project:
        """提交变更：推导 → 记录 → 持久化"""
        project = self._require_project()
        if self._prune_on_save:
            snapshot = prune_dangling(snapshot)
        project = replace(project.with_snapshot(snapshot), **changes)
        self._project = project
        self._drop_stale_selection()
        self._rederive()
        self._history.record(snapshot)
        return self._persist(project)

    def _drop_stale_selection(self) -> None:
        snapshot = self.snapshot
        if self._selection.task_id and snapshot.get_task(self._selection.task_id) is None:
            self._selection = Selection()
        elif self._selection.arrow_id and snapshot.get_arrow(self._selection.arrow_id) is None:
            self._selection = Selection()

    # ------------------------------------------------------------------
    # 项目生命周期
    # ------------------------------------------------------------------

    def open_last(self, create: bool = True) -> Optional[Project]:
        """
        打开最近使用的项目；没有时打开第一个项目

        Args:
            create: 仓库为空时是否新建项目
        """
        project = self._repository.load_last()
        if project is None:
            projects = self._repository.list()
            if projects:
                project = projects[0]
        if project is None:
            return self.new_project() if create else None
        return self._activate(project)

    def new_project(self, title: Optional[str] = None) -> Project:
        """新建项目，带一个初始任务"""
        project = Project(
            id=str(uuid.uuid4()),
            title=title or self._default_title,
            tasks=(Task(id="0", label=INITIAL_TASK_LABEL, position=Position(100, 100)),),
            arrows=(),
            task_id_counter=1,
            routing_style=self._default_routing_style,
        )
        project = self._persist(project)
        log.graph_log(f"Created project {project.title}", project_id=project.id, level=LogLevel.INFO)
        return self._activate(project)

    def switch_project(self, project_id: str) -> Project:
        """切换活动项目（先保存当前项目）"""
        target = self._repository.get(project_id)
        if target is None:
            raise ProjectNotFoundError(project_id)
        if self._project is not None:
            self._persist(self._project)
        return self._activate(target)

    def copy_project(self) -> Project:
        """将当前项目另存为新项目"""
        current = self._persist(self._require_project())
        copy = replace(current, id=str(uuid.uuid4()), title=f"{current.title} (copy)")
        copy = self._persist(copy)
        log.graph_log(f"Copied project {current.id} -> {copy.id}", project_id=copy.id, level=LogLevel.INFO)
        return self._activate(copy)

    def rename_project(self, title: str) -> Project:
        """修改项目标题（不记录历史）"""
        project = replace(self._require_project(), title=title)
        return self._persist(project)

    def delete_project(self, project_id: str) -> Optional[Project]:
        """
        删除项目

        删除的是活动项目时，切换到相邻项目；没有剩余项目时活动项目为空。

        Returns:
            删除后的活动项目

        Raises:
            ProjectNotFoundError: 项目不存在
        """
        projects = self._repository.list()
        ids = [p.id for p in projects]
        if project_id not in ids:
            raise ProjectNotFoundError(project_id)

        index = ids.index(project_id)
        self._repository.delete(project_id)
        log.graph_log(f"Deleted project {project_id}", project_id=project_id, level=LogLevel.INFO)

        if self._project is None or self._project.id != project_id:
            return self._project

        remaining = [p for p in projects if p.id != project_id]
        if not remaining:
            self._project = None
            self._selection = Selection()
            self._history.reset()
            self._rederive()
            self._repository.mark_last(None)
            return None

        return self._activate(remaining[min(index, len(remaining) - 1)])

    def list_projects(self) -> List[Project]:
        return self._repository.list()

    def import_text(self, text: str) -> Project:
        """
        导入项目文件内容为新项目并设为活动项目

        Raises:
            ProjectFileError: 文件不合法；此时活动项目和历史保持不变
        """
        try:
            project = import_project(text, self._routing_style)
        except ProjectFileError:
            log.warning("Import rejected: malformed project file")
            raise
        project = self._persist(project)
        return self._activate(project)

    def export_text(self) -> str:
        return export_project(self._require_project())

    def dangling_arrows(self) -> Tuple[Dependency, ...]:
        snapshot = self.snapshot
        return find_dangling_arrows(snapshot.tasks, snapshot.arrows)

    # ------------------------------------------------------------------
    # 图变更
    # ------------------------------------------------------------------

    def add_task(self, label: Optional[str] = None, x: float = 0.0, y: float = 0.0) -> Task:
        """添加任务，ID 取自项目计数器"""
        project = self._require_project()
        counter = project.task_id_counter
        existing = set(project.snapshot.task_ids)
        while str(counter) in existing:
            counter += 1

        task = Task(id=str(counter), label=label or f"Task {counter}", position=Position(x, y))
        self._commit(project.snapshot.with_tasks(project.tasks + (task,)), task_id_counter=counter + 1)
        log.graph_log(f"Added task {task.id}", project_id=project.id, task_id=task.id)
        return task

    def remove_task(self, task_id: str) -> None:
        """删除任务及其关联箭头"""
        self._require_task(task_id)
        snapshot = self.snapshot
        self._commit(Snapshot(
            tasks=tuple(t for t in snapshot.tasks if t.id != task_id),
            arrows=tuple(a for a in snapshot.arrows if a.source != task_id and a.target != task_id),
        ))

    def edit_task(
        self,
        task_id: str,
        label: Optional[str] = None,
        completed: Optional[bool] = None,
    ) -> Task:
        """
        编辑任务标签和完成状态

        完成状态经过守卫：父任务未全部完成时，完成请求被钳制为 False。
        """
        task = self._require_task(task_id)
        snapshot = self.snapshot

        new_completed = task.completed
        if completed is not None:
            new_completed = attempt_set_completion(task, completed, snapshot.tasks, snapshot.arrows)

        updated = replace(
            task,
            label=task.label if label is None else label,
            completed=new_completed,
        )
        if updated == task:
            # 被钳制的完成请求或无变化的编辑不产生历史记录
            return task
        self._commit(snapshot.with_tasks(updated if t.id == task_id else t for t in snapshot.tasks))
        return updated

    def set_completed(self, task_id: str, completed: bool) -> bool:
        """设置完成状态，返回实际生效的值"""
        return self.edit_task(task_id, completed=completed).completed

    def move_task(self, task_id: str, x: float, y: float) -> Task:
        current = self._require_task(task_id)
        task = current.moved_to(x, y)
        if task == current:
            return task
        snapshot = self.snapshot
        self._commit(snapshot.with_tasks(task if t.id == task_id else t for t in snapshot.tasks))
        return task

    def _next_arrow_id(self) -> str:
        arrow_ids = set(self.snapshot.arrow_ids)
        n = len(arrow_ids) + 1
        while f"e{n}" in arrow_ids:
            n += 1
        return f"e{n}"

    def add_arrow(self, source: str, target: str) -> Optional[Dependency]:
        """
        添加依赖箭头

        Returns:
            新箭头；同一 (source, target) 已存在时返回 None（不视为错误）

        Raises:
            UnknownTaskError: 端点任务不存在
        """
        self._require_task(source)
        self._require_task(target)
        snapshot = self.snapshot

        if snapshot.has_arrow_between(source, target):
            log.graph_log(f"Duplicate arrow {source} -> {target} ignored", project_id=self._project.id)
            return None

        arrow = Dependency(
            id=self._next_arrow_id(),
            source=source,
            target=target,
            routing_style=self._routing_style,
        )
        self._commit(snapshot.with_arrows(snapshot.arrows + (arrow,)))
        log.graph_log(f"Added arrow {arrow.id}: {source} -> {target}", project_id=self._project.id, arrow_id=arrow.id)
        return arrow

    def remove_arrow(self, arrow_id: str) -> bool:
        snapshot = self.snapshot
        if snapshot.get_arrow(arrow_id) is None:
            return False
        self._commit(snapshot.with_arrows(a for a in snapshot.arrows if a.id != arrow_id))
        return True

    def set_routing_style(self, style: RoutingStyle) -> None:
        """修改走线样式，所有箭头统一改为该样式，并随项目保存"""
        self._routing_style = style
        if self._project is None:
            self._default_routing_style = style
            return
        snapshot = self.snapshot
        self._commit(snapshot.with_arrows(a.restyled(style) for a in snapshot.arrows), routing_style=style)

    # ------------------------------------------------------------------
    # 选择
    # ------------------------------------------------------------------

    def select_task(self, task_id: str) -> None:
        self._require_task(task_id)
        self._selection = Selection.of_task(task_id)
        self._rederive()

    def select_arrow(self, arrow_id: str) -> None:
        if self.snapshot.get_arrow(arrow_id) is None:
            raise TaskgraphError(f"Arrow not found: {arrow_id}")
        self._selection = Selection.of_arrow(arrow_id)
        self._rederive()

    def clear_selection(self) -> None:
        self._selection = Selection()
        self._rederive()

    def delete_selected(self) -> bool:
        """删除选中的任务或箭头"""
        if self._selection.task_id:
            self.remove_task(self._selection.task_id)
            return True
        if self._selection.arrow_id:
            return self.remove_arrow(self._selection.arrow_id)
        return False

    # ------------------------------------------------------------------
    # 撤销/重做
    # ------------------------------------------------------------------

    def _restore(self, snapshot: Optional[Snapshot]) -> bool:
        if snapshot is None:
            return False
        project = self._require_project().with_snapshot(snapshot)
        if snapshot.arrows:
            # 撤销走线样式修改时，项目样式跟随箭头
            self._routing_style = snapshot.arrows[0].routing_style
            project = replace(project, routing_style=self._routing_style)
        self._project = project
        self._drop_stale_selection()
        self._rederive()
        self._persist(self._project)
        return True

    def undo(self) -> bool:
        """撤销，返回是否生效"""
        self._require_project()
        return self._restore(self._history.undo())

    def redo(self) -> bool:
        """重做，返回是否生效"""
        self._require_project()
        return self._restore(self._history.redo())
