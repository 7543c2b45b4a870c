"""
项目文件编解码

项目的 JSON 导入/导出。导出格式与画布端一致:
tasks / arrows / taskIdCounter / title / viewport。
"""

import json
import uuid
from pathlib import Path
from typing import Any, Dict, Optional, Sequence

from pydantic import ValidationError

from .errors import ProjectFileError
from .graph.model import Dependency, Position, Project, RoutingStyle, Task, Viewport
from .models import ArrowRecord, ProjectFileModel, TaskRecord

DEFAULT_IMPORT_TITLE = "Imported project"


def next_counter_for(tasks: Sequence[Task]) -> int:
    """根据已有任务推算下一个可用的任务编号（最大数字 ID + 1，至少为 1）"""
    numeric = [int(t.id) for t in tasks if t.id.isdigit()]
    return max(numeric) + 1 if numeric else max(1, len(tasks))


def task_to_dict(task: Task) -> Dict[str, Any]:
    return {
        "id": task.id,
        "data": {"label": task.label, "completed": task.completed},
        "position": {"x": task.position.x, "y": task.position.y},
    }


def arrow_to_dict(arrow: Dependency) -> Dict[str, Any]:
    return {
        "id": arrow.id,
        "source": arrow.source,
        "target": arrow.target,
        "type": arrow.routing_style.value,
    }


def task_from_record(record: TaskRecord) -> Task:
    return Task(
        id=record.id,
        label=record.data.label,
        completed=record.data.completed,
        position=Position(record.position.x, record.position.y),
    )


def arrow_from_record(record: ArrowRecord, routing_style: Optional[RoutingStyle] = None) -> Dependency:
    if routing_style is not None:
        style = routing_style
    elif record.type:
        try:
            style = RoutingStyle.parse(record.type)
        except ValueError:
            raise ProjectFileError(f"Unknown routing style for arrow {record.id}: {record.type}")
    else:
        style = RoutingStyle.STRAIGHT
    return Dependency(id=record.id, source=record.source, target=record.target, routing_style=style)


def project_to_dict(project: Project, include_identity: bool = False) -> Dict[str, Any]:
    """
    转换为字典

    Args:
        project: 项目
        include_identity: 是否包含 id、lastSavedAt 与 routingStyle（仓库存储时使用）
    """
    data: Dict[str, Any] = {}
    if include_identity:
        data["id"] = project.id
    data["title"] = project.title
    data["taskIdCounter"] = project.task_id_counter
    data["tasks"] = [task_to_dict(t) for t in project.tasks]
    data["arrows"] = [arrow_to_dict(a) for a in project.arrows]
    if project.viewport is not None:
        data["viewport"] = {
            "x": project.viewport.x,
            "y": project.viewport.y,
            "zoom": project.viewport.zoom,
        }
    if include_identity and project.last_saved_at:
        data["lastSavedAt"] = project.last_saved_at
    if include_identity and project.routing_style is not None:
        data["routingStyle"] = project.routing_style.value
    return data


def project_from_dict(
    data: Any,
    routing_style: Optional[RoutingStyle] = None,
    project_id: Optional[str] = None,
) -> Project:
    """
    从字典创建项目

    缺失的 tasks / arrows 视为空；缺失的 taskIdCounter 按已有任务推算。
    指定 routing_style 时所有箭头统一改为该样式，并记为项目样式；
    否则沿用文件中的 routingStyle。

    Raises:
        ProjectFileError: 结构不合法
    """
    try:
        model = ProjectFileModel.model_validate(data)
    except ValidationError as e:
        raise ProjectFileError(f"Invalid project file: {e.error_count()} validation error(s)") from e

    tasks = tuple(task_from_record(r) for r in (model.tasks or []))
    arrows = tuple(arrow_from_record(r, routing_style) for r in (model.arrows or []))

    counter = model.task_id_counter
    if counter is None:
        counter = next_counter_for(tasks)

    viewport = None
    if model.viewport is not None:
        viewport = Viewport(model.viewport.x, model.viewport.y, model.viewport.zoom)

    project_style = routing_style
    if project_style is None and model.routing_style:
        try:
            project_style = RoutingStyle.parse(model.routing_style)
        except ValueError:
            raise ProjectFileError(f"Unknown project routing style: {model.routing_style}")

    return Project(
        id=project_id or model.id or str(uuid.uuid4()),
        title=model.title or DEFAULT_IMPORT_TITLE,
        tasks=tasks,
        arrows=arrows,
        task_id_counter=counter,
        last_saved_at=model.last_saved_at,
        viewport=viewport,
        routing_style=project_style,
    )


def export_project(project: Project) -> str:
    """导出为 JSON 文本"""
    return json.dumps(project_to_dict(project), indent=2, ensure_ascii=False)


def import_project(text: str, routing_style: RoutingStyle, project_id: Optional[str] = None) -> Project:
    """
    导入 JSON 文本为新项目

    导入的项目总是获得新的 ID，箭头统一使用当前走线样式。

    Raises:
        ProjectFileError: JSON 无法解析或结构不合法
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ProjectFileError(f"Invalid JSON: {e.msg} (line {e.lineno})") from e

    return project_from_dict(data, routing_style=routing_style, project_id=project_id or str(uuid.uuid4()))


def dump_project(project: Project, path: Path) -> Path:
    """导出到文件"""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(export_project(project), encoding="utf-8")
    return path


def load_project(path: Path, routing_style: RoutingStyle) -> Project:
    """从文件导入"""
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ProjectFileError(f"Cannot read {path}: {e}") from e
    return import_project(text, routing_style)
