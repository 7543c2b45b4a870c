"""Type-safe configuration and project file models with validation."""
from __future__ import annotations
from typing import Literal, Any
from pydantic import BaseModel, Field, field_validator

from .graph.model import RoutingStyle


def _coerce_id(v: Any) -> Any:
    # Canvas exports sometimes carry numeric ids
    if isinstance(v, (int, float)) and not isinstance(v, bool):
        return str(int(v))
    return v


class PositionRecord(BaseModel):
    x: float = 0.0
    y: float = 0.0


class TaskDataRecord(BaseModel):
    label: str = ""
    completed: bool = False


class TaskRecord(BaseModel):
    """A task as stored in a project file."""
    id: str
    data: TaskDataRecord = Field(default_factory=TaskDataRecord)
    position: PositionRecord = Field(default_factory=PositionRecord)

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v):
        return _coerce_id(v)


class ArrowRecord(BaseModel):
    """A dependency arrow as stored in a project file."""
    id: str
    source: str
    target: str
    type: str | None = None

    @field_validator("id", "source", "target", mode="before")
    @classmethod
    def coerce_ids(cls, v):
        return _coerce_id(v)


class ViewportRecord(BaseModel):
    x: float = 0.0
    y: float = 0.0
    zoom: float = 1.0


class ProjectFileModel(BaseModel):
    """Validated project file document. Unknown keys are ignored."""
    model_config = {"populate_by_name": True}

    id: str | None = None
    title: str | None = None
    task_id_counter: int | None = Field(default=None, alias="taskIdCounter", ge=0)
    tasks: list[TaskRecord] | None = None
    arrows: list[ArrowRecord] | None = None
    viewport: ViewportRecord | None = None
    last_saved_at: str | None = Field(default=None, alias="lastSavedAt")
    routing_style: str | None = Field(default=None, alias="routingStyle")


class TaskgraphConfig(BaseModel):
    """Global/repo-level configuration (.taskgraphrc)."""
    routing_style: RoutingStyle = RoutingStyle.STRAIGHT
    storage_dir: str = ".taskgraph"
    history_limit: int | None = Field(default=None, ge=1)
    log_level: Literal["debug", "info", "warning", "error"] = "warning"
    log_file: str | None = None
    log_json: bool = False
    output_format: Literal["rich", "json"] = "rich"
    default_project_title: str = "New project"

    @field_validator("routing_style", mode="before")
    @classmethod
    def parse_routing_style(cls, v):
        if isinstance(v, str):
            return RoutingStyle.parse(v)
        return v
