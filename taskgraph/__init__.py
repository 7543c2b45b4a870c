"""Taskgraph - task dependency graph engine with completion tracking."""
__version__ = "1.0.0"

from .graph import (
    Dependency,
    GraphState,
    HistoryStore,
    Project,
    RoutingStyle,
    Selection,
    Snapshot,
    Task,
    attempt_set_completion,
    derive_state,
    detect_cycles,
)
from .errors import TaskgraphError, ProjectFileError, ProjectNotFoundError, UnknownTaskError, ConfigError
from .models import TaskgraphConfig
from .repository import ProjectRepository, JsonProjectRepository, InMemoryProjectRepository
from .session import EditorSession
from .logging import get_logger, configure_logging, TaskgraphLogger

__all__ = [
    "Dependency",
    "GraphState",
    "HistoryStore",
    "Project",
    "RoutingStyle",
    "Selection",
    "Snapshot",
    "Task",
    "attempt_set_completion",
    "derive_state",
    "detect_cycles",
    "TaskgraphError",
    "ProjectFileError",
    "ProjectNotFoundError",
    "UnknownTaskError",
    "ConfigError",
    "TaskgraphConfig",
    "ProjectRepository",
    "JsonProjectRepository",
    "InMemoryProjectRepository",
    "EditorSession",
    "get_logger",
    "configure_logging",
    "TaskgraphLogger",
]
