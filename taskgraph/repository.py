"""
项目仓库

定义项目持久化的抽象接口，提供 JSON 文件目录实现和内存实现。
核心引擎只通过该接口读写项目，不直接访问存储。
"""

import json
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Optional

from .errors import ProjectFileError, TaskgraphError
from .graph.model import Project
from .logging import get_logger
from .project_file import project_from_dict, project_to_dict

log = get_logger()


def is_valid_project_id(project_id: str) -> bool:
    """项目 ID 用作文件名，不能包含路径分隔符或指向上级目录"""
    return bool(project_id) and project_id not in (".", "..") and "/" not in project_id and "\\" not in project_id


class ProjectRepository(ABC):
    """项目仓库抽象接口"""

    @abstractmethod
    def list(self) -> List[Project]:
        """按创建顺序列出所有项目"""

    @abstractmethod
    def get(self, project_id: str) -> Optional[Project]:
        """按 ID 获取项目"""

    @abstractmethod
    def save(self, project: Project) -> None:
        """保存项目，并将其记为最近使用的项目"""

    @abstractmethod
    def delete(self, project_id: str) -> bool:
        """删除项目，返回是否存在并被删除"""

    @abstractmethod
    def load_last(self) -> Optional[Project]:
        """加载最近使用的项目"""

    @abstractmethod
    def mark_last(self, project_id: Optional[str]) -> None:
        """记录最近使用的项目（None 表示清除）"""


class InMemoryProjectRepository(ProjectRepository):
    """内存仓库，用于测试和嵌入"""

    def __init__(self):
        self._projects: Dict[str, Project] = {}
        self._last_id: Optional[str] = None

    def list(self) -> List[Project]:
        return list(self._projects.values())

    def get(self, project_id: str) -> Optional[Project]:
        return self._projects.get(project_id)

    def save(self, project: Project) -> None:
        self._projects[project.id] = project
        self._last_id = project.id

    def delete(self, project_id: str) -> bool:
        if project_id not in self._projects:
            return False
        del self._projects[project_id]
        if self._last_id == project_id:
            self._last_id = None
        return True

    def load_last(self) -> Optional[Project]:
        if self._last_id is None:
            return None
        return self._projects.get(self._last_id)

    def mark_last(self, project_id: Optional[str]) -> None:
        self._last_id = project_id


class JsonProjectRepository(ProjectRepository):
    """
    JSON 文件仓库

    目录结构:
        <root>/index.json            项目顺序与最近使用的项目
        <root>/projects/<id>.json    每个项目一个文件
    """

    def __init__(self, root: Path = Path(".taskgraph"), atomic_writes: bool = True):
        self.root = Path(root)
        self.projects_dir = self.root / "projects"
        self.index_path = self.root / "index.json"
        self.atomic_writes = atomic_writes

    def _project_path(self, project_id: str) -> Path:
        return self.projects_dir / f"{project_id}.json"

    def _write(self, path: Path, content: str) -> None:
        """写入文件（支持原子写入）"""
        path.parent.mkdir(parents=True, exist_ok=True)
        if not self.atomic_writes:
            path.write_text(content, encoding="utf-8")
            return

        # 先写临时文件，再重命名
        temp_path = path.with_suffix(path.suffix + ".tmp")
        try:
            temp_path.write_text(content, encoding="utf-8")
            temp_path.replace(path)
        except OSError:
            temp_path.unlink(missing_ok=True)
            raise

    def _read_index(self) -> Dict[str, Any]:
        empty = {"projects": [], "lastProjectId": None}
        if not self.index_path.exists():
            return empty
        try:
            data = json.loads(self.index_path.read_text(encoding="utf-8"))
        except json.JSONDecodeError:
            data = None
        if not isinstance(data, dict) or not isinstance(data.get("projects", []), list):
            log.warning(f"Corrupt repository index, rebuilding: {self.index_path}")
            return empty

        projects = [pid for pid in data.get("projects", []) if isinstance(pid, str) and is_valid_project_id(pid)]
        last_id = data.get("lastProjectId")
        if not (isinstance(last_id, str) and is_valid_project_id(last_id)):
            last_id = None
        return {"projects": projects, "lastProjectId": last_id}

    def _write_index(self, index: Dict[str, Any]) -> None:
        self._write(self.index_path, json.dumps(index, indent=2, ensure_ascii=False))

    def _ordered_ids(self) -> List[str]:
        """索引中的顺序，加上索引遗漏的项目文件"""
        ordered = [pid for pid in self._read_index()["projects"] if self._project_path(pid).exists()]
        if self.projects_dir.exists():
            known = set(ordered)
            for path in sorted(self.projects_dir.glob("*.json")):
                if path.stem not in known:
                    ordered.append(path.stem)
        return ordered

    def list(self) -> List[Project]:
        projects = []
        for project_id in self._ordered_ids():
            project = self.get(project_id)
            if project is not None:
                projects.append(project)
        return projects

    def get(self, project_id: str) -> Optional[Project]:
        if not is_valid_project_id(project_id):
            return None
        path = self._project_path(project_id)
        if not path.exists():
            return None
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            return project_from_dict(data, project_id=project_id)
        except (json.JSONDecodeError, ProjectFileError) as e:
            # 跳过损坏的项目文件
            log.warning(f"Skipping corrupt project file {path}: {e}", project_id=project_id)
            return None

    def save(self, project: Project) -> None:
        if not is_valid_project_id(project.id):
            raise TaskgraphError(f"Invalid project id: {project.id!r}")
        content = json.dumps(project_to_dict(project, include_identity=True), indent=2, ensure_ascii=False)
        self._write(self._project_path(project.id), content)

        index = self._read_index()
        if project.id not in index["projects"]:
            index["projects"].append(project.id)
        index["lastProjectId"] = project.id
        self._write_index(index)
        log.debug(f"Saved project {project.id}", project_id=project.id)

    def delete(self, project_id: str) -> bool:
        if not is_valid_project_id(project_id):
            return False
        path = self._project_path(project_id)
        existed = path.exists()
        path.unlink(missing_ok=True)

        index = self._read_index()
        if project_id in index["projects"]:
            index["projects"].remove(project_id)
            existed = True
        if index["lastProjectId"] == project_id:
            index["lastProjectId"] = None
        if existed:
            self._write_index(index)
            log.debug(f"Deleted project {project_id}", project_id=project_id)
        return existed

    def load_last(self) -> Optional[Project]:
        last_id = self._read_index()["lastProjectId"]
        if not last_id:
            return None
        return self.get(last_id)

    def mark_last(self, project_id: Optional[str]) -> None:
        index = self._read_index()
        index["lastProjectId"] = project_id
        self._write_index(index)
