"""
异常定义

所有对外抛出的错误都继承自 TaskgraphError，CLI 统一捕获后输出。
"""


class TaskgraphError(Exception):
    """Taskgraph 基础异常"""
    pass


class ProjectFileError(TaskgraphError):
    """项目文件无法解析或结构不合法"""
    pass


class ProjectNotFoundError(TaskgraphError):
    """项目不存在"""

    def __init__(self, project_id: str):
        super().__init__(f"Project not found: {project_id}")
        self.project_id = project_id


class UnknownTaskError(TaskgraphError):
    """任务不存在"""

    def __init__(self, task_id: str):
        super().__init__(f"Task not found: {task_id}")
        self.task_id = task_id


class ConfigError(TaskgraphError):
    """配置文件不合法"""
    pass
