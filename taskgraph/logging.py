"""
日志模块

taskgraph 的所有日志都经由 TaskgraphLogger 输出:
- stderr 控制台（按级别着色）与可选的轮转日志文件
- 可选的单行 JSON 格式，附带 project_id / task_id / arrow_id
- graph_log 记录图与项目事件，会话与完成守卫共用

级别、文件与格式都来自 .taskgraphrc（log_level / log_file / log_json）。
"""

import json
import logging
import logging.handlers
import sys
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

from rich.console import Console

LOGGER_NAME = "taskgraph"

# 图对象字段，结构化日志中只输出非空值
GRAPH_FIELDS = ("project_id", "task_id", "arrow_id")

CONSOLE_FORMAT = "%(levelname)s [%(module)s] %(message)s"
FILE_FORMAT = "%(asctime)s %(levelname)s [%(module)s] %(message)s"


class LogLevel(Enum):
    """日志级别，取值与 .taskgraphrc 的 log_level 一致"""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"

    def to_logging_level(self) -> int:
        return getattr(logging, self.name)


@dataclass
class LoggingConfig:
    """日志配置"""
    level: LogLevel = LogLevel.WARNING
    console_enabled: bool = True
    file_enabled: bool = False
    file_path: str = ".taskgraph/taskgraph.log"
    max_size_mb: int = 10
    backup_count: int = 3
    json_format: bool = False


class JSONFormatter(logging.Formatter):
    """每条记录输出一行 JSON"""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "module": record.module,
            "message": record.getMessage(),
        }
        for name in GRAPH_FIELDS:
            value = getattr(record, name, None)
            if value is not None:
                entry[name] = value
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False)


class ColoredFormatter(logging.Formatter):
    """控制台格式化器，只给级别名着色，不修改原记录"""

    COLORS = {
        logging.DEBUG: "\033[36m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
    }
    RESET = "\033[0m"

    def __init__(self, fmt: str = CONSOLE_FORMAT, use_colors: bool = True):
        super().__init__(fmt)
        self.use_colors = use_colors

    def format(self, record: logging.LogRecord) -> str:
        if not self.use_colors:
            return super().format(record)
        colored = logging.makeLogRecord(record.__dict__)
        colored.levelname = f"{self.COLORS.get(record.levelno, '')}{record.levelname}{self.RESET}"
        return super().format(colored)


class TaskgraphLogger:
    """
    taskgraph 日志管理器（单例）

    未显式配置时，首次写日志前使用默认配置（warning 级别，仅控制台）。
    """

    _instance: Optional["TaskgraphLogger"] = None

    def __new__(cls) -> "TaskgraphLogger":
        if cls._instance is None:
            instance = super().__new__(cls)
            instance._logger = logging.getLogger(LOGGER_NAME)
            instance._config = None
            cls._instance = instance
        return cls._instance

    def configure(self, config: Optional[LoggingConfig] = None) -> None:
        """按配置重建处理器；旧处理器先关闭"""
        self._config = config or LoggingConfig()
        level = self._config.level.to_logging_level()

        for handler in list(self._logger.handlers):
            handler.close()
            self._logger.removeHandler(handler)
        self._logger.setLevel(level)

        for handler in self._build_handlers():
            handler.setLevel(level)
            self._logger.addHandler(handler)

    def _build_handlers(self) -> List[logging.Handler]:
        config = self._config
        handlers: List[logging.Handler] = []

        if config.console_enabled:
            console = logging.StreamHandler(sys.stderr)
            if config.json_format:
                console.setFormatter(JSONFormatter())
            else:
                console.setFormatter(ColoredFormatter(use_colors=sys.stderr.isatty()))
            handlers.append(console)

        if config.file_enabled:
            log_path = Path(config.file_path)
            log_path.parent.mkdir(parents=True, exist_ok=True)
            rotating = logging.handlers.RotatingFileHandler(
                log_path,
                maxBytes=config.max_size_mb * 1024 * 1024,
                backupCount=config.backup_count,
                encoding="utf-8",
            )
            rotating.setFormatter(JSONFormatter() if config.json_format else logging.Formatter(FILE_FORMAT))
            handlers.append(rotating)

        return handlers

    @property
    def config(self) -> Optional[LoggingConfig]:
        return self._config

    @property
    def logger(self) -> logging.Logger:
        if self._config is None:
            self.configure()
        return self._logger

    def debug(self, message: str, **fields) -> None:
        self.logger.debug(message, extra=fields)

    def info(self, message: str, **fields) -> None:
        self.logger.info(message, extra=fields)

    def warning(self, message: str, **fields) -> None:
        self.logger.warning(message, extra=fields)

    def error(self, message: str, **fields) -> None:
        self.logger.error(message, extra=fields)

    def graph_log(
        self,
        message: str,
        project_id: Optional[str] = None,
        task_id: Optional[str] = None,
        arrow_id: Optional[str] = None,
        level: LogLevel = LogLevel.DEBUG,
    ) -> None:
        """
        图与项目事件日志

        Args:
            message: 日志消息
            project_id: 所属项目
            task_id: 涉及的任务
            arrow_id: 涉及的依赖箭头
            level: 日志级别，图变更默认 debug，项目生命周期用 info
        """
        fields = {"project_id": project_id, "task_id": task_id, "arrow_id": arrow_id}
        self.logger.log(
            level.to_logging_level(),
            message,
            extra={k: v for k, v in fields.items() if v is not None},
        )


def get_logger() -> TaskgraphLogger:
    return TaskgraphLogger()


def configure_logging(
    level: str = "warning",
    console: bool = True,
    file: bool = False,
    file_path: str = LoggingConfig.file_path,
    json_format: bool = False,
) -> TaskgraphLogger:
    """
    按参数配置日志

    Raises:
        ValueError: 未知的日志级别
    """
    logger = get_logger()
    logger.configure(LoggingConfig(
        level=LogLevel(level.lower()),
        console_enabled=console,
        file_enabled=file,
        file_path=file_path,
        json_format=json_format,
    ))
    return logger


_console: Optional[Console] = None


def get_console() -> Console:
    """CLI 共用的 rich 控制台"""
    global _console
    if _console is None:
        _console = Console()
    return _console
