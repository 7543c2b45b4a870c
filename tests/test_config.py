"""
配置解析测试

测试 .taskgraphrc 配置文件的加载和验证。
"""

import json
import logging

import pytest

from taskgraph.config import RC_FILE, apply_logging, load_config
from taskgraph.errors import ConfigError
from taskgraph.graph.model import RoutingStyle
from taskgraph.logging import LogLevel
from taskgraph.models import TaskgraphConfig


@pytest.fixture
def rc_factory(temp_dir):
    """写入 .taskgraphrc 的工厂"""
    def _create(content):
        path = temp_dir / RC_FILE
        if isinstance(content, str):
            path.write_text(content)
        else:
            path.write_text(json.dumps(content))
        return path
    return _create


class TestLoadConfig:
    """配置加载测试"""

    def test_defaults_without_rc_file(self, temp_dir):
        config = load_config(temp_dir)
        assert config == TaskgraphConfig()
        assert config.routing_style == RoutingStyle.STRAIGHT
        assert config.storage_dir == ".taskgraph"
        assert config.history_limit is None
        assert config.log_level == "warning"

    def test_full_config(self, temp_dir, rc_factory):
        rc_factory({
            "routing_style": "orthogonal",
            "storage_dir": "data",
            "history_limit": 50,
            "log_level": "debug",
            "log_file": "logs/tg.log",
            "output_format": "json",
            "default_project_title": "Sprint",
        })
        config = load_config(temp_dir)
        assert config.routing_style == RoutingStyle.ORTHOGONAL
        assert config.storage_dir == "data"
        assert config.history_limit == 50
        assert config.output_format == "json"
        assert config.default_project_title == "Sprint"

    def test_canvas_routing_alias(self, temp_dir, rc_factory):
        """走线样式接受画布端命名"""
        rc_factory({"routing_style": "bezier"})
        assert load_config(temp_dir).routing_style == RoutingStyle.CURVED

    @pytest.mark.parametrize("content", [
        "{oops",
        "[]",
        {"history_limit": 0},
        {"log_level": "verbose"},
        {"routing_style": "zigzag"},
        {"output_format": "xml"},
    ])
    def test_invalid_config(self, temp_dir, rc_factory, content):
        """不合法的配置抛出 ConfigError"""
        rc_factory(content)
        with pytest.raises(ConfigError):
            load_config(temp_dir)


class TestApplyLogging:
    """日志配置测试"""

    def test_level_from_config(self):
        logger = apply_logging(TaskgraphConfig(log_level="error"))
        assert logger.config.level == LogLevel.ERROR
        assert logger.config.file_enabled is False

    def test_explicit_level_overrides(self):
        logger = apply_logging(TaskgraphConfig(log_level="error"), level="debug")
        assert logger.logger.level == logging.DEBUG

    def test_log_file(self, temp_dir):
        log_path = temp_dir / "tg.log"
        logger = apply_logging(TaskgraphConfig(log_file=str(log_path)))
        assert logger.config.file_enabled is True
        assert logger.config.file_path == str(log_path)

    def test_log_json(self, temp_dir):
        logger = apply_logging(TaskgraphConfig(log_file=str(temp_dir / "tg.log"), log_json=True))
        assert logger.config.json_format is True
