"""Tests for configuration persistence, logging setup and collaborator calls."""

import json
import logging
from datetime import datetime

import pytest

from tradeboard.editor.elements import ElementType, LinearElement, ShapeElement, StrokeStyle
from tradeboard.editor.external import element_from_tool_call
from tradeboard.services import logging_service
from tradeboard.services.config_service import DEFAULT_CONFIG, ConfigService


@pytest.fixture
def config_path(tmp_path):
    return tmp_path / "config" / "config.json"


class TestConfigService:
    def test_missing_file_is_created_with_defaults(self, config_path):
        config = ConfigService(config_path)

        assert config_path.exists()
        assert config.theme == "light"
        assert not config.dark_mode
        assert config.show_minimap
        assert config.eraser_size == 30
        assert json.loads(config_path.read_text()) == DEFAULT_CONFIG

    def test_values_merge_over_defaults(self, config_path):
        config_path.parent.mkdir(parents=True)
        config_path.write_text(json.dumps({
            "theme": "dark",
            "default_style": {"stroke_color": "#ff5252"},
        }))

        config = ConfigService(config_path)
        assert config.dark_mode
        assert config.default_style["stroke_color"] == "#ff5252"
        assert config.default_style["font_family"] == "Kalam"
        assert config.show_grid is False

    def test_corrupted_file_is_recreated(self, config_path):
        config_path.parent.mkdir(parents=True)
        config_path.write_text("{not json")

        config = ConfigService(config_path)
        assert config.theme == "light"
        assert json.loads(config_path.read_text()) == DEFAULT_CONFIG

    def test_non_object_is_rejected(self, config_path):
        config_path.parent.mkdir(parents=True)
        config_path.write_text("[1, 2, 3]")
        assert ConfigService(config_path).eraser_size == 30

    @pytest.mark.parametrize("stored, expected", [(1, 5), (500, 100), ("big", 30), (42, 42)])
    def test_eraser_size_is_sanitized(self, config_path, stored, expected):
        config = ConfigService(config_path)
        config.set("eraser_size", stored)
        assert config.eraser_size == expected

    def test_set_needs_save_to_persist(self, config_path):
        config = ConfigService(config_path)
        config.set("show_grid", True)
        assert ConfigService(config_path).show_grid is False

        config.save()
        assert ConfigService(config_path).show_grid is True


class TestLogging:
    def test_setup_is_idempotent(self, tmp_path, monkeypatch):
        root = logging.getLogger()
        saved_handlers = list(root.handlers)
        saved_level = root.level
        monkeypatch.setattr(logging_service, "_logging_initialized", False)
        monkeypatch.delenv(logging_service.LOG_LEVEL_ENV, raising=False)
        try:
            logging_service.setup_logging(logging.DEBUG, log_dir=tmp_path)
            handlers = list(root.handlers)
            logging_service.setup_logging(logging.DEBUG, log_dir=tmp_path)
            assert root.handlers == handlers
            assert any(p.name.startswith("tradeboard_") for p in tmp_path.iterdir())

            logging_service.get_logger("tradeboard.test").info("hello")
            assert "hello" in logging_service.log_file_path(tmp_path).read_text()
        finally:
            for handler in root.handlers:
                handler.close()
            root.handlers[:] = saved_handlers
            root.setLevel(saved_level)

    @pytest.mark.parametrize("value, expected", [
        ("debug", logging.DEBUG),
        (" WARNING ", logging.WARNING),
        ("chatty", logging.INFO),
        ("", logging.INFO),
    ])
    def test_level_from_environment(self, monkeypatch, value, expected):
        monkeypatch.setenv(logging_service.LOG_LEVEL_ENV, value)
        assert logging_service.resolve_log_level(logging.INFO) == expected

    def test_log_file_is_daily(self, tmp_path):
        path = logging_service.log_file_path(tmp_path, datetime(2024, 3, 5, 23, 59))
        assert path == tmp_path / "tradeboard_20240305.log"


class TestExternalCalls:
    def test_draw_level_spans_viewport(self):
        element = element_from_tool_call(
            "draw_level", {"y": 120, "color": "#00ff00", "label": "R1"}, 800
        )
        assert isinstance(element, LinearElement)
        assert element.kind == ElementType.LINE
        assert (element.x, element.y, element.width, element.height) == (0, 120, 800, 0)
        assert element.label == "R1"
        assert element.style.stroke_color == "#00ff00"
        assert element.style.stroke_style == StrokeStyle.DASHED

    def test_draw_level_defaults(self):
        element = element_from_tool_call("draw_level", {"y": "55.5"}, 640)
        assert element.y == 55.5
        assert element.style.stroke_color == "#ff0000"
        assert element.label == ""

    def test_draw_zone(self):
        element = element_from_tool_call(
            "draw_zone", {"x": 10, "y": 20, "width": 300, "height": 40}, 800
        )
        assert isinstance(element, ShapeElement)
        assert (element.x, element.y, element.width, element.height) == (10, 20, 300, 40)
        assert element.style.background_color == "rgba(0, 255, 0, 0.2)"
        assert element.style.stroke_color == "transparent"
        assert element.style.opacity == 50

    def test_unknown_call_is_ignored(self):
        assert element_from_tool_call("draw_rocket", {"y": 1}, 800) is None

    @pytest.mark.parametrize("args", [{}, {"y": "high"}, {"y": None}])
    def test_malformed_level_is_ignored(self, args):
        assert element_from_tool_call("draw_level", args, 800) is None
