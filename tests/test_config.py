"""Tests for settings normalisation and logging configuration."""

import logging

import pytest
from pydantic import ValidationError

from boardcore.config import MAX_SNAP_TOLERANCE, Settings
from boardcore.utils.logging import (
    bind_board_context,
    board_context,
    clear_board_context,
    configure_logging,
    get_logger,
)


class TestSettings:
    def test_defaults(self) -> None:
        config = Settings(_env_file=None)
        assert config.snap_tolerance == 32
        assert config.effective_snap_tolerance == 32
        assert config.port == 8080

    def test_values_are_clamped(self) -> None:
        config = Settings(
            _env_file=None,
            stroke_width=0.2,
            connector_width=-3,
            stroke_smoothing=1.7,
            snap_tolerance=1000,
        )
        assert config.stroke_width == 1
        assert config.connector_width == 1
        assert config.stroke_smoothing == 1
        assert config.snap_tolerance == MAX_SNAP_TOLERANCE

    def test_negative_tolerance_floors_at_zero(self) -> None:
        assert Settings(_env_file=None, snap_tolerance=-5).snap_tolerance == 0

    def test_snapping_switched_off(self) -> None:
        config = Settings(_env_file=None, snap_to_anchors=False)
        assert config.effective_snap_tolerance == 0

    def test_environment_prefix(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("BOARD_PORT", "9090")
        monkeypatch.setenv("BOARD_CURSOR_LABEL", "Grace")
        config = Settings(_env_file=None)
        assert config.port == 9090
        assert config.cursor_label == "Grace"

    def test_unknown_log_format_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Settings(_env_file=None, log_format="xml")


class TestLogging:
    def test_configure_sets_root_level(self, configure_test_logging: None) -> None:
        assert logging.getLogger().level == logging.DEBUG

    def test_json_output_carries_board_context(self, capsys: pytest.CaptureFixture[str]) -> None:
        configure_logging(level="INFO", log_format="json")
        bind_board_context(board_id="b-42", client_id="c-7")
        get_logger("tests").info("hello", extra_field=1)
        out = capsys.readouterr().out
        assert '"board_id": "b-42"' in out
        assert '"client_id": "c-7"' in out
        assert '"event": "hello"' in out

    def test_scoped_board_context_is_unbound_on_exit(self, capsys: pytest.CaptureFixture[str]) -> None:
        configure_logging(level="INFO", log_format="json")
        logger = get_logger("tests")
        with board_context(board_id="b-9"):
            logger.info("inside")
        logger.info("outside")
        inside, outside = capsys.readouterr().out.strip().splitlines()
        assert '"board_id": "b-9"' in inside
        assert "board_id" not in outside

    def test_clear_board_context(self, capsys: pytest.CaptureFixture[str]) -> None:
        configure_logging(level="INFO", log_format="json")
        bind_board_context(board_id="b-1")
        clear_board_context()
        get_logger("tests").info("cleared")
        assert "board_id" not in capsys.readouterr().out

    def test_bound_logger_keeps_fields(self, capsys: pytest.CaptureFixture[str]) -> None:
        configure_logging(level="INFO", log_format="json")
        get_logger("tests").bind(request_id="r1").warning("bound")
        out = capsys.readouterr().out
        assert '"request_id": "r1"' in out
        assert '"level": "warning"' in out
