"""Unit tests for the config module."""

import os

import pytest

from ganttflow.config import (
    BUFFER_DAYS,
    COLUMN_WIDTH,
    MAX_DAYS_IN_VIEW,
    GanttSettings,
)
from ganttflow.exceptions import ConfigurationError


class TestGanttSettings:
    """Tests for GanttSettings defaults and validation."""

    def test_defaults_match_constants(self):
        """Test default settings use the module constants."""
        settings = GanttSettings()
        assert settings.column_width == COLUMN_WIDTH == 40
        assert settings.max_days_in_view == MAX_DAYS_IN_VIEW == 365
        assert settings.buffer_days == BUFFER_DAYS == 60
        assert settings.viewport_days == 180
        assert settings.edge_threshold_px == 500
        assert settings.batch_debounce == pytest.approx(0.15)
        assert settings.relationship_debounce == pytest.approx(0.5)

    def test_rejects_non_positive_column_width(self):
        """Test a zero column width is rejected."""
        with pytest.raises(ConfigurationError):
            GanttSettings(column_width=0)

    def test_rejects_bound_smaller_than_buffer(self):
        """Test the window bound must hold at least one buffer."""
        with pytest.raises(ConfigurationError):
            GanttSettings(max_days_in_view=30, buffer_days=60)

    def test_rejects_viewport_without_room_for_margins(self):
        """Test the jump span must cover the start and end margins."""
        with pytest.raises(ConfigurationError, match="viewport_days"):
            GanttSettings(viewport_days=59)
        assert GanttSettings(viewport_days=60).viewport_days == 60


class TestFromEnv:
    """Tests for GanttSettings.from_env."""

    def test_reads_prefixed_variables(self, monkeypatch):
        """Test GANTTFLOW_* variables override the defaults."""
        monkeypatch.setenv("GANTTFLOW_COLUMN_WIDTH", "50")
        monkeypatch.setenv("GANTTFLOW_BATCH_DEBOUNCE", "0.3")
        settings = GanttSettings.from_env()
        assert settings.column_width == 50
        assert settings.batch_debounce == pytest.approx(0.3)
        assert settings.buffer_days == 60

    def test_empty_variable_is_ignored(self, monkeypatch):
        """Test an empty variable keeps the default."""
        monkeypatch.setenv("GANTTFLOW_ROW_HEIGHT", "")
        assert GanttSettings.from_env().row_height == 40

    def test_invalid_value_raises(self, monkeypatch):
        """Test a non-numeric value raises ConfigurationError."""
        monkeypatch.setenv("GANTTFLOW_BUFFER_DAYS", "sixty")
        with pytest.raises(ConfigurationError, match="GANTTFLOW_BUFFER_DAYS"):
            GanttSettings.from_env()

    def test_loads_dotenv_file(self, tmp_path, monkeypatch):
        """Test values are read from a .env file."""
        monkeypatch.delenv("GANTTFLOW_VIEWPORT_DAYS", raising=False)
        env_file = tmp_path / ".env"
        env_file.write_text("GANTTFLOW_VIEWPORT_DAYS=120\n")
        try:
            settings = GanttSettings.from_env(str(env_file))
        finally:
            os.environ.pop("GANTTFLOW_VIEWPORT_DAYS", None)
        assert settings.viewport_days == 120

    def test_finds_dotenv_in_working_directory(self, tmp_path, monkeypatch):
        """Test a .env in the current directory is used when no path is given."""
        monkeypatch.delenv("GANTTFLOW_COLUMN_WIDTH", raising=False)
        (tmp_path / ".env").write_text("GANTTFLOW_COLUMN_WIDTH=20\n")
        monkeypatch.chdir(tmp_path)
        try:
            settings = GanttSettings.from_env()
        finally:
            os.environ.pop("GANTTFLOW_COLUMN_WIDTH", None)
        assert settings.column_width == 20
