"""
Test configuration loading
"""
from pathlib import Path

import pytest

from slides2pdf.core.config import ConfigProvider, Settings
from slides2pdf.core.errors import MissingKeyError


class TestConfigProvider:
    """Test ConfigProvider"""

    def test_defaults_when_file_missing(self, tmp_path: Path):
        config = ConfigProvider.from_file(tmp_path / "missing.yaml")
        assert config.get("DIRECTORY", "output") == "output"
        assert config.get("SCRIBD", "rendertime") == "100"
        assert config.source is None

    def test_loads_yaml_sections(self, tmp_path: Path):
        path = tmp_path / "config.yaml"
        path.write_text(
            "DIRECTORY:\n"
            "  output: pdfs\n"
            "SCRIBD:\n"
            "  rendertime: 250\n",
            encoding="utf-8",
        )
        config = ConfigProvider.from_file(path)
        assert config.get("DIRECTORY", "output") == "pdfs"
        assert config.get("DIRECTORY", "filename") == "title"
        assert config.get("SCRIBD", "rendertime") == "250"
        assert config.render_time == 250
        assert config.source == path

    def test_missing_key_raises(self):
        config = ConfigProvider()
        with pytest.raises(MissingKeyError) as excinfo:
            config.get("DIRECTORY", "nope")
        assert "DIRECTORY.nope" in str(excinfo.value)

    def test_missing_section_raises(self):
        config = ConfigProvider()
        with pytest.raises(MissingKeyError):
            config.get("NOPE", "output")

    def test_missing_key_is_a_key_error(self):
        with pytest.raises(KeyError):
            ConfigProvider().get("SCRIBD", "unknown")

    def test_get_or(self):
        config = ConfigProvider({"DIRECTORY": {"temp": ""}})
        assert config.get_or("DIRECTORY", "temp", "fallback") == "fallback"
        assert config.get_or("OTHER", "x", "fallback") == "fallback"
        assert config.temp_root is None

    def test_invalid_file_rejected(self, tmp_path: Path):
        path = tmp_path / "config.yaml"
        path.write_text("- just\n- a list\n", encoding="utf-8")
        with pytest.raises(ValueError):
            ConfigProvider.from_file(path)

    def test_output_dir_is_absolute(self, config):
        assert config.output_dir.is_absolute()
        assert config.output_dir.name == "output"


class TestSettings:
    def test_env_prefix(self, monkeypatch):
        monkeypatch.setenv("SLIDES2PDF_PORT", "4000")
        monkeypatch.setenv("SLIDES2PDF_FILE_GRACE_SECONDS", "5")
        settings = Settings()
        assert settings.port == 4000
        assert settings.file_grace_seconds == 5
        assert settings.output_retention_seconds == 3600
