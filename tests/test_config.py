"""Tests for configuration handling."""

from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from procore_openapi.config import (
    CONFIG_FILENAME,
    FileFormat,
    ProjectConfig,
    get_config_path,
    load_config,
)


class TestProjectConfig:
    """Test the ProjectConfig model."""

    def test_default_values(self):
        """Test that an empty config does no filtering and outputs JSON 3.1."""
        config = ProjectConfig()

        assert config.min_support_level is None
        assert config.beta_programs == []
        assert config.openapi_30 is False
        assert config.output_format == FileFormat.JSON

    def test_with_values(self):
        """Test config with explicit values."""
        config = ProjectConfig(
            min_support_level="beta", beta_programs=["Timecards"], output_format="yaml"
        )

        assert config.min_support_level == "beta"
        assert config.beta_programs == ["Timecards"]
        assert config.output_format == FileFormat.YAML

    def test_invalid_support_level(self):
        """Test that unknown support levels are rejected."""
        with pytest.raises(ValidationError, match="must be one of"):
            ProjectConfig(min_support_level="gamma")

    def test_invalid_output_format(self):
        """Test that unknown output formats are rejected."""
        with pytest.raises(ValidationError):
            ProjectConfig(output_format="xml")


class TestGetConfigPath:
    """Test the get_config_path function."""

    def test_returns_correct_path(self, tmp_path):
        """Test that path is target_dir/.procore-docs-to-openapi.yaml."""
        result = get_config_path(tmp_path)

        assert result == tmp_path / CONFIG_FILENAME
        assert isinstance(result, Path)


class TestLoadConfig:
    """Test the load_config function."""

    def test_missing_file(self, tmp_path):
        """Test that a missing file gives the default config."""
        config = load_config(tmp_path / CONFIG_FILENAME)

        assert config == ProjectConfig()

    def test_empty_file(self, tmp_path):
        """Test that an empty file gives the default config."""
        config_path = tmp_path / CONFIG_FILENAME
        config_path.write_text("")

        assert load_config(config_path) == ProjectConfig()

    def test_loads_values(self, tmp_path):
        """Test that values are loaded from YAML."""
        config_path = tmp_path / CONFIG_FILENAME
        config_path.write_text(
            yaml.dump({"min_support_level": "alpha", "openapi_30": True, "unknown": 1})
        )

        config = load_config(config_path)

        assert config.min_support_level == "alpha"
        assert config.openapi_30 is True

    def test_invalid_yaml(self, tmp_path):
        """Test that invalid YAML raises YAMLError."""
        config_path = tmp_path / CONFIG_FILENAME
        config_path.write_text("min_support_level: [")

        with pytest.raises(yaml.YAMLError):
            load_config(config_path)
