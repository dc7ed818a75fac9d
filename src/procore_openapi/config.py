"""Configuration constants and enums for the Procore docs converter."""

from enum import Enum
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, field_validator

CONFIG_FILENAME = ".procore-docs-to-openapi.yaml"

# Values of support_level observed in the Procore docs, in order of
# increasing support.
SUPPORT_LEVELS = ("internal", "alpha", "beta", "production")


class FileFormat(Enum):
    """Enum representing the format of an input or output document."""

    JSON = "json"
    YAML = "yaml"


class ProjectConfig(BaseModel):
    """Configuration model for the converter."""

    min_support_level: str | None = Field(
        default=None,
        description="Exclude endpoints with a lower support_level (no filtering if unset)",
    )
    beta_programs: list[str] = Field(
        default_factory=list,
        description="Include endpoints in these beta programs regardless of support_level",
    )
    openapi_30: bool = Field(default=False, description="Downgrade the output to OpenAPI 3.0")
    output_format: FileFormat = Field(default=FileFormat.JSON, description="Output format")

    @field_validator("min_support_level")
    @classmethod
    def _check_support_level(cls, value: str | None) -> str | None:
        if value is not None and value not in SUPPORT_LEVELS:
            raise ValueError(f"must be one of {', '.join(SUPPORT_LEVELS)}, not {value!r}")
        return value


def get_config_path(target_dir: Path) -> Path:
    """Get the path to the config file in the target directory."""
    return target_dir / CONFIG_FILENAME


def load_config(config_path: Path) -> ProjectConfig:
    """
    Load configuration from a YAML file.

    Returns empty config if the file doesn't exist. Unknown keys are ignored.

    Raises:
        yaml.YAMLError: If the file is not valid YAML
        pydantic.ValidationError: If a value is invalid
    """
    if not config_path.exists():
        return ProjectConfig()
    with open(config_path, encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    return ProjectConfig(**data)
