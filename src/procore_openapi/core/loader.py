"""Module for loading Procore API documentation files."""

import json
import sys
from pathlib import Path
from typing import Any, TextIO

import yaml

from procore_openapi.config import FileFormat
from procore_openapi.core.errors import LoadError

STDIN_NAME = "-"


def detect_format(name: str) -> FileFormat:
    """
    Determine the format of an input from its name.

    Files ending in .yaml or .yml are YAML. Everything else, including
    standard input, is JSON.
    """
    if Path(name).suffix.lower() in (".yaml", ".yml"):
        return FileFormat.YAML
    return FileFormat.JSON


def parse_document(text: str, name: str, format: FileFormat = FileFormat.JSON) -> Any:
    """
    Parse the text of a document.

    Args:
        text: Document content
        name: Name of the input, used in error messages
        format: Format of the content

    Raises:
        LoadError: If parsing fails
    """
    try:
        if format == FileFormat.YAML:
            return yaml.safe_load(text)
        return json.loads(text)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise LoadError(name, f"Failed to parse {format.value.upper()}: {e}") from e


def load_document(name: str, stdin: TextIO | None = None) -> Any:
    """
    Load a Procore API documentation file.

    Args:
        name: Path of the file, or "-" to read standard input
        stdin: Stream to read for "-" (defaults to sys.stdin)

    Returns:
        The parsed document

    Raises:
        LoadError: If the input can't be read or parsed
    """
    try:
        if name == STDIN_NAME:
            text = (stdin or sys.stdin).read()
        else:
            with open(name, encoding="utf-8") as f:
                text = f.read()
    except OSError as e:
        raise LoadError(name, f"Failed to read: {e.strerror or e}") from e

    return parse_document(text, name, detect_format(name))
