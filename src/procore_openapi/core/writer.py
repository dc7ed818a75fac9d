"""Serialization of converted OpenAPI documents.

Conversion shares unchanged subtrees between the input and output trees, and
catalogued schemas may appear at several places in a document. Output never
uses YAML anchors for them, so that each node reads the same in JSON and YAML.
"""

import json
from collections.abc import Callable
from typing import Any, TextIO

import yaml

from procore_openapi.config import FileFormat


class SharedSubtreeDumper(yaml.SafeDumper):
    """YAML dumper which writes structurally shared subtrees in full at each use."""

    def ignore_aliases(self, data: Any) -> bool:
        return True


def _dump_json(data: Any, stream: TextIO) -> None:
    json.dump(data, stream, indent=2, ensure_ascii=False)
    stream.write("\n")


def _dump_yaml(data: Any, stream: TextIO) -> None:
    # Key order is meaningful (openapi, info, paths, components)
    yaml.dump(
        data,
        stream,
        Dumper=SharedSubtreeDumper,
        default_flow_style=False,
        allow_unicode=True,
        sort_keys=False,
        indent=2,
    )


_WRITERS: dict[FileFormat, Callable[[Any, TextIO], None]] = {
    FileFormat.JSON: _dump_json,
    FileFormat.YAML: _dump_yaml,
}


def write_document(data: dict, stream: TextIO, format: FileFormat = FileFormat.JSON) -> None:
    """
    Write a converted OpenAPI document to `stream`, ending with a newline.

    Raises:
        ValueError: If `format` is not a FileFormat
    """
    try:
        writer = _WRITERS[format]
    except KeyError:
        raise ValueError(f"Unsupported file format: {format}") from None
    writer(data, stream)
