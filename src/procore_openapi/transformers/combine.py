"""Combining the per-file OpenAPI documents into a single document."""

from collections.abc import Iterable

from procore_openapi.core.errors import CombineError

_RECOGNIZED_KEYS = {"openapi", "tags", "paths"}


def combine_openapi(docs: Iterable[dict]) -> dict | None:
    """
    Combine OpenAPI documents produced by ProcoreApiDocToOpenApiTransformer.

    Paths keep their order across inputs and tags are de-duplicated by name,
    keeping the first occurrence. Path Items are shared with the inputs.

    Args:
        docs: OpenAPI documents with only openapi, tags and paths

    Returns:
        The combined document, or None if `docs` is empty

    Raises:
        CombineError: If the documents have different or unsupported
            versions, unrecognized properties, differing tags with the same
            name, or a path in common
    """
    combined_paths: dict[str, dict] = {}
    tags_by_name: dict[str, dict] = {}
    first_version = None
    for doc in docs:
        version = doc.get("openapi")
        if not isinstance(version, str) or not version.startswith("3."):
            raise CombineError(f"Unsupported OpenAPI version: {version}")

        if first_version is None:
            first_version = version
        elif version != first_version:
            raise CombineError(
                f"Can not combine different OpenAPI versions: {version} != {first_version}"
            )

        unrecognized = [key for key in doc if key not in _RECOGNIZED_KEYS]
        if unrecognized:
            raise CombineError(f"Unsupported OpenAPI properties: {', '.join(unrecognized)}")

        for tag in doc.get("tags") or ():
            tag_name = tag.get("name")
            old_tag = tags_by_name.get(tag_name)
            if old_tag is None:
                tags_by_name[tag_name] = tag
            elif old_tag != tag:
                raise CombineError(f"Tag {tag_name} must match: {tag!r} != {old_tag!r}")

        for path, path_item in (doc.get("paths") or {}).items():
            if path in combined_paths:
                raise CombineError(f"Duplicate path {path}")
            combined_paths[path] = path_item

    if first_version is None:
        return None

    return {
        "openapi": first_version,
        "tags": list(tags_by_name.values()),
        "paths": combined_paths,
    }
