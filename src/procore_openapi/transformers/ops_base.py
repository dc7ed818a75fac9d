"""Base utilities for addressing and updating nodes by property path.

Every helper here is copy-on-write: only the containers along the addressed
path are shallow-copied, so all sibling subtrees keep their identity in the
returned tree.
"""

from collections.abc import Callable, Sequence
from typing import TYPE_CHECKING, Any

from procore_openapi.core.errors import TransformError, to_json_pointer

if TYPE_CHECKING:
    from procore_openapi.transformers.base import Transformer

__all__ = ["apply_to_path", "get_at_path", "set_at_path", "to_json_pointer"]


def _child_key(container: Any, prop: str) -> str | int | None:
    """Return the key for `prop` in `container`, or None if it is absent."""
    if isinstance(container, dict):
        return prop if prop in container else None
    if isinstance(container, list):
        if isinstance(prop, str) and prop.isdigit() and int(prop) < len(container):
            return int(prop)
        if isinstance(prop, int) and 0 <= prop < len(container):
            return prop
    return None


def _replace_child(container: Any, key: str | int, value: Any) -> Any:
    """Return a shallow copy of `container` with `key` set to `value`."""
    new_container = list(container) if isinstance(container, list) else dict(container)
    new_container[key] = value
    return new_container


def apply_to_path(
    transformer: "Transformer",
    transform: Callable[["Transformer", Any], Any],
    obj: Any,
    prop_path: Sequence[str],
) -> Any:
    """
    Replace the node at `prop_path` in `obj` with the result of `transform`.

    Each path segment is visited through `transformer`, so warnings and
    errors raised by `transform` are attributed to the node's JSON Pointer.

    Args:
        transformer: Transformer providing path tracking and warnings
        transform: Callable taking (transformer, node) and returning the new node
        obj: Root of the tree to update (not modified)
        prop_path: Property names (list indexes as decimal strings) from `obj`

    Returns:
        A tree equal to `obj` with the target node replaced. If any segment is
        missing, a warning is emitted and `obj` is returned unchanged.

    Raises:
        TransformError: If `transform` returns None
    """

    def _apply(node: Any, index: int) -> Any:
        if index >= len(prop_path):
            result = transform(transformer, node)
            if result is None:
                name = getattr(transform, "__name__", transform)
                raise TransformError(f"{name} returned None", list(transformer.transform_path))
            return result

        prop = prop_path[index]
        key = _child_key(node, prop)
        if key is None:
            transformer.warn("Expected %s on %s", prop, type(node).__name__)
            return node

        child = node[key]
        new_child = transformer.visit(_apply, prop, child, index + 1)
        if new_child is child:
            return node
        return _replace_child(node, key, new_child)

    return _apply(obj, 0)


def get_at_path(obj: Any, prop_path: Sequence[str]) -> Any:
    """
    Get the node at `prop_path` in `obj`.

    Raises:
        KeyError: If any segment of the path is missing
    """
    node = obj
    for prop in prop_path:
        key = _child_key(node, prop)
        if key is None:
            raise KeyError(f"{prop} not found at {to_json_pointer(list(prop_path))}")
        node = node[key]
    return node


def set_at_path(obj: Any, prop_path: Sequence[str], value: Any) -> Any:
    """
    Return a copy of `obj` with the node at `prop_path` set to `value`.

    Every segment but the last must exist. The last one is added to a dict
    parent if absent.

    Raises:
        KeyError: If an intermediate segment is missing
    """
    if not prop_path:
        return value

    prop, rest = prop_path[0], prop_path[1:]
    key = _child_key(obj, prop)
    if key is None:
        if rest or not isinstance(obj, dict):
            raise KeyError(f"{prop} not found at {to_json_pointer(list(prop_path))}")
        key = prop
        child = None
    else:
        child = obj[key]

    return _replace_child(obj, key, set_at_path(child, rest, value))
