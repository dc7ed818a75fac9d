"""Exception types raised while converting Procore API docs to OpenAPI."""


def to_json_pointer(prop_path: list[str]) -> str:
    """
    Convert a list of property names to a JSON Pointer (RFC 6901).

    Args:
        prop_path: Property names from the document root

    Returns:
        The JSON Pointer string ("/" for the empty path)

    Example:
        >>> to_json_pointer(["paths", "/rest/v1.0/users", "get"])
        '/paths/~1rest~1v1.0~1users/get'
    """
    return "/" + "/".join(str(p).replace("~", "~0").replace("/", "~1") for p in prop_path)


class ConversionError(Exception):
    """Base class for fatal conversion errors."""


class TransformError(ConversionError):
    """
    A hard error detected while transforming a document.

    The path of the node under transformation is attached when the error
    first propagates through a visited node, so that the message can be
    reported with a JSON Pointer.
    """

    def __init__(self, message: str, transform_path: list[str] | None = None):
        super().__init__(message)
        self.message = message
        self.transform_path = transform_path

    @property
    def pointer(self) -> str | None:
        """JSON Pointer of the node where the error was detected, if known."""
        if self.transform_path is None:
            return None
        return to_json_pointer(self.transform_path)

    def __str__(self) -> str:
        if self.transform_path is None:
            return self.message
        return f"{self.message} (while transforming {self.pointer})"


class CombineError(ConversionError):
    """Raised when OpenAPI documents can not be combined."""


class LoadError(ConversionError):
    """Raised when an input document can not be read or parsed."""

    def __init__(self, name: str, reason: str):
        super().__init__(f"{reason} in {name}")
        self.name = name
        self.reason = reason
