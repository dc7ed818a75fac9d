"""Selection of Procore endpoints by support level and beta program."""

from collections.abc import Callable, Iterable

from procore_openapi.config import SUPPORT_LEVELS

EndpointFilter = Callable[[dict], bool]


def support_level_rank(support_level: object) -> int:
    """Rank of a support_level value, or -1 if it is not recognized."""
    try:
        return SUPPORT_LEVELS.index(support_level)
    except ValueError:
        return -1


def make_endpoint_filter(
    min_support_level: str, include_beta_programs: Iterable[str] = ()
) -> EndpointFilter:
    """
    Create a predicate which selects endpoints to convert.

    An endpoint is included if it is not internal-only (unless the threshold
    is the lowest level) and either belongs to one of `include_beta_programs`
    or has a support_level at or above `min_support_level`. Unrecognized
    support_level values rank below every known level.

    Args:
        min_support_level: One of SUPPORT_LEVELS
        include_beta_programs: Names of beta programs to include

    Returns:
        A function taking an endpoint object and returning True to include it

    Raises:
        ValueError: If min_support_level is not recognized
        TypeError: If include_beta_programs is not iterable
    """
    min_rank = support_level_rank(min_support_level)
    if min_rank < 0:
        raise ValueError(f"Unrecognized min_support_level {min_support_level!r}")

    beta_programs = frozenset(include_beta_programs)

    def endpoint_filter(endpoint: dict) -> bool:
        if endpoint.get("internal_only") and min_rank > 0:
            return False

        if not beta_programs.isdisjoint(endpoint.get("beta_programs") or ()):
            return True

        return support_level_rank(endpoint.get("support_level")) >= min_rank

    return endpoint_filter
