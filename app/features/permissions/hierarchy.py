"""
Management hierarchy resolution.

A user's team is the transitive closure of the manager -> direct report
relation starting at that user, the user included. Lookups are supplied by
the caller so the traversal itself never touches storage.
"""
import asyncio
from typing import Awaitable, Callable, FrozenSet, Iterable, Optional

from app.core import config
from app.features.permissions.exceptions import HierarchyDepthExceeded, HierarchyTimeout
from app.utils import get_logger


log = get_logger(__name__)

# Given a frontier of user ids, return the ids of everyone reporting directly to any of them
SubordinateLookup = Callable[[FrozenSet[str]], Awaitable[Iterable[str]]]

# Given one user id, return the ids reporting directly to it
DirectReportsLookup = Callable[[str], Awaitable[Iterable[str]]]


def fan_out(lookup_one: DirectReportsLookup) -> SubordinateLookup:
    """
    Adapt a single-user lookup to a frontier lookup.

    The per-user calls of one level have no ordering dependency and run
    concurrently.
    """
    async def lookup(frontier: FrozenSet[str]) -> set[str]:
        results = await asyncio.gather(*(lookup_one(user_id) for user_id in frontier))
        return {report_id for report_ids in results for report_id in report_ids}

    return lookup


async def _traverse(user_id: str, lookup: SubordinateLookup, max_depth: int) -> FrozenSet[str]:
    closure = {user_id}
    frontier = frozenset(closure)
    depth = 0

    while frontier:
        reports = set(await lookup(frontier))
        revisited = reports & closure
        if revisited:
            # Every user has a single manager, so reaching one twice means a cycle
            log.warning(
                f"Management cycle below user {user_id}: {len(revisited)} user(s) reached again, not re-expanded"
            )
        frontier = frozenset(reports - closure)
        depth += 1
        if frontier and depth > max_depth:
            log.warning(f"Hierarchy below user {user_id} deeper than {max_depth} levels")
            raise HierarchyDepthExceeded(user_id, max_depth)
        closure.update(frontier)

    return frozenset(closure)


async def resolve_subordinate_closure(
    user_id: str,
    lookup: SubordinateLookup,
    max_depth: Optional[int] = None,
    timeout: Optional[float] = None,
) -> FrozenSet[str]:
    """
    Compute the set of users reporting, directly or indirectly, to ``user_id``.

    Breadth-first, one lookup per level. Ids already in the result are
    never expanded again, so cyclic manager data still terminates.

    Args:
        user_id: Root of the traversal; always part of the result
        lookup: Frontier lookup of direct reports
        max_depth: Maximum number of levels below ``user_id`` (defaults to HIERARCHY_MAX_DEPTH)
        timeout: Seconds allowed for the whole traversal (defaults to HIERARCHY_TIMEOUT_SECONDS)

    Returns:
        The complete closure. A partial closure is never returned.

    Raises:
        HierarchyDepthExceeded: more than ``max_depth`` levels exist
        HierarchyTimeout: the traversal did not finish in time
    """
    if max_depth is None:
        max_depth = config.HIERARCHY_MAX_DEPTH
    if timeout is None:
        timeout = config.HIERARCHY_TIMEOUT_SECONDS

    try:
        closure = await asyncio.wait_for(_traverse(user_id, lookup, max_depth), timeout=timeout)
    except asyncio.TimeoutError:
        log.warning(f"Hierarchy resolution for user {user_id} timed out after {timeout}s")
        raise HierarchyTimeout(user_id, timeout)

    log.debug(f"User {user_id} team resolved to {len(closure)} member(s)")
    return closure
