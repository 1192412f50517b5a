"""
Errors raised while resolving the management hierarchy.

Everything else in the authorization engine resolves to a denial; these are
the only conditions on which it refuses to produce a decision. Callers log
them and treat the request as forbidden.
"""


class HierarchyResolutionError(Exception):
    """The subordinate closure could not be computed completely."""

    def __init__(self, user_id: str, message: str):
        self.user_id = user_id
        super().__init__(message)


class HierarchyDepthExceeded(HierarchyResolutionError):
    """Traversal went deeper than the configured maximum."""

    def __init__(self, user_id: str, max_depth: int):
        self.max_depth = max_depth
        super().__init__(user_id, f"Hierarchy below user {user_id} exceeds {max_depth} levels")


class HierarchyTimeout(HierarchyResolutionError):
    """Traversal did not finish within the time budget."""

    def __init__(self, user_id: str, timeout: float):
        self.timeout = timeout
        super().__init__(user_id, f"Hierarchy resolution for user {user_id} timed out after {timeout}s")
