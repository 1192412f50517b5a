"""
Scope filters and record access checks.

``AccessPolicy`` binds one acting user to the lookups it needs and caches the
user's team for the lifetime of the object. Build one per request; the
management structure may change between requests.

``compile_filter`` and ``can_access`` apply the same scope rules, one as a
predicate for list queries and one against a single fetched record. For any
record, ``can_access`` is True exactly when ``compile_filter(...).matches``
is.
"""
from typing import Any, Awaitable, Callable, Dict, FrozenSet, Optional, Union

from app.features.permissions.evaluator import has_permission
from app.features.permissions.filters import (
    AssigneeIn,
    AssigneeInDepartment,
    FilterSpec,
    MatchAll,
    Scope,
    SubjectIn,
    any_of,
)
from app.features.permissions.grants import Action, Resource, coerce_resource
from app.features.permissions.hierarchy import SubordinateLookup, resolve_subordinate_closure
from app.utils import get_logger


log = get_logger(__name__)

# Given a user id, return that user's department id (None if unknown or unset)
DepartmentLookup = Callable[[str], Awaitable[Optional[str]]]


class AccessPolicy:
    """
    Request-scoped authorization for one user.

    ``department_lookup`` may be omitted only when the policy is used for
    ``permitted`` and ``compile_filter``. ``can_access`` needs it to match
    assigned records under ``viewDepartment``; without it those records are
    denied even though the compiled filter admits them.

    Usage:
        policy = AccessPolicy(
            user,
            direct_reports_lookup(db, user.organization_id),
            department_lookup(db, user.organization_id),
        )
        if not policy.permitted(Resource.LEADS, Action.CREATE):
            ...
        spec = await policy.compile_filter(Resource.LEADS)
    """

    def __init__(
        self,
        user: Any,
        subordinate_lookup: SubordinateLookup,
        department_lookup: Optional[DepartmentLookup] = None,
        max_depth: Optional[int] = None,
        timeout: Optional[float] = None,
    ):
        self.user = user
        self._subordinate_lookup = subordinate_lookup
        self._department_lookup = department_lookup
        self._max_depth = max_depth
        self._timeout = timeout
        self._team_ids: Optional[FrozenSet[str]] = None
        self._departments: Dict[str, Optional[str]] = {}

    def permitted(self, resource: Union[Resource, str], action: Union[Action, str]) -> bool:
        return has_permission(self.user, resource, action)

    async def team_ids(self) -> FrozenSet[str]:
        """The user's subordinate closure, resolved once and cached."""
        if self._team_ids is None:
            self._team_ids = await resolve_subordinate_closure(
                self.user.id,
                self._subordinate_lookup,
                max_depth=self._max_depth,
                timeout=self._timeout,
            )
        return self._team_ids

    async def department_of(self, user_id: str) -> Optional[str]:
        if self._department_lookup is None:
            return None
        if user_id not in self._departments:
            self._departments[user_id] = await self._department_lookup(user_id)
        return self._departments[user_id]

    async def compile_filter(self, resource: Union[Resource, str]) -> FilterSpec:
        """
        Predicate describing every record of ``resource`` the user may list.

        ``viewAll`` alone decides the filter when granted. Otherwise each
        granted scope contributes a clause and the clauses are OR-ed; with no
        scope at all the filter matches nothing. The organization match is
        always part of the result.

        Raises:
            HierarchyResolutionError: the user's team could not be resolved
        """
        resource = coerce_resource(resource)
        organization_id = self.user.organization_id

        if resource is Resource.USERS:
            return FilterSpec(organization_id, await self._user_scope())

        if self.permitted(resource, Action.VIEW_ALL):
            return FilterSpec(organization_id, MatchAll())

        clauses = []
        department_id = self.user.department_id
        if self.permitted(resource, Action.VIEW_DEPARTMENT) and department_id:
            clauses.append(AssigneeInDepartment(department_id))
        if self.permitted(resource, Action.VIEW_TEAM):
            clauses.append(AssigneeIn(await self.team_ids()))
        if self.permitted(resource, Action.VIEW_OWN):
            clauses.append(AssigneeIn(frozenset({self.user.id})))

        spec = FilterSpec(organization_id, any_of(tuple(clauses)))
        if spec.matches_nothing:
            log.debug(f"User {self.user.id} has no view scope on {resource.value}")
        return spec

    async def _user_scope(self) -> Scope:
        if self.permitted(Resource.USERS, Action.VIEW_ALL):
            return MatchAll()
        if self.permitted(Resource.USERS, Action.VIEW_TEAM):
            return SubjectIn(await self.team_ids())
        # Everyone can see their own user record
        return SubjectIn(frozenset({self.user.id}))

    async def can_access(self, resource: Union[Resource, str], record: Any) -> bool:
        """
        Check whether the user may see one already fetched record.

        Agrees with ``compile_filter(resource).matches(record)``. Team and
        department lookups only happen when the matching scope is granted.

        Raises:
            HierarchyResolutionError: the user's team could not be resolved
        """
        resource = coerce_resource(resource)
        organization_id = self.user.organization_id

        if organization_id is None or getattr(record, "organization_id", None) != organization_id:
            log.debug(f"User {self.user.id} denied {resource.value} record outside its organization")
            return False

        if resource is Resource.USERS:
            return await self._can_access_user(record)

        if self.permitted(resource, Action.VIEW_ALL):
            return True

        assigned_to = getattr(record, "assigned_to", None)

        if self.permitted(resource, Action.VIEW_TEAM):
            if assigned_to is None or assigned_to in await self.team_ids():
                return True

        department_id = self.user.department_id
        if self.permitted(resource, Action.VIEW_DEPARTMENT) and department_id:
            if assigned_to is None or await self.department_of(assigned_to) == department_id:
                return True

        if self.permitted(resource, Action.VIEW_OWN):
            if assigned_to is None or assigned_to == self.user.id:
                return True

        log.debug(f"User {self.user.id} denied {resource.value} record {getattr(record, 'id', None)}")
        return False

    async def _can_access_user(self, target: Any) -> bool:
        if self.permitted(Resource.USERS, Action.VIEW_ALL):
            return True
        if target.id == self.user.id:
            return True
        if self.permitted(Resource.USERS, Action.VIEW_TEAM):
            return target.id in await self.team_ids()
        return False


async def compile_filter(
    user: Any,
    resource: Union[Resource, str],
    subordinate_lookup: SubordinateLookup,
) -> FilterSpec:
    """One-off ``AccessPolicy.compile_filter``."""
    return await AccessPolicy(user, subordinate_lookup).compile_filter(resource)


async def can_access(
    user: Any,
    resource: Union[Resource, str],
    record: Any,
    subordinate_lookup: SubordinateLookup,
    department_lookup: DepartmentLookup,
) -> bool:
    """One-off ``AccessPolicy.can_access``."""
    policy = AccessPolicy(user, subordinate_lookup, department_lookup)
    return await policy.can_access(resource, record)
