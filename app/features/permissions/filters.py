"""
Storage-agnostic record filters.

A ``FilterSpec`` pairs the mandatory organization match with a scope
predicate built from the clauses below. The persistence layer translates it
into a query (see ``app.features.permissions.query``); ``matches`` evaluates
it against a single, already loaded record.
"""
from dataclasses import dataclass
from typing import Any, FrozenSet, Optional, Tuple, Union


@dataclass(frozen=True)
class MatchAll:
    """Every record of the organization."""

    def matches(self, record: Any, assignee_department: Optional[str] = None) -> bool:
        return True


@dataclass(frozen=True)
class MatchNothing:
    """Unsatisfiable; used when no scope is granted."""

    def matches(self, record: Any, assignee_department: Optional[str] = None) -> bool:
        return False


@dataclass(frozen=True)
class AssigneeIn:
    """Record assigned to one of ``user_ids`` (or to nobody, if ``include_unassigned``)."""
    user_ids: FrozenSet[str]
    include_unassigned: bool = True

    def matches(self, record: Any, assignee_department: Optional[str] = None) -> bool:
        assigned_to = getattr(record, "assigned_to", None)
        if assigned_to is None:
            return self.include_unassigned
        return assigned_to in self.user_ids


@dataclass(frozen=True)
class AssigneeInDepartment:
    """Record whose assignee belongs to ``department_id`` (or to nobody, if ``include_unassigned``)."""
    department_id: str
    include_unassigned: bool = True

    def matches(self, record: Any, assignee_department: Optional[str] = None) -> bool:
        if getattr(record, "assigned_to", None) is None:
            return self.include_unassigned
        return assignee_department is not None and assignee_department == self.department_id


@dataclass(frozen=True)
class SubjectIn:
    """User records whose own id is one of ``user_ids``."""
    user_ids: FrozenSet[str]

    def matches(self, record: Any, assignee_department: Optional[str] = None) -> bool:
        return getattr(record, "id", None) in self.user_ids


Clause = Union[AssigneeIn, AssigneeInDepartment, SubjectIn]


@dataclass(frozen=True)
class AnyOf:
    """Union of scope clauses."""
    clauses: Tuple[Clause, ...]

    def matches(self, record: Any, assignee_department: Optional[str] = None) -> bool:
        return any(clause.matches(record, assignee_department) for clause in self.clauses)


Scope = Union[MatchAll, MatchNothing, AssigneeIn, AssigneeInDepartment, SubjectIn, AnyOf]


def any_of(clauses: Tuple[Clause, ...]) -> Scope:
    """OR-combine clauses; no clause at all matches nothing."""
    if not clauses:
        return MatchNothing()
    if len(clauses) == 1:
        return clauses[0]
    return AnyOf(tuple(clauses))


def _walk(scope: Scope):
    if isinstance(scope, AnyOf):
        for clause in scope.clauses:
            yield from _walk(clause)
    else:
        yield scope


@dataclass(frozen=True)
class FilterSpec:
    """
    Records of ``organization_id`` matching ``scope``.

    The organization condition is part of the filter itself and is applied
    regardless of the scope, so no scope can widen access across tenants.
    """
    organization_id: str
    scope: Scope

    @property
    def matches_nothing(self) -> bool:
        return isinstance(self.scope, MatchNothing)

    @property
    def requires_assignee_department(self) -> bool:
        """True if evaluating ``matches`` needs the assignee's department."""
        return any(isinstance(clause, AssigneeInDepartment) for clause in _walk(self.scope))

    def matches(self, record: Any, assignee_department: Optional[str] = None) -> bool:
        """
        Evaluate the filter against one record.

        Args:
            record: Object exposing ``organization_id`` and ``assigned_to`` (or ``id`` for users)
            assignee_department: Department of ``record.assigned_to``, when the scope needs it
        """
        if self.organization_id is None:
            return False
        if getattr(record, "organization_id", None) != self.organization_id:
            return False
        return self.scope.matches(record, assignee_department)
