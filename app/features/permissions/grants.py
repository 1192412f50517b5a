"""
Role grant tables.

A role stores its permissions as JSON, for example::

    {
        "customers": {"viewAll": False, "viewTeam": True, "create": True},
        "users": {"viewTeam": True, "invite": False},
    }

The set of resources and actions the application understands is closed and
enumerated here. Stored JSON is parsed into a ``GrantTable`` that only keeps
recognized ``(resource, action)`` pairs whose value is literally ``True``;
everything else is a denial.
"""
import enum
from dataclasses import dataclass, field
from typing import Any, FrozenSet, Mapping, Optional, Tuple


class Resource(str, enum.Enum):
    CUSTOMERS = "customers"
    LEADS = "leads"
    TASKS = "tasks"
    USERS = "users"
    DEPARTMENTS = "departments"
    ROLES = "roles"
    ORGANIZATION = "organization"


class Action(str, enum.Enum):
    VIEW_ALL = "viewAll"
    VIEW_DEPARTMENT = "viewDepartment"
    VIEW_TEAM = "viewTeam"
    VIEW_OWN = "viewOwn"
    VIEW = "view"
    CREATE = "create"
    INVITE = "invite"
    EDIT = "edit"
    DELETE = "delete"


# Scope flags governing list-level visibility, in evaluation order
VIEW_SCOPES: Tuple[Action, ...] = (
    Action.VIEW_ALL,
    Action.VIEW_DEPARTMENT,
    Action.VIEW_TEAM,
    Action.VIEW_OWN,
)

# Records carrying an ``assigned_to`` user reference
ASSIGNABLE_RESOURCES: FrozenSet[Resource] = frozenset({
    Resource.CUSTOMERS,
    Resource.LEADS,
    Resource.TASKS,
})

_ASSIGNABLE_ACTIONS = frozenset({
    Action.VIEW_ALL,
    Action.VIEW_DEPARTMENT,
    Action.VIEW_TEAM,
    Action.VIEW_OWN,
    Action.CREATE,
    Action.EDIT,
    Action.DELETE,
})

RESOURCE_ACTIONS: Mapping[Resource, FrozenSet[Action]] = {
    Resource.CUSTOMERS: _ASSIGNABLE_ACTIONS,
    Resource.LEADS: _ASSIGNABLE_ACTIONS,
    Resource.TASKS: _ASSIGNABLE_ACTIONS,
    # No department or own scope for users
    Resource.USERS: frozenset({
        Action.VIEW_ALL,
        Action.VIEW_TEAM,
        Action.INVITE,
        Action.EDIT,
        Action.DELETE,
    }),
    Resource.DEPARTMENTS: frozenset({Action.VIEW_ALL, Action.CREATE, Action.EDIT, Action.DELETE}),
    Resource.ROLES: frozenset({Action.VIEW_ALL, Action.CREATE, Action.EDIT, Action.DELETE}),
    Resource.ORGANIZATION: frozenset({Action.VIEW, Action.EDIT}),
}


def is_recognized(resource: Resource, action: Action) -> bool:
    """Return True if ``action`` is a flag the grant table defines for ``resource``."""
    return action in RESOURCE_ACTIONS.get(resource, frozenset())


def coerce_resource(value: Any) -> Resource:
    """
    Convert a resource name to ``Resource``.

    Raises:
        ValueError: if the name is not a known resource
    """
    return value if isinstance(value, Resource) else Resource(value)


def coerce_action(value: Any) -> Action:
    """
    Convert an action name to ``Action``.

    Raises:
        ValueError: if the name is not a known action
    """
    return value if isinstance(value, Action) else Action(value)


@dataclass(frozen=True)
class GrantTable:
    """Immutable set of granted ``(resource, action)`` pairs."""
    granted: FrozenSet[Tuple[Resource, Action]] = field(default_factory=frozenset)

    @classmethod
    def from_json(cls, permissions: Optional[Mapping[str, Any]]) -> "GrantTable":
        """
        Parse a role's stored ``permissions`` value.

        Unknown resources and flags are ignored. A flag counts only when its
        value is the boolean ``True``; ``"true"``, ``1`` and the like do not.
        """
        if not isinstance(permissions, Mapping):
            return cls()

        granted = set()
        for resource_name, flags in permissions.items():
            try:
                resource = Resource(resource_name)
            except ValueError:
                continue
            if not isinstance(flags, Mapping):
                continue
            for action_name, value in flags.items():
                try:
                    action = Action(action_name)
                except ValueError:
                    continue
                if value is True and is_recognized(resource, action):
                    granted.add((resource, action))
        return cls(frozenset(granted))

    def allows(self, resource: Resource, action: Action) -> bool:
        return (resource, action) in self.granted

    def to_json(self) -> dict[str, dict[str, bool]]:
        """Render every recognized flag, granted or not, keyed by name."""
        return {
            resource.value: {
                action.value: (resource, action) in self.granted
                for action in Action
                if action in actions
            }
            for resource, actions in RESOURCE_ACTIONS.items()
        }
