from __future__ import annotations

import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

STATE_TYPES = ("started", "unstarted", "backlog", "completed", "canceled")
CLOSED_STATE_TYPES = frozenset({"completed", "canceled"})
DEFAULT_PROJECT_COLOR = "#666666"


class PayloadError(ValueError):
    """Raised when a GraphQL node is missing a required field."""


class Priority:
    NO_PRIORITY = 0
    URGENT = 1
    HIGH = 2
    MEDIUM = 3
    LOW = 4


_PRIORITY_LABELS = {
    Priority.URGENT: "Urgent",
    Priority.HIGH: "High",
    Priority.MEDIUM: "Medium",
    Priority.LOW: "Low",
}

_PRIORITY_COLORS = {
    Priority.URGENT: "#dc2626",
    Priority.HIGH: "#f97316",
    Priority.MEDIUM: "#eab308",
    Priority.LOW: "#22c55e",
}


def priority_label(priority: int) -> str:
    return _PRIORITY_LABELS.get(priority, "No Priority")


def priority_color(priority: int) -> str:
    return _PRIORITY_COLORS.get(priority, DEFAULT_PROJECT_COLOR)


def _required(payload: Mapping[str, Any], key: str, owner: str) -> str:
    value = payload.get(key)
    if not isinstance(value, str):
        raise PayloadError(f"{owner} payload missing '{key}'")
    return value


def _optional(payload: Mapping[str, Any], key: str) -> str | None:
    value = payload.get(key)
    return value if isinstance(value, str) else None


def _nested(payload: Mapping[str, Any], key: str) -> Mapping[str, Any] | None:
    value = payload.get(key)
    return value if isinstance(value, Mapping) else None


def _nodes(payload: Mapping[str, Any], key: str) -> list[Mapping[str, Any]]:
    connection = _nested(payload, key)
    if connection is None:
        return []
    nodes = connection.get("nodes")
    if not isinstance(nodes, list):
        return []
    return [node for node in nodes if isinstance(node, Mapping)]


@dataclass(frozen=True)
class WorkflowState:
    id: str
    name: str
    color: str
    type: str

    @property
    def is_classified(self) -> bool:
        return self.type in STATE_TYPES

    @property
    def is_closed(self) -> bool:
        return self.type in CLOSED_STATE_TYPES

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> WorkflowState:
        return cls(
            id=_required(payload, "id", "state"),
            name=_required(payload, "name", "state"),
            color=_required(payload, "color", "state"),
            type=_required(payload, "type", "state"),
        )


@dataclass(frozen=True)
class User:
    id: str
    name: str
    email: str | None = None
    avatar_url: str | None = None

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> User:
        return cls(
            id=_required(payload, "id", "user"),
            name=_required(payload, "name", "user"),
            email=_optional(payload, "email"),
            avatar_url=_optional(payload, "avatarUrl"),
        )


@dataclass(frozen=True)
class Project:
    id: str
    name: str
    icon: str | None = None
    color: str | None = None

    @property
    def display_color(self) -> str:
        return self.color or DEFAULT_PROJECT_COLOR

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> Project:
        return cls(
            id=_required(payload, "id", "project"),
            name=_required(payload, "name", "project"),
            icon=_optional(payload, "icon"),
            color=_optional(payload, "color"),
        )


@dataclass(frozen=True)
class Label:
    id: str
    name: str
    color: str

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> Label:
        return cls(
            id=_required(payload, "id", "label"),
            name=_required(payload, "name", "label"),
            color=_required(payload, "color", "label"),
        )


@dataclass(frozen=True)
class Comment:
    id: str
    body: str
    created_at: str
    user: User | None = None

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> Comment:
        user = _nested(payload, "user")
        return cls(
            id=_required(payload, "id", "comment"),
            body=_required(payload, "body", "comment"),
            created_at=_required(payload, "createdAt", "comment"),
            user=User.from_payload(user) if user is not None else None,
        )


@dataclass(frozen=True)
class Issue:
    """A single tracker issue, exactly as fetched.

    Nested entities are embedded by value; ``labels`` and ``comments`` keep
    the order the API returned them in.
    """

    id: str
    identifier: str
    title: str
    url: str
    created_at: str
    updated_at: str
    description: str | None = None
    priority: int = Priority.NO_PRIORITY
    state: WorkflowState | None = None
    assignee: User | None = None
    project: Project | None = None
    labels: tuple[Label, ...] = ()
    comments: tuple[Comment, ...] = ()

    @property
    def is_closed(self) -> bool:
        return self.state is not None and self.state.is_closed

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> Issue:
        priority = payload.get("priority")
        if (
            isinstance(priority, bool)
            or not isinstance(priority, (int, float))
            or not math.isfinite(priority)
        ):
            priority = Priority.NO_PRIORITY
        state = _nested(payload, "state")
        assignee = _nested(payload, "assignee")
        project = _nested(payload, "project")
        return cls(
            id=_required(payload, "id", "issue"),
            identifier=_required(payload, "identifier", "issue"),
            title=_required(payload, "title", "issue"),
            url=_required(payload, "url", "issue"),
            created_at=_required(payload, "createdAt", "issue"),
            updated_at=_required(payload, "updatedAt", "issue"),
            description=_optional(payload, "description"),
            priority=int(priority),
            state=WorkflowState.from_payload(state) if state is not None else None,
            assignee=User.from_payload(assignee) if assignee is not None else None,
            project=Project.from_payload(project) if project is not None else None,
            labels=tuple(Label.from_payload(node) for node in _nodes(payload, "labels")),
            comments=tuple(Comment.from_payload(node) for node in _nodes(payload, "comments")),
        )

    @staticmethod
    def find(issues: Iterable[Issue], identifier: str) -> Issue | None:
        """Case-insensitive lookup by human identifier (``ABC-123``)."""
        wanted = identifier.strip().casefold()
        for issue in issues:
            if issue.identifier.casefold() == wanted:
                return issue
        return None


__all__ = [
    "CLOSED_STATE_TYPES",
    "Comment",
    "DEFAULT_PROJECT_COLOR",
    "Issue",
    "Label",
    "PayloadError",
    "Priority",
    "Project",
    "STATE_TYPES",
    "User",
    "WorkflowState",
    "priority_color",
    "priority_label",
]
