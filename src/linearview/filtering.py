"""Filter & sort pipeline for the issue list.

``filter_sort`` is the single source of truth for what the list shows. It is
pure: the same snapshot and parameters always yield the same ordering, and
the input sequence is never mutated.

Pipeline order:
1. status filter (by ``state.type``; issues without a state only match ALL)
2. project filter (exact, case-sensitive project name)
3. stable sort

Priority sorting keeps "no priority" (0) last in both directions, and
DESCENDING means most urgent first (1, 2, 3, 4). Status sorting substitutes
``""`` for a missing state under DESCENDING and ``"zzz"`` under ASCENDING.
"""

from __future__ import annotations

import sys
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, replace
from enum import Enum

from .models import Issue

ALL_PROJECTS = "All Projects"

_NO_PRIORITY_DESC = sys.maxsize
_NO_PRIORITY_ASC = -sys.maxsize
_MISSING_STATUS_DESC = ""
_MISSING_STATUS_ASC = "zzz"


class _ParseableEnum(str, Enum):
    @classmethod
    def parse(cls, text: str):  # type: ignore[no-untyped-def]
        key = text.strip().lower().replace("-", "_")
        for member in cls:
            if key in (member.value, member.name.lower()):
                return member
        choices = ", ".join(m.value for m in cls)
        raise ValueError(f"unknown {cls.__name__} '{text}' (choose from: {choices})")


class StatusFilter(_ParseableEnum):
    ALL = "all"
    STARTED = "started"
    UNSTARTED = "unstarted"
    BACKLOG = "backlog"
    COMPLETED = "completed"
    CANCELED = "canceled"

    @property
    def state_type(self) -> str | None:
        return None if self is StatusFilter.ALL else self.value

    @property
    def display_name(self) -> str:
        return self.value.capitalize()


class SortKey(_ParseableEnum):
    UPDATED_AT = "updated"
    PRIORITY = "priority"
    STATUS = "status"
    CREATED_AT = "created"

    @property
    def display_name(self) -> str:
        return self.value.capitalize()


class SortDirection(_ParseableEnum):
    DESCENDING = "desc"
    ASCENDING = "asc"

    @property
    def display_name(self) -> str:
        return "Descending" if self is SortDirection.DESCENDING else "Ascending"

    def toggled(self) -> SortDirection:
        if self is SortDirection.DESCENDING:
            return SortDirection.ASCENDING
        return SortDirection.DESCENDING


def _sort(issues: list[Issue], key: SortKey, direction: SortDirection) -> list[Issue]:
    descending = direction is SortDirection.DESCENDING
    if key is SortKey.UPDATED_AT:
        return sorted(issues, key=lambda i: i.updated_at, reverse=descending)
    if key is SortKey.CREATED_AT:
        return sorted(issues, key=lambda i: i.created_at, reverse=descending)
    if key is SortKey.PRIORITY:
        if descending:
            return sorted(issues, key=lambda i: i.priority or _NO_PRIORITY_DESC)
        return sorted(issues, key=lambda i: i.priority or _NO_PRIORITY_ASC, reverse=True)
    if key is SortKey.STATUS:
        if descending:
            return sorted(
                issues,
                key=lambda i: i.state.name if i.state else _MISSING_STATUS_DESC,
                reverse=True,
            )
        return sorted(issues, key=lambda i: i.state.name if i.state else _MISSING_STATUS_ASC)
    raise ValueError(f"unsupported sort key: {key!r}")


def filter_sort(
    issues: Iterable[Issue],
    status_filter: StatusFilter = StatusFilter.ALL,
    project_filter: str | None = None,
    sort_key: SortKey = SortKey.UPDATED_AT,
    direction: SortDirection = SortDirection.DESCENDING,
) -> list[Issue]:
    filtered = list(issues)
    state_type = status_filter.state_type
    if state_type is not None:
        filtered = [i for i in filtered if i.state is not None and i.state.type == state_type]
    if project_filter is not None:
        filtered = [i for i in filtered if i.project is not None and i.project.name == project_filter]
    return _sort(filtered, sort_key, direction)


def project_names(issues: Iterable[Issue]) -> list[str]:
    """Distinct project names across the unfiltered set, sorted."""
    return sorted({i.project.name for i in issues if i.project is not None})


def project_options(issues: Iterable[Issue]) -> list[str]:
    return [ALL_PROJECTS, *project_names(issues)]


@dataclass(frozen=True)
class ViewQuery:
    """Current filter/sort selection of the issue list."""

    status: StatusFilter = StatusFilter.ALL
    project: str | None = None
    sort_key: SortKey = SortKey.UPDATED_AT
    direction: SortDirection = SortDirection.DESCENDING

    def apply(self, issues: Sequence[Issue]) -> list[Issue]:
        return filter_sort(issues, self.status, self.project, self.sort_key, self.direction)

    def choose_sort(self, key: SortKey) -> ViewQuery:
        # picking the active key flips direction; a new key starts descending
        if key is self.sort_key:
            return replace(self, direction=self.direction.toggled())
        return replace(self, sort_key=key, direction=SortDirection.DESCENDING)

    def with_status(self, status: StatusFilter) -> ViewQuery:
        return replace(self, status=status)

    def with_project(self, project: str | None) -> ViewQuery:
        if project == ALL_PROJECTS:
            project = None
        return replace(self, project=project)

    def cleared(self) -> ViewQuery:
        return replace(self, status=StatusFilter.ALL, project=None)

    def active_filters(self) -> list[str]:
        chips: list[str] = []
        if self.status is not StatusFilter.ALL:
            chips.append(f"Status: {self.status.display_name}")
        if self.project is not None:
            chips.append(f"Project: {self.project}")
        return chips


__all__ = [
    "ALL_PROJECTS",
    "SortDirection",
    "SortKey",
    "StatusFilter",
    "ViewQuery",
    "filter_sort",
    "project_names",
    "project_options",
]
