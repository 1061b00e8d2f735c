"""Declarative menu entries for the toolbar and the issue context menu.

A menu is a plain list of ``MenuAction`` rows. Availability and the check
mark / sort arrow are predicates evaluated at render time, so one generic
builder serves every menu.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass


class MenuError(LookupError):
    pass


def _always() -> bool:
    return True


def _no_marker() -> str:
    return ""


@dataclass(frozen=True)
class MenuAction:
    label: str
    handler: Callable[[], object]
    enabled: Callable[[], bool] = _always
    marker: Callable[[], str] = _no_marker
    group: str = ""


def find_action(
    actions: Sequence[MenuAction], label: str, group: str | None = None
) -> MenuAction:
    wanted = label.strip().casefold()
    for action in actions:
        if group is not None and action.group.casefold() != group.strip().casefold():
            continue
        if action.label.casefold() == wanted:
            return action
    raise MenuError(f"no menu entry named '{label}'")


def dispatch(actions: Sequence[MenuAction], label: str, group: str | None = None) -> object:
    """Run the handler of the entry named ``label``.

    Raises MenuError when the entry is missing or currently disabled.
    """
    action = find_action(actions, label, group)
    if not action.enabled():
        raise MenuError(f"'{action.label}' is not available right now")
    return action.handler()


def render_menu(actions: Sequence[MenuAction]) -> list[str]:
    lines: list[str] = []
    current_group: str | None = None
    for action in actions:
        if action.group != current_group:
            current_group = action.group
            if current_group:
                lines.append(f"{current_group}:")
        marker = action.marker() or " "
        suffix = "" if action.enabled() else " (disabled)"
        indent = "  " if current_group else ""
        lines.append(f"{indent}{marker} {action.label}{suffix}")
    return lines


__all__ = ["MenuAction", "MenuError", "dispatch", "find_action", "render_menu"]
