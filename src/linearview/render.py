"""Terminal rendering for issues, the status line and feedback messages."""

from __future__ import annotations

import os
import sys
from collections.abc import Sequence
from datetime import datetime, timezone
from typing import TextIO

from .models import Issue, WorkflowState, priority_color, priority_label


class Colors:
    """ANSI escape codes for terminal output."""

    RESET = "\033[0m"
    BOLD = "\033[1m"
    DIM = "\033[2m"
    STRIKE = "\033[9m"

    RED = "\033[31m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    BLUE = "\033[34m"
    CYAN = "\033[36m"


STATUS_ICONS = {
    "started": "◉",
    "unstarted": "○",
    "backlog": "◌",
    "completed": "✓",
    "canceled": "✕",
}
DEFAULT_STATUS_ICON = "○"


def _supports_color(stream: TextIO | None = None) -> bool:
    stream = stream or sys.stdout
    if os.environ.get("NO_COLOR"):
        return False
    if not hasattr(stream, "isatty") or not stream.isatty():
        return False
    return os.environ.get("TERM") != "dumb"


def hex_color(value: str) -> str:
    """Truecolor foreground escape for ``#rrggbb``; empty for anything else."""
    text = value.lstrip("#")
    if len(text) != 6:
        return ""
    try:
        red, green, blue = (int(text[i : i + 2], 16) for i in (0, 2, 4))
    except ValueError:
        return ""
    return f"\033[38;2;{red};{green};{blue}m"


def colorize(text: str, color: str, bold: bool = False, stream: TextIO | None = None) -> str:
    """Apply color to text if the stream supports it."""
    if not color or not _supports_color(stream):
        return text
    prefix = (Colors.BOLD if bold else "") + color
    return f"{prefix}{text}{Colors.RESET}"


def print_success(message: str, stream: TextIO | None = None) -> None:
    stream = stream or sys.stdout
    print(colorize("✓", Colors.GREEN, bold=True, stream=stream) + " " + message, file=stream)


def print_error(message: str, stream: TextIO | None = None) -> None:
    stream = stream or sys.stderr
    print(colorize("✗", Colors.RED, bold=True, stream=stream) + " " + message, file=stream)


def print_warning(message: str, stream: TextIO | None = None) -> None:
    stream = stream or sys.stdout
    print(colorize("⚠", Colors.YELLOW, bold=True, stream=stream) + " " + message, file=stream)


def print_header(message: str, stream: TextIO | None = None) -> None:
    stream = stream or sys.stdout
    print(colorize(message, Colors.CYAN, bold=True, stream=stream), file=stream)


def status_icon(state: WorkflowState | None) -> str:
    if state is None:
        return DEFAULT_STATUS_ICON
    return STATUS_ICONS.get(state.type, DEFAULT_STATUS_ICON)


def format_date(value: str) -> str:
    """``2024-01-15T10:30:00.000Z`` -> ``2024-01-15 10:30`` (UTC).

    Unparseable input is returned unchanged.
    """
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return value
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc)
    return parsed.strftime("%Y-%m-%d %H:%M")


def render_issue_row(issue: Issue, stream: TextIO | None = None) -> str:
    icon = status_icon(issue.state)
    if issue.state is not None:
        icon = colorize(icon, hex_color(issue.state.color), stream=stream)
    identifier = colorize(f"[{issue.identifier}]", Colors.DIM, stream=stream)
    title = issue.title
    if issue.is_closed:
        title = colorize(title, Colors.DIM + Colors.STRIKE, stream=stream)
    return "  ".join([f"{icon} {identifier} {title}", *_extra_badges(issue, stream)])


def _extra_badges(issue: Issue, stream: TextIO | None) -> list[str]:
    badges: list[str] = []
    if issue.priority > 0:
        badges.append(
            colorize(
                f"● {priority_label(issue.priority)}",
                hex_color(priority_color(issue.priority)),
                stream=stream,
            )
        )
    if issue.project is not None:
        badges.append(
            colorize(issue.project.name, hex_color(issue.project.display_color), stream=stream)
        )
    return badges


def render_badges(issue: Issue, stream: TextIO | None = None) -> list[str]:
    """State, priority (only when set) and project badges."""
    badges: list[str] = []
    if issue.state is not None:
        badges.append(colorize(issue.state.name, hex_color(issue.state.color), stream=stream))
    return badges + _extra_badges(issue, stream)


def render_issue_detail(issue: Issue, stream: TextIO | None = None) -> str:
    lines = [
        colorize(issue.identifier, Colors.DIM, stream=stream),
        colorize(issue.title, Colors.BOLD, stream=stream),
    ]
    badges = render_badges(issue, stream)
    if badges:
        lines.append(" | ".join(badges))
    if issue.assignee is not None:
        lines.append(f"@{issue.assignee.name}")
    if issue.labels:
        lines.append(
            "Labels: "
            + ", ".join(colorize(label.name, hex_color(label.color), stream=stream) for label in issue.labels)
        )
    lines.append(f"Created: {format_date(issue.created_at)}  Updated: {format_date(issue.updated_at)}")
    lines.append(issue.url)
    lines.append("")
    if issue.description and issue.description.strip():
        lines.append(issue.description)
    else:
        lines.append(colorize("No description", Colors.DIM, stream=stream))
    lines.append("")
    lines.append(colorize(f"Comments ({len(issue.comments)})", Colors.BOLD, stream=stream))
    if not issue.comments:
        lines.append(colorize("No comments", Colors.DIM, stream=stream))
    for comment in sorted(issue.comments, key=lambda c: c.created_at, reverse=True):
        author = comment.user.name if comment.user is not None else "Unknown"
        lines.append(
            f"- {colorize(author, Colors.BOLD, stream=stream)} "
            f"{colorize(format_date(comment.created_at), Colors.DIM, stream=stream)}"
        )
        lines.extend(f"  {line}" for line in comment.body.splitlines() or [""])
    return "\n".join(lines)


def render_status_line(
    status_text: str, active_filters: Sequence[str] = (), stream: TextIO | None = None
) -> str:
    if not active_filters:
        return status_text
    chips = " ".join(colorize(f"[{chip}]", Colors.BLUE, stream=stream) for chip in active_filters)
    return f"{status_text}  {chips}"


__all__ = [
    "Colors",
    "STATUS_ICONS",
    "colorize",
    "format_date",
    "hex_color",
    "print_error",
    "print_header",
    "print_success",
    "print_warning",
    "render_badges",
    "render_issue_detail",
    "render_issue_row",
    "render_status_line",
    "status_icon",
]
