from __future__ import annotations

import io

import pytest

from linearview.models import Comment, Issue, Label, Project, User, WorkflowState
from linearview.render import (
    Colors,
    colorize,
    format_date,
    hex_color,
    print_error,
    print_success,
    render_badges,
    render_issue_detail,
    render_issue_row,
    render_status_line,
    status_icon,
)


def _issue(**overrides) -> Issue:
    values = dict(
        id="i1",
        identifier="ENG-9",
        title="Polish onboarding",
        url="https://linear.app/acme/issue/ENG-9",
        created_at="2024-01-15T10:30:00.000Z",
        updated_at="2024-01-16T08:05:00.000Z",
        priority=2,
        state=WorkflowState(id="s", name="In Progress", color="#f2c94c", type="started"),
        project=Project(id="p", name="Apollo"),
    )
    values.update(overrides)
    return Issue(**values)


def _tty() -> io.StringIO:
    stream = io.StringIO()
    stream.isatty = lambda: True  # type: ignore[method-assign]
    return stream


def test_colorize_with_tty_support(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.delenv("NO_COLOR", raising=False)
    monkeypatch.setenv("TERM", "xterm-256color")

    result = colorize("test", Colors.RED, bold=True, stream=_tty())

    assert Colors.RED in result
    assert Colors.BOLD in result
    assert result.endswith(Colors.RESET)


def test_colorize_respects_no_color():
    assert colorize("test", Colors.RED, stream=_tty()) == "test"


def test_colorize_plain_for_dumb_terminal(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.delenv("NO_COLOR", raising=False)
    monkeypatch.setenv("TERM", "dumb")

    assert colorize("test", Colors.RED, stream=_tty()) == "test"


def test_print_helpers(capsys: pytest.CaptureFixture[str]):
    print_success("Saved")
    print_error("Broken")

    captured = capsys.readouterr()
    assert "✓ Saved" in captured.out
    assert "✗ Broken" in captured.err


def test_hex_color():
    assert hex_color("#ff8000") == "\033[38;2;255;128;0m"
    assert hex_color("nope") == ""
    assert hex_color("#zzzzzz") == ""


def test_format_date():
    assert format_date("2024-01-15T10:30:00.000Z") == "2024-01-15 10:30"
    assert format_date("yesterday") == "yesterday"


@pytest.mark.parametrize(
    ("state_type", "icon"),
    [
        ("started", "◉"),
        ("unstarted", "○"),
        ("backlog", "◌"),
        ("completed", "✓"),
        ("canceled", "✕"),
        ("triage", "○"),
    ],
)
def test_status_icons(state_type: str, icon: str):
    state = WorkflowState(id="s", name="x", color="#000000", type=state_type)

    assert status_icon(state) == icon


def test_status_icon_without_state():
    assert status_icon(None) == "○"


def test_issue_row_plain():
    row = render_issue_row(_issue())

    assert row.startswith("◉ [ENG-9] Polish onboarding")
    assert "● High" in row
    assert "Apollo" in row


def test_closed_issue_row_is_struck_through(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.delenv("NO_COLOR", raising=False)
    monkeypatch.setenv("TERM", "xterm-256color")
    done = WorkflowState(id="s", name="Done", color="#5e6ad2", type="completed")

    row = render_issue_row(_issue(state=done, priority=0), stream=_tty())

    assert Colors.STRIKE in row
    assert "●" not in row


def test_badges_skip_zero_priority():
    badges = render_badges(_issue(priority=0, project=None))

    assert badges == ["In Progress"]


def test_detail_includes_comments_newest_first():
    issue = _issue(
        description="Make it smooth",
        assignee=User(id="u", name="Ada"),
        labels=(Label(id="l", name="ux", color="#aa00aa"),),
        comments=(
            Comment(
                id="c1",
                body="first",
                created_at="2024-01-15T11:00:00.000Z",
                user=User(id="u", name="Ada"),
            ),
            Comment(id="c2", body="second", created_at="2024-01-16T09:00:00.000Z"),
        ),
    )

    detail = render_issue_detail(issue)

    assert "@Ada" in detail
    assert "Labels: ux" in detail
    assert "Make it smooth" in detail
    assert "Comments (2)" in detail
    assert detail.index("second") < detail.index("first")
    assert "Unknown" in detail


def test_detail_placeholders():
    detail = render_issue_detail(_issue(description="   "))

    assert "No description" in detail
    assert "Comments (0)" in detail
    assert "No comments" in detail


def test_status_line_chips():
    assert render_status_line("3 / 9 issues") == "3 / 9 issues"
    assert render_status_line("3 / 9 issues", ["Status: Started"]) == "3 / 9 issues  [Status: Started]"
