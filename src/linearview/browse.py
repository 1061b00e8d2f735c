"""Interactive line-oriented session over a ViewController.

The session thread is the controller's owner: after each command it drains
pending fetch completions, so every state write happens here.
"""

from __future__ import annotations

import sys
from collections.abc import Callable
from typing import TextIO

from .controller import ViewController
from .filtering import SortKey, StatusFilter
from .menus import MenuError, dispatch, render_menu
from .models import Issue
from .render import (
    Colors,
    colorize,
    print_error,
    print_header,
    print_success,
    render_issue_detail,
    render_issue_row,
    render_status_line,
)

PROMPT = "linearview> "

HELP_TEXT = """Commands:
  refresh | r                 fetch issues again
  status | s <name>           filter by status (all, started, unstarted, backlog, completed, canceled)
  project | p <name|all>      filter by project
  sort | o <key>              sort by updated, created, priority or status (repeat to flip direction)
  clear | c                   clear status and project filters
  list | l                    print the visible issues
  show | v <ID>               issue details
  actions | a <ID> [label]    list or run an issue action
  menu | m [label]            list or run a toolbar entry
  help | h                    this text
  quit | q                    leave"""


class BrowseSession:
    def __init__(
        self,
        controller: ViewController,
        *,
        read_line: Callable[[str], str] = input,
        stream: TextIO | None = None,
        wait_timeout: float | None = None,
    ) -> None:
        self.controller = controller
        self.read_line = read_line
        self.stream = stream or sys.stdout
        self.wait_timeout = wait_timeout
        self._commands: dict[str, Callable[[str], None]] = {}
        for names, handler in (
            (("refresh", "r"), self._refresh),
            (("status", "s"), self._status),
            (("project", "p"), self._project),
            (("sort", "o"), self._sort),
            (("clear", "c"), self._clear),
            (("list", "l"), self._list),
            (("show", "v"), self._show),
            (("actions", "a"), self._actions),
            (("menu", "m"), self._menu),
            (("help", "h", "?"), self._help),
        ):
            for name in names:
                self._commands[name] = handler

    def run(self) -> int:
        self._refresh("")
        while True:
            try:
                line = self.read_line(PROMPT)
            except (EOFError, KeyboardInterrupt):
                break
            if not self.handle(line):
                break
        return 0

    def handle(self, line: str) -> bool:
        """Execute one command line; False means the session should end."""
        name, _, rest = line.strip().partition(" ")
        name = name.lower()
        if not name:
            return True
        if name in ("quit", "q", "exit"):
            return False
        handler = self._commands.get(name)
        if handler is None:
            print_error(f"Unknown command '{name}' (type 'help')", stream=self.stream)
            return True
        try:
            handler(rest.strip())
        except (ValueError, MenuError) as exc:
            print_error(str(exc), stream=self.stream)
        self._settle()
        return True

    # ---- helpers ----------------------------------------------------------
    def _settle(self) -> None:
        if self.controller.loading:
            self.controller.wait_for_refresh(self.wait_timeout)
            self._list("")
        else:
            self.controller.owner.drain()

    def _print(self, text: str) -> None:
        print(text, file=self.stream)

    def _require_issue(self, identifier: str) -> Issue:
        if not identifier:
            raise ValueError("an issue identifier is required")
        issue = self.controller.find(identifier)
        if issue is None:
            raise ValueError(f"Issue '{identifier}' not found")
        return issue

    # ---- commands -----------------------------------------------------------
    def _refresh(self, _: str) -> None:
        if self.controller.loading:
            raise ValueError("a refresh is already in progress")
        self.controller.refresh()
        self._print(self.controller.status_text)
        self._settle()

    def _status(self, rest: str) -> None:
        self.controller.set_status_filter(StatusFilter.parse(rest or "all"))
        self._list("")

    def _project(self, rest: str) -> None:
        if not rest or rest.lower() == "all":
            self.controller.set_project_filter(None)
        else:
            names = self.controller.project_options()[1:]
            if rest not in names:
                raise ValueError(f"unknown project '{rest}'")
            self.controller.set_project_filter(rest)
        self._list("")

    def _sort(self, rest: str) -> None:
        self.controller.choose_sort(SortKey.parse(rest))
        self._list("")

    def _clear(self, _: str) -> None:
        self.controller.clear_filters()
        self._list("")

    def _list(self, _: str) -> None:
        status = render_status_line(
            self.controller.status_text, self.controller.active_filters(), stream=self.stream
        )
        print_header(status, stream=self.stream)
        for issue in self.controller.visible:
            self._print(render_issue_row(issue, stream=self.stream))

    def _show(self, rest: str) -> None:
        self._print(render_issue_detail(self._require_issue(rest), stream=self.stream))

    def _actions(self, rest: str) -> None:
        identifier, _, label = rest.partition(" ")
        issue = self._require_issue(identifier)
        actions = self.controller.context_actions(issue)
        if not label.strip():
            for line in render_menu(actions):
                self._print(line)
            return
        dispatch(actions, label)
        if self.controller.notice:
            print_success(self.controller.notice, stream=self.stream)

    def _menu(self, rest: str) -> None:
        actions = self.controller.toolbar_actions()
        if not rest:
            for line in render_menu(actions):
                self._print(line)
            return
        group, sep, label = rest.partition("/")
        if sep:
            dispatch(actions, label, group=group)
        else:
            dispatch(actions, rest)
        if not self.controller.loading:
            self._list("")

    def _help(self, _: str) -> None:
        self._print(colorize(HELP_TEXT, Colors.DIM, stream=self.stream))


__all__ = ["BrowseSession", "HELP_TEXT", "PROMPT"]
