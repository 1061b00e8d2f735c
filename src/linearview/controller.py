"""View controller: owns the issue list state behind the terminal front end.

Threading model: ``refresh`` hands the network call to a worker pool and
returns immediately. The worker's completion is *posted* to an
``OwnerQueue``; only the thread that drains that queue (the owner) ever
writes controller state. Each refresh gets a request number and completions
older than the newest dispatched request are dropped, so an early request
that finishes late can't overwrite fresher data.
"""

from __future__ import annotations

import queue
import time
from collections.abc import Callable
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from functools import partial
from types import TracebackType

from .branch import generate_branch_name
from .client import LinearClient
from .credentials import CredentialStore
from .desktop import BrowserLauncher, Clipboard, SystemBrowser, SystemClipboard
from .errors import FetchError, FetchResult, describe_failure
from .filtering import (
    ALL_PROJECTS,
    SortDirection,
    SortKey,
    StatusFilter,
    ViewQuery,
    project_names,
)
from .logging import get_logger
from .menus import MenuAction
from .models import Issue
from .settings import ViewerSettings

LOADING_TEXT = "Loading..."

_SORT_ARROWS = {SortDirection.DESCENDING: "↓", SortDirection.ASCENDING: "↑"}
_CHECK = "✓"


class OwnerQueue:
    """Single-consumer task queue used to run callbacks on the owner thread."""

    def __init__(self) -> None:
        self._tasks: queue.SimpleQueue[Callable[[], object]] = queue.SimpleQueue()

    def post(self, task: Callable[[], object]) -> None:
        self._tasks.put(task)

    def drain(self) -> int:
        """Run every task queued so far without blocking; return how many ran."""
        ran = 0
        while True:
            try:
                task = self._tasks.get_nowait()
            except queue.Empty:
                return ran
            task()
            ran += 1

    def run_until(self, predicate: Callable[[], bool], timeout: float | None = None) -> bool:
        """Block, running tasks as they arrive, until ``predicate()`` holds."""
        deadline = None if timeout is None else time.monotonic() + timeout
        while not predicate():
            remaining = None if deadline is None else deadline - time.monotonic()
            if remaining is not None and remaining <= 0:
                return False
            try:
                task = self._tasks.get(timeout=remaining)
            except queue.Empty:
                return predicate()
            task()
        return True


class ViewController:
    def __init__(
        self,
        client: LinearClient,
        credentials: CredentialStore,
        settings: ViewerSettings,
        *,
        clipboard: Clipboard | None = None,
        browser: BrowserLauncher | None = None,
        executor: Executor | None = None,
        owner: OwnerQueue | None = None,
    ) -> None:
        self.client = client
        self.credentials = credentials
        self.settings = settings
        self.clipboard: Clipboard = clipboard or SystemClipboard()
        self.browser: BrowserLauncher = browser or SystemBrowser()
        self.owner = owner or OwnerQueue()
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=2, thread_name_prefix="linearview-fetch"
        )
        self.logger = get_logger()
        self.query = ViewQuery()
        self.loading = False
        self.status_text = LOADING_TEXT
        self.notice: str | None = None
        self.last_error: FetchError | None = None
        self.failed = False
        self._issues: tuple[Issue, ...] = ()
        self._visible: list[Issue] = []
        self._dispatched = 0

    # ---- lifecycle ------------------------------------------------------
    def __enter__(self) -> ViewController:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()

    def close(self) -> None:
        if self._owns_executor:
            self._executor.shutdown(wait=True)
        self._issues = ()
        self._visible = []

    # ---- read-only state -------------------------------------------------
    @property
    def issues(self) -> tuple[Issue, ...]:
        return self._issues

    @property
    def visible(self) -> list[Issue]:
        return list(self._visible)

    @property
    def last_request(self) -> int:
        return self._dispatched

    def project_options(self) -> list[str]:
        return [ALL_PROJECTS, *project_names(self._issues)]

    def active_filters(self) -> list[str]:
        return self.query.active_filters()

    def find(self, identifier: str) -> Issue | None:
        return Issue.find(self._issues, identifier)

    # ---- refresh ---------------------------------------------------------
    def refresh(self) -> int:
        """Dispatch a fetch; returns its request number."""
        self._dispatched += 1
        request_id = self._dispatched
        self.loading = True
        self.status_text = LOADING_TEXT
        self._visible = []
        api_key = self.credentials.get_api_key()
        only_mine = self.settings.show_only_my_issues
        self.logger.debug("refresh dispatched", request_id=request_id, only_mine=only_mine)
        future = self._executor.submit(self.client.fetch_issues, api_key, only_mine=only_mine)
        future.add_done_callback(
            lambda f: self.owner.post(partial(self._on_fetch_done, request_id, f))
        )
        return request_id

    def wait_for_refresh(self, timeout: float | None = None) -> bool:
        return self.owner.run_until(lambda: not self.loading, timeout)

    def _on_fetch_done(
        self, request_id: int, future: Future[FetchResult[list[Issue]]]
    ) -> None:
        if request_id < self._dispatched:
            self.logger.debug(
                "discarding stale fetch result", request_id=request_id, latest=self._dispatched
            )
            return
        self.loading = False
        exc = future.exception()
        if exc is not None:
            # fetch_issues returns failures as values, so this is an unexpected crash
            self.logger.log_error("fetch crashed", error=repr(exc), request_id=request_id)
            self.last_error = None
            self.failed = True
            self._visible = []
            self.status_text = f"Error: {exc}"
            return
        result = future.result()
        if result.error is not None:
            self.last_error = result.error
            self.failed = True
            self._visible = []
            self.status_text = describe_failure(result.error)
            return
        self.last_error = None
        self.failed = False
        self._issues = tuple(result.value or ())
        self._recompute()

    # ---- filters & sort --------------------------------------------------
    def _recompute(self) -> None:
        if self.loading:
            return
        self._visible = self.query.apply(self._issues)
        self.status_text = f"{len(self._visible)} / {len(self._issues)} issues"

    def set_status_filter(self, status: StatusFilter) -> None:
        self.query = self.query.with_status(status)
        self._recompute()

    def set_project_filter(self, project: str | None) -> None:
        self.query = self.query.with_project(project)
        self._recompute()

    def choose_sort(self, key: SortKey) -> None:
        self.query = self.query.choose_sort(key)
        self._recompute()

    def set_sort(self, key: SortKey, direction: SortDirection) -> None:
        self.query = ViewQuery(self.query.status, self.query.project, key, direction)
        self._recompute()

    def clear_filters(self) -> None:
        self.query = self.query.cleared()
        self._recompute()

    # ---- issue actions ---------------------------------------------------
    def branch_name(self, issue: Issue) -> str:
        return generate_branch_name(issue, self.settings.branch_name_format)

    def _copy(self, text: str, what: str) -> bool:
        copied = self.clipboard.copy(text)
        self.notice = f"Copied {what}: {text}" if copied else f"Clipboard unavailable; {what}: {text}"
        return copied

    def copy_branch_name(self, issue: Issue) -> bool:
        return self._copy(self.branch_name(issue), "branch name")

    def copy_identifier(self, issue: Issue) -> bool:
        return self._copy(issue.identifier, "issue ID")

    def copy_url(self, issue: Issue) -> bool:
        return self._copy(issue.url, "issue URL")

    def open_in_browser(self, issue: Issue) -> None:
        self.browser.open(issue.url)
        self.notice = f"Opening {issue.url}"

    # ---- menus -----------------------------------------------------------
    def _sort_marker(self, key: SortKey) -> str:
        if self.query.sort_key is key:
            return _SORT_ARROWS[self.query.direction]
        return ""

    def toolbar_actions(self) -> list[MenuAction]:
        actions = [
            MenuAction("Refresh", self.refresh, enabled=lambda: not self.loading),
        ]
        for key in SortKey:
            actions.append(
                MenuAction(
                    key.display_name,
                    partial(self.choose_sort, key),
                    marker=partial(self._sort_marker, key),
                    group="Sort By",
                )
            )
        for status in StatusFilter:
            actions.append(
                MenuAction(
                    status.display_name,
                    partial(self.set_status_filter, status),
                    marker=lambda s=status: _CHECK if self.query.status is s else "",
                    group="Status",
                )
            )
        for name in self.project_options():
            project = None if name == ALL_PROJECTS else name
            actions.append(
                MenuAction(
                    name,
                    partial(self.set_project_filter, project),
                    marker=lambda p=project: _CHECK if self.query.project == p else "",
                    group="Project",
                )
            )
        return actions

    def context_actions(self, issue: Issue) -> list[MenuAction]:
        return [
            MenuAction("Copy Branch Name", partial(self.copy_branch_name, issue), group="Copy"),
            MenuAction(
                f"Copy Issue ID ({issue.identifier})",
                partial(self.copy_identifier, issue),
                group="Copy",
            ),
            MenuAction("Copy Issue URL", partial(self.copy_url, issue), group="Copy"),
            MenuAction("Open in Browser", partial(self.open_in_browser, issue), group="Open"),
        ]


__all__ = ["LOADING_TEXT", "OwnerQueue", "ViewController"]
