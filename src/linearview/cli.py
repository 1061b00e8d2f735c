"""linearview CLI.

Subcommands:
  list             -> fetch and print issues (filters, sort, --json)
  show ID          -> issue details with comments
  branch ID        -> print (and optionally copy) a VCS branch name
  open ID          -> open the issue in the default browser
  projects         -> project names present in the fetched set
  actions ID       -> list or run the issue context actions
  browse           -> interactive session
  login / logout   -> store or remove the API key in the system keyring
  test-connection  -> check the configured key against the API
  settings         -> show or change preferences

Exit codes: 0 success, 1 fetch/credential failure, 2 usage or lookup error.
"""

from __future__ import annotations

import argparse
import getpass
import json
import os
import sys
from dataclasses import asdict, dataclass
from typing import Any

import yaml

from . import __version__
from .branch import generate_branch_name
from .browse import BrowseSession
from .client import LinearClient
from .controller import ViewController
from .credentials import CredentialError, CredentialStore, create_credential_store
from .desktop import BrowserLauncher, Clipboard, SystemBrowser, SystemClipboard
from .errors import API_KEY_HINT, describe_failure
from .filtering import SortDirection, SortKey, StatusFilter
from .logging import configure_logging, get_logger
from .menus import MenuError, dispatch, render_menu
from .models import Issue
from .observability import configure_telemetry, telemetry_from_env
from .render import (
    print_error,
    print_header,
    print_success,
    print_warning,
    render_issue_detail,
    render_issue_row,
    render_status_line,
)
from .settings import (
    DEFAULT_BRANCH_FORMAT,
    ConfigError,
    ViewerSettings,
    load_settings,
    save_settings,
    settings_to_dict,
)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_USAGE = 2

QUIET_ENV_VAR = "LINEARVIEW_QUIET"
BROWSER_WAIT_SECONDS = 5.0

_MAX_HELP_WIDTH = 100


class _HelpFormatter(argparse.HelpFormatter):
    def __init__(self, prog: str) -> None:
        super().__init__(prog, max_help_position=30, width=_MAX_HELP_WIDTH)


class _FormatterArgumentParser(argparse.ArgumentParser):
    def __init__(self, *args: Any, **kwargs: Any) -> None:
        kwargs.setdefault("formatter_class", _HelpFormatter)
        super().__init__(*args, **kwargs)


def _add_scope_flags(parser: argparse.ArgumentParser) -> None:
    scope = parser.add_mutually_exclusive_group()
    scope.add_argument(
        "--mine", dest="scope", action="store_const", const="mine", help="Only issues assigned to me"
    )
    scope.add_argument(
        "--all", dest="scope", action="store_const", const="all", help="All open issues in the workspace"
    )


def _build_parser() -> argparse.ArgumentParser:
    """Construct top-level CLI parser with subcommands."""
    p = _FormatterArgumentParser(prog="linearview", description="Browse Linear issues from the terminal")
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    p.add_argument("--config", help="Preferences file (env: LINEARVIEW_CONFIG)")
    p.add_argument(
        "--quiet",
        action="store_true",
        help="Plain output without headers or status lines (env: LINEARVIEW_QUIET=1)",
    )
    sub = p.add_subparsers(
        dest="cmd",
        required=True,
        parser_class=_FormatterArgumentParser,
        metavar="<command>",
    )

    pl = sub.add_parser("list", help="Fetch and print issues")
    _add_scope_flags(pl)
    pl.add_argument("--status", choices=[s.value for s in StatusFilter], default=StatusFilter.ALL.value)
    pl.add_argument("--project", help="Exact project name")
    pl.add_argument("--sort", choices=[k.value for k in SortKey], default=SortKey.UPDATED_AT.value)
    pl.add_argument(
        "--direction", choices=[d.value for d in SortDirection], default=SortDirection.DESCENDING.value
    )
    pl.add_argument("--json", action="store_true", help="Emit the visible issues as JSON")

    pshow = sub.add_parser("show", help="Show issue details")
    pshow.add_argument("identifier", metavar="ID")
    _add_scope_flags(pshow)

    pb = sub.add_parser("branch", help="Print a branch name for an issue")
    pb.add_argument("identifier", metavar="ID")
    pb.add_argument("--format", dest="branch_format", help="Pattern with {id}, {ID} and {title}")
    pb.add_argument("--copy", action="store_true", help="Also copy it to the clipboard")
    _add_scope_flags(pb)

    po = sub.add_parser("open", help="Open an issue in the browser")
    po.add_argument("identifier", metavar="ID")
    _add_scope_flags(po)

    pp = sub.add_parser("projects", help="List project names of the fetched issues")
    _add_scope_flags(pp)

    pa = sub.add_parser("actions", help="List or run issue context actions")
    pa.add_argument("identifier", metavar="ID")
    pa.add_argument("--run", metavar="LABEL", help="Label of the action to run")
    _add_scope_flags(pa)

    pbr = sub.add_parser("browse", help="Interactive session")
    _add_scope_flags(pbr)

    plogin = sub.add_parser("login", help="Store the API key in the system keyring")
    plogin.add_argument("--api-key", help="Key to store (prompted when omitted)")
    plogin.add_argument("--no-verify", action="store_true", help="Skip the connection test")

    sub.add_parser("logout", help="Remove the stored API key")
    sub.add_parser("test-connection", help="Check the configured API key")

    ps = sub.add_parser("settings", help="Show or change preferences")
    ps.add_argument("--show-only-mine", choices=["yes", "no"])
    ps.add_argument("--branch-format", help="Branch name pattern; empty resets to the default")
    return p


@dataclass
class CommandContext:
    settings: ViewerSettings
    credentials: CredentialStore
    client: LinearClient
    clipboard: Clipboard
    browser: BrowserLauncher
    quiet: bool = False


def build_client(settings: ViewerSettings) -> LinearClient:
    return LinearClient(api_url=settings.api_url, timeout=settings.request_timeout)


def build_credentials(settings: ViewerSettings) -> CredentialStore:
    return create_credential_store(
        load_dotenv=settings.env_load_dotenv, dotenv_path=settings.env_dotenv_path
    )


def build_desktop() -> tuple[Clipboard, BrowserLauncher]:
    return SystemClipboard(), SystemBrowser(wait=BROWSER_WAIT_SECONDS)


def prepare_context(args: argparse.Namespace) -> CommandContext:
    settings = load_settings(args.config)
    level = "ERROR" if args.quiet else settings.logging_level
    configure_logging(json_logging=settings.logging_json_enabled, level=level)
    clipboard, browser = build_desktop()
    return CommandContext(
        settings=settings,
        credentials=build_credentials(settings),
        client=build_client(settings),
        clipboard=clipboard,
        browser=browser,
        quiet=args.quiet,
    )


def _controller(ctx: CommandContext, args: argparse.Namespace) -> ViewController:
    scope = getattr(args, "scope", None)
    if scope is not None:
        ctx.settings.show_only_my_issues = scope == "mine"
    return ViewController(
        ctx.client, ctx.credentials, ctx.settings, clipboard=ctx.clipboard, browser=ctx.browser
    )


def _fetch(controller: ViewController) -> bool:
    controller.refresh()
    controller.wait_for_refresh()
    if controller.failed:
        print_error(controller.status_text)
        return False
    return True


def _lookup(controller: ViewController, identifier: str) -> Issue | None:
    issue = controller.find(identifier)
    if issue is None:
        print_error(f"Issue '{identifier}' not found")
    return issue


def _cmd_list(ctx: CommandContext, args: argparse.Namespace) -> int:
    with _controller(ctx, args) as controller:
        if not _fetch(controller):
            return EXIT_FAILURE
        controller.set_status_filter(StatusFilter.parse(args.status))
        if args.project:
            controller.set_project_filter(args.project)
        controller.set_sort(SortKey.parse(args.sort), SortDirection.parse(args.direction))
        visible = controller.visible
        if args.json:
            print(json.dumps([asdict(issue) for issue in visible], indent=2))
            return EXIT_OK
        if not ctx.quiet:
            print_header(render_status_line(controller.status_text, controller.active_filters()))
        for issue in visible:
            if ctx.quiet:
                print(f"{issue.identifier}\t{issue.title}")
            else:
                print(f"  {render_issue_row(issue)}")
    return EXIT_OK


def _cmd_show(ctx: CommandContext, args: argparse.Namespace) -> int:
    with _controller(ctx, args) as controller:
        if not _fetch(controller):
            return EXIT_FAILURE
        issue = _lookup(controller, args.identifier)
        if issue is None:
            return EXIT_USAGE
        print(render_issue_detail(issue))
    return EXIT_OK


def _cmd_branch(ctx: CommandContext, args: argparse.Namespace) -> int:
    with _controller(ctx, args) as controller:
        if not _fetch(controller):
            return EXIT_FAILURE
        issue = _lookup(controller, args.identifier)
        if issue is None:
            return EXIT_USAGE
        if args.branch_format is not None:
            name = generate_branch_name(issue, args.branch_format)
        else:
            name = controller.branch_name(issue)
        print(name)
        if args.copy:
            if ctx.clipboard.copy(name):
                if not ctx.quiet:
                    print_success("Copied branch name to clipboard", stream=sys.stderr)
            else:
                print_warning("Clipboard unavailable", stream=sys.stderr)
    return EXIT_OK


def _cmd_open(ctx: CommandContext, args: argparse.Namespace) -> int:
    with _controller(ctx, args) as controller:
        if not _fetch(controller):
            return EXIT_FAILURE
        issue = _lookup(controller, args.identifier)
        if issue is None:
            return EXIT_USAGE
        controller.open_in_browser(issue)
        if not ctx.quiet:
            print(issue.url)
    return EXIT_OK


def _cmd_projects(ctx: CommandContext, args: argparse.Namespace) -> int:
    with _controller(ctx, args) as controller:
        if not _fetch(controller):
            return EXIT_FAILURE
        names = controller.project_options()[1:]
        if not ctx.quiet:
            print_header(f"Projects ({len(names)})")
        for name in names:
            print(name)
    return EXIT_OK


def _cmd_actions(ctx: CommandContext, args: argparse.Namespace) -> int:
    with _controller(ctx, args) as controller:
        if not _fetch(controller):
            return EXIT_FAILURE
        issue = _lookup(controller, args.identifier)
        if issue is None:
            return EXIT_USAGE
        actions = controller.context_actions(issue)
        if not args.run:
            for line in render_menu(actions):
                print(line)
            return EXIT_OK
        try:
            dispatch(actions, args.run)
        except MenuError as exc:
            print_error(str(exc))
            return EXIT_USAGE
        if controller.notice:
            print(controller.notice)
    return EXIT_OK


def _cmd_browse(ctx: CommandContext, args: argparse.Namespace) -> int:
    with _controller(ctx, args) as controller:
        return BrowseSession(controller).run()


def _cmd_login(ctx: CommandContext, args: argparse.Namespace) -> int:
    api_key = args.api_key
    if api_key is None:
        api_key = getpass.getpass("Linear API key: ")
    if not api_key.strip():
        print_error("API key must not be empty")
        return EXIT_USAGE
    if not args.no_verify:
        result = ctx.client.test_connection(api_key.strip())
        if result.error is not None:
            print_error(f"Connection failed: {describe_failure(result.error)}")
            return EXIT_FAILURE
        if result.value is not None and not ctx.quiet:
            print_success(f"Connected as {result.value.name}")
    try:
        ctx.credentials.set_api_key(api_key)
    except CredentialError as exc:
        print_error(str(exc))
        return EXIT_FAILURE
    if not ctx.quiet:
        print_success("API key saved to the system keyring")
    return EXIT_OK


def _cmd_logout(ctx: CommandContext, args: argparse.Namespace) -> int:
    try:
        removed = ctx.credentials.delete_api_key()
    except CredentialError as exc:
        print_error(str(exc))
        return EXIT_FAILURE
    if not ctx.quiet:
        if removed:
            print_success("API key removed")
        else:
            print_warning("No API key was stored")
    return EXIT_OK


def _cmd_test_connection(ctx: CommandContext, args: argparse.Namespace) -> int:
    api_key = ctx.credentials.get_api_key()
    if api_key is None:
        print_error(API_KEY_HINT)
        return EXIT_FAILURE
    result = ctx.client.test_connection(api_key)
    if result.error is not None:
        print_error(f"Connection failed: {describe_failure(result.error)}")
        return EXIT_FAILURE
    user = result.unwrap()
    email = f" <{user.email}>" if user.email else ""
    print_success(f"Connected as {user.name}{email} (key from {ctx.credentials.source()})")
    return EXIT_OK


def _cmd_settings(ctx: CommandContext, args: argparse.Namespace) -> int:
    settings = ctx.settings
    changed = False
    if args.show_only_mine is not None:
        settings.show_only_my_issues = args.show_only_mine == "yes"
        changed = True
    if args.branch_format is not None:
        settings.branch_name_format = args.branch_format.strip() or DEFAULT_BRANCH_FORMAT
        changed = True
    if changed:
        target = save_settings(settings)
        if not ctx.quiet:
            print_success(f"Saved preferences to {target}")
    print(yaml.safe_dump(settings_to_dict(settings), sort_keys=False), end="")
    return EXIT_OK


def _build_handlers(ctx: CommandContext, args: argparse.Namespace) -> dict[str, Any]:
    return {
        "list": lambda: _cmd_list(ctx, args),
        "show": lambda: _cmd_show(ctx, args),
        "branch": lambda: _cmd_branch(ctx, args),
        "open": lambda: _cmd_open(ctx, args),
        "projects": lambda: _cmd_projects(ctx, args),
        "actions": lambda: _cmd_actions(ctx, args),
        "browse": lambda: _cmd_browse(ctx, args),
        "login": lambda: _cmd_login(ctx, args),
        "logout": lambda: _cmd_logout(ctx, args),
        "test-connection": lambda: _cmd_test_connection(ctx, args),
        "settings": lambda: _cmd_settings(ctx, args),
    }


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    if not args.quiet and os.environ.get(QUIET_ENV_VAR) == "1":
        args.quiet = True
    try:
        ctx = prepare_context(args)
    except ConfigError as exc:
        print_error(str(exc))
        return EXIT_USAGE
    exporter, endpoint = telemetry_from_env()
    if exporter:
        configure_telemetry(
            exporter="otlp" if exporter == "otlp" else "console",
            endpoint=endpoint,
        )
    handler = _build_handlers(ctx, args).get(args.cmd)
    if handler is None:  # pragma: no cover - argparse enforces valid choices
        parser.print_help()
        return EXIT_USAGE
    with get_logger().timed_operation(f"cli.{args.cmd}"):
        return int(handler())


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
