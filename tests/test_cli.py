from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import pytest
import yaml

from linearview import cli
from linearview.client import ALL_ISSUES_QUERY, MY_ISSUES_QUERY, LinearClient
from linearview.credentials import KEYRING_ENTRY, KEYRING_SERVICE
from linearview.errors import API_KEY_HINT


@dataclass
class _DummyResponse:
    status_code: int
    payload: Any

    def json(self) -> Any:
        return self.payload

    @property
    def text(self) -> str:
        return json.dumps(self.payload)


class _DummySession:
    def __init__(self, responses: list[_DummyResponse]):
        self._responses = responses
        self.request_log: list[dict[str, Any]] = []

    def request(self, method, url, *, headers, json=None, timeout=None):
        self.request_log.append({"headers": headers, "json": json})
        if not self._responses:
            raise AssertionError("No response queued for request")
        return self._responses.pop(0)


class _Clipboard:
    def __init__(self):
        self.copied: list[str] = []

    def copy(self, text: str) -> bool:
        self.copied.append(text)
        return True


class _Browser:
    def __init__(self):
        self.opened: list[str] = []

    def open(self, url: str) -> None:
        self.opened.append(url)


def _node(identifier: str, title: str, state_type: str, priority: int, project: str | None) -> dict[str, Any]:
    return {
        "id": f"id-{identifier}",
        "identifier": identifier,
        "title": title,
        "description": "Details",
        "priority": priority,
        "url": f"https://linear.app/acme/issue/{identifier}",
        "createdAt": "2024-01-01T00:00:00.000Z",
        "updatedAt": f"2024-01-0{priority + 1}T00:00:00.000Z",
        "state": {"id": state_type, "name": state_type.title(), "color": "#000000", "type": state_type},
        "assignee": None,
        "project": {"id": project, "name": project, "icon": None, "color": None} if project else None,
        "labels": {"nodes": []},
        "comments": {"nodes": []},
    }


ISSUES_RESPONSE = {
    "data": {
        "issues": {
            "nodes": [
                _node("ENG-1", "Fix login bug!", "started", 2, "Apollo"),
                _node("ENG-2", "Write docs", "backlog", 0, None),
            ]
        }
    }
}

VIEWER_RESPONSE = {"data": {"viewer": {"id": "u1", "name": "Ada", "email": "ada@example.com"}}}


@pytest.fixture
def harness(monkeypatch: pytest.MonkeyPatch):
    state: dict[str, Any] = {"responses": [], "clipboard": _Clipboard(), "browser": _Browser()}
    session = _DummySession(state["responses"])
    state["session"] = session
    monkeypatch.setattr(
        cli, "build_client", lambda settings: LinearClient(session=session, api_url=settings.api_url)
    )
    monkeypatch.setattr(cli, "build_desktop", lambda: (state["clipboard"], state["browser"]))
    return state


def _with_key(monkeypatch: pytest.MonkeyPatch, harness, *payloads: dict[str, Any]) -> None:
    monkeypatch.setenv("LINEAR_API_KEY", "lin_api_test")
    harness["responses"].extend(_DummyResponse(200, p) for p in payloads)


def test_list_prints_rows_and_status(harness, monkeypatch, capsys):
    _with_key(monkeypatch, harness, ISSUES_RESPONSE)

    assert cli.main(["list"]) == 0

    out = capsys.readouterr().out
    assert "2 / 2 issues" in out
    assert "[ENG-1] Fix login bug!" in out
    assert harness["session"].request_log[0]["json"]["query"] == MY_ISSUES_QUERY
    assert harness["session"].request_log[0]["headers"]["Authorization"] == "lin_api_test"


def test_list_filters_sorts_and_emits_json(harness, monkeypatch, capsys):
    _with_key(monkeypatch, harness, ISSUES_RESPONSE)

    code = cli.main(["list", "--all", "--status", "started", "--project", "Apollo", "--json"])

    assert code == 0
    data = json.loads(capsys.readouterr().out)
    assert [item["identifier"] for item in data] == ["ENG-1"]
    assert harness["session"].request_log[0]["json"]["query"] == ALL_ISSUES_QUERY


def test_list_priority_sort_quiet(harness, monkeypatch, capsys):
    _with_key(monkeypatch, harness, ISSUES_RESPONSE)

    assert cli.main(["--quiet", "list", "--sort", "priority"]) == 0

    out = capsys.readouterr().out
    assert out.splitlines() == ["ENG-1\tFix login bug!", "ENG-2\tWrite docs"]


def test_list_without_api_key_fails_with_hint(harness, capsys):
    assert cli.main(["list"]) == 1

    assert API_KEY_HINT in capsys.readouterr().err
    assert harness["session"].request_log == []


def test_list_reports_graphql_errors(harness, monkeypatch, capsys):
    _with_key(monkeypatch, harness, {"errors": [{"message": "bad token"}]})

    assert cli.main(["list"]) == 1

    assert "Error: bad token" in capsys.readouterr().err


def test_show_unknown_issue_exits_2(harness, monkeypatch, capsys):
    _with_key(monkeypatch, harness, ISSUES_RESPONSE)

    assert cli.main(["show", "ENG-99"]) == 2

    assert "Issue 'ENG-99' not found" in capsys.readouterr().err


def test_show_prints_detail(harness, monkeypatch, capsys):
    _with_key(monkeypatch, harness, ISSUES_RESPONSE)

    assert cli.main(["show", "eng-1"]) == 0

    out = capsys.readouterr().out
    assert "Fix login bug!" in out
    assert "No comments" in out


def test_branch_default_custom_and_copy(harness, monkeypatch, capsys):
    _with_key(monkeypatch, harness, ISSUES_RESPONSE, ISSUES_RESPONSE)

    assert cli.main(["branch", "ENG-1", "--copy"]) == 0
    assert cli.main(["branch", "ENG-1", "--format", "feature/{ID}/{title}"]) == 0

    out = capsys.readouterr().out.splitlines()
    assert out == ["eng-1-fix-login-bug", "feature/ENG-1/fix-login-bug"]
    assert harness["clipboard"].copied == ["eng-1-fix-login-bug"]


def test_branch_uses_saved_format(harness, monkeypatch, capsys, tmp_path: Path):
    (tmp_path / "config.yaml").write_text("branch:\n  name_format: '{ID}_{title}'\n", encoding="utf-8")
    _with_key(monkeypatch, harness, ISSUES_RESPONSE)

    assert cli.main(["branch", "ENG-1"]) == 0

    assert capsys.readouterr().out.strip() == "ENG-1_fix-login-bug"


def test_open_launches_browser(harness, monkeypatch):
    _with_key(monkeypatch, harness, ISSUES_RESPONSE)

    assert cli.main(["open", "ENG-2"]) == 0

    assert harness["browser"].opened == ["https://linear.app/acme/issue/ENG-2"]


def test_projects_lists_names(harness, monkeypatch, capsys):
    _with_key(monkeypatch, harness, ISSUES_RESPONSE)

    assert cli.main(["--quiet", "projects"]) == 0

    assert capsys.readouterr().out.splitlines() == ["Apollo"]


def test_actions_list_and_run(harness, monkeypatch, capsys):
    _with_key(monkeypatch, harness, ISSUES_RESPONSE, ISSUES_RESPONSE, ISSUES_RESPONSE)

    assert cli.main(["actions", "ENG-1"]) == 0
    assert "Copy Issue ID (ENG-1)" in capsys.readouterr().out

    assert cli.main(["actions", "ENG-1", "--run", "Copy Branch Name"]) == 0
    assert harness["clipboard"].copied == ["eng-1-fix-login-bug"]

    assert cli.main(["actions", "ENG-1", "--run", "Delete Issue"]) == 2


def test_login_verifies_then_stores(harness, memory_keyring, capsys):
    harness["responses"].append(_DummyResponse(200, VIEWER_RESPONSE))

    assert cli.main(["login", "--api-key", "lin_api_new"]) == 0

    assert memory_keyring.secrets[(KEYRING_SERVICE, KEYRING_ENTRY)] == "lin_api_new"
    assert "Connected as Ada" in capsys.readouterr().out


def test_login_rejected_key_is_not_stored(harness, memory_keyring, capsys):
    harness["responses"].append(_DummyResponse(200, {"errors": [{"message": "invalid key"}]}))

    assert cli.main(["login", "--api-key", "lin_api_bad"]) == 1

    assert memory_keyring.secrets == {}
    assert "invalid key" in capsys.readouterr().err


def test_login_without_verification(harness, memory_keyring):
    assert cli.main(["login", "--api-key", "lin_api_new", "--no-verify"]) == 0

    assert harness["session"].request_log == []
    assert memory_keyring.secrets[(KEYRING_SERVICE, KEYRING_ENTRY)] == "lin_api_new"


def test_logout(harness, memory_keyring, capsys):
    memory_keyring.secrets[(KEYRING_SERVICE, KEYRING_ENTRY)] = "old"

    assert cli.main(["logout"]) == 0
    assert memory_keyring.secrets == {}
    assert cli.main(["logout"]) == 0
    assert "No API key was stored" in capsys.readouterr().out


def test_test_connection(harness, monkeypatch, capsys):
    assert cli.main(["test-connection"]) == 1
    assert API_KEY_HINT in capsys.readouterr().err

    _with_key(monkeypatch, harness, VIEWER_RESPONSE)
    assert cli.main(["test-connection"]) == 0
    assert "Connected as Ada <ada@example.com> (key from environment)" in capsys.readouterr().out


def test_settings_update_is_persisted(harness, tmp_path: Path, capsys):
    assert cli.main(["settings", "--show-only-mine", "no", "--branch-format", "{ID}"]) == 0

    saved = yaml.safe_load((tmp_path / "config.yaml").read_text(encoding="utf-8"))
    assert saved["display"]["show_only_my_issues"] is False
    assert saved["branch"]["name_format"] == "{ID}"

    assert cli.main(["settings", "--branch-format", ""]) == 0
    saved = yaml.safe_load((tmp_path / "config.yaml").read_text(encoding="utf-8"))
    assert saved["branch"]["name_format"] == "{id}-{title}"


def test_invalid_config_exits_2(harness, tmp_path: Path, capsys):
    bad = tmp_path / "bad.yaml"
    bad.write_text("display: [oops", encoding="utf-8")

    assert cli.main(["--config", str(bad), "list"]) == 2
    assert "Invalid settings file" in capsys.readouterr().err


def test_unknown_status_is_a_usage_error(harness):
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["list", "--status", "blocked"])

    assert excinfo.value.code == 2


def test_quiet_env_var(harness, monkeypatch, capsys):
    monkeypatch.setenv("LINEARVIEW_QUIET", "1")
    _with_key(monkeypatch, harness, ISSUES_RESPONSE)

    assert cli.main(["list"]) == 0

    assert "issues" not in capsys.readouterr().out
