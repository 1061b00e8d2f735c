from __future__ import annotations

import pytest

from linearview.errors import (
    API_KEY_HINT,
    EmptyResult,
    FetchResult,
    RemoteRejected,
    TransportError,
    Unauthenticated,
    describe_failure,
    redact,
)


def test_remote_rejected_joins_messages():
    error = RemoteRejected(["bad token", "rate limited"])

    assert error.message == "bad token, rate limited"
    assert error.messages == ["bad token", "rate limited"]
    assert error.kind == "remote_rejected"


def test_default_messages():
    assert Unauthenticated().message == "API key not configured"
    assert EmptyResult().message == "No user data returned"


def test_fetch_result_success_and_failure():
    ok = FetchResult.success([1, 2])
    failed: FetchResult[list[int]] = FetchResult.failure(TransportError("boom"))

    assert ok.ok and ok.unwrap() == [1, 2]
    assert not failed.ok
    with pytest.raises(TransportError):
        failed.unwrap()


def test_describe_failure_maps_kinds():
    assert describe_failure(Unauthenticated()) == API_KEY_HINT
    assert describe_failure(RemoteRejected(["bad token"])) == "Error: bad token"
    assert describe_failure(TransportError("Linear API returned HTTP 500")) == (
        "Error: Linear API returned HTTP 500"
    )


def test_redact_masks_api_keys_and_auth_headers():
    text = "key lin_api_ABCDEFGHIJKLMNOPQRSTUV sent with Authorization: secretvalue"

    redacted = redact(text)

    assert "lin_api_ABCDEFGHIJKLMNOPQRSTUV" not in redacted
    assert "secretvalue" not in redacted
    assert "Authorization: <redacted>" in redacted


def test_redact_leaves_plain_text_alone():
    assert redact("nothing to hide") == "nothing to hide"
    assert redact("") == ""
