"""linearview - browse Linear issues from the terminal.

Public API:

from linearview import LinearClient, filter_sort, generate_branch_name

client = LinearClient()
result = client.fetch_my_issues(api_key)
if result.ok:
    for issue in filter_sort(result.value, sort_key=SortKey.PRIORITY):
        print(issue.identifier, generate_branch_name(issue))

The CLI (``linearview``) and the interactive ``browse`` session are thin
layers over ``ViewController``.
"""

from __future__ import annotations

__version__ = "0.2.0"

from .branch import generate_branch_name, slugify_title
from .client import LinearClient
from .controller import OwnerQueue, ViewController
from .errors import (
    EmptyResult,
    FetchError,
    FetchResult,
    RemoteRejected,
    TransportError,
    Unauthenticated,
)
from .filtering import SortDirection, SortKey, StatusFilter, ViewQuery, filter_sort
from .models import Issue, User
from .settings import ViewerSettings, load_settings

__all__ = [
    "EmptyResult",
    "FetchError",
    "FetchResult",
    "Issue",
    "LinearClient",
    "OwnerQueue",
    "RemoteRejected",
    "SortDirection",
    "SortKey",
    "StatusFilter",
    "TransportError",
    "Unauthenticated",
    "User",
    "ViewController",
    "ViewQuery",
    "ViewerSettings",
    "__version__",
    "filter_sort",
    "generate_branch_name",
    "load_settings",
    "slugify_title",
]
