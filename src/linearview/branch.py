from __future__ import annotations

import re

from .models import Issue
from .settings import DEFAULT_BRANCH_FORMAT

MAX_TITLE_LENGTH = 50

_RE_DISALLOWED = re.compile(r"[^a-z0-9\s-]", re.ASCII)
_RE_WHITESPACE = re.compile(r"\s+", re.ASCII)


def slugify_title(title: str) -> str:
    slug = _RE_DISALLOWED.sub("", title.lower())
    slug = _RE_WHITESPACE.sub("-", slug)
    return slug[:MAX_TITLE_LENGTH].rstrip("-")


def generate_branch_name(issue: Issue, format_pattern: str | None = None) -> str:
    """Render a VCS branch name for ``issue``.

    Placeholders: ``{id}`` lowercased identifier, ``{ID}`` identifier as-is,
    ``{title}`` slugified title. Plain textual replacement, no escaping.
    """
    pattern = format_pattern or DEFAULT_BRANCH_FORMAT
    return (
        pattern.replace("{id}", issue.identifier.lower())
        .replace("{ID}", issue.identifier)
        .replace("{title}", slugify_title(issue.title))
    )


__all__ = ["MAX_TITLE_LENGTH", "generate_branch_name", "slugify_title"]
