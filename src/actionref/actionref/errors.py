# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Exception taxonomy and actionable error messages."""

import re
from typing import Optional, Tuple

from rich.console import Console
from rich.panel import Panel
from rich.text import Text

console = Console(stderr=True)


class ActionRefError(Exception):
    """Base class for every error raised inside actionref."""


class FetchError(ActionRefError):
    """Content could not be retrieved (network, filesystem, status or empty body)."""

    def __init__(self, location: str, detail: str):
        super().__init__(f"Unable to fetch {location}: {detail}")
        self.location = location
        self.detail = detail


class ContentParseError(ActionRefError):
    """Fetched content is not valid YAML, or lacks the block its kind requires."""


class TreeFrozenError(ActionRefError):
    """A node was added to a tree after construction finished."""


ERROR_PATTERNS = {
    "not_found": {
        "pattern": r"(http 404|not found|no such file)",
        "message": "Reference not found",
        "action": "Check the owner/repo, the ref after '@' and the path of the action or workflow",
    },
    "rate_limit": {
        "pattern": r"(http 403|http 429|rate limit)",
        "message": "GitHub refused the request",
        "action": "Wait a few minutes; failed lookups are retried after the failure TTL",
    },
    "network": {
        "pattern": r"(connection refused|network.*unreachable|timed out|timeout|could not resolve|name resolution)",
        "message": "Network connection failed",
        "action": "Check your internet connection or raise ACTIONREF_FETCH_TIMEOUT_S",
    },
    "yaml": {
        "pattern": r"(yaml|scanner|while parsing)",
        "message": "Invalid YAML",
        "action": "Fix the syntax error reported below",
    },
    "permission": {
        "pattern": r"(permission denied|access denied|outside the workspace)",
        "message": "Permission denied",
        "action": "Check file permissions and ACTIONREF_WORKSPACE_ROOT",
    },
}


def detect_error_pattern(detail: str) -> Optional[Tuple[str, str]]:
    """Return ``(summary, fix)`` for the first known failure in *detail*."""
    for info in ERROR_PATTERNS.values():
        if re.search(info["pattern"], detail, re.IGNORECASE):
            return info["message"], info["action"]
    return None


def show_error(title: str, detail: str, max_lines: int = 8):
    """Print *title* in a red panel with a suggested fix and the tail of *detail*."""
    body = Text(f"✗ {title}", style="bold red")
    hint = detect_error_pattern(detail)
    if hint is not None:
        summary, fix = hint
        body.append(f"\n{summary}", style="red")
        body.append("\n→ Fix: ", style="bold yellow")
        body.append(fix, style="yellow")
    console.print(Panel(body, border_style="red", expand=False))

    tail = [line for line in detail.strip().splitlines() if line.strip()][-max_lines:]
    for line in tail:
        console.print(f"  [dim]│[/dim] {line}", highlight=False)
