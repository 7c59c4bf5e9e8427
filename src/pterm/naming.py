"""Canonical session identifiers derived from terminal labels."""

from __future__ import annotations

import re

SESSION_PREFIX = "pterm-"
SYNTHETIC_NAME_PREFIX = "term-"

# tmux rejects "." and ":" in session names, so they separate words like spaces do.
_SEPARATOR_RUNS = re.compile(r"[\s\-.:]+")


def default_display_name(slot_id: int) -> str:
    return f"Terminal {slot_id}"


def normalize_label(display_name: str | None) -> str:
    if not display_name:
        return ""
    return _SEPARATOR_RUNS.sub("-", display_name.lower()).strip("-")


def normalize_session_id(
    display_name: str | None,
    *,
    slot_id: int,
    prefix: str = SESSION_PREFIX,
) -> str:
    """Map a human label to a namespaced backend session id.

    ``"Dev Server"`` becomes ``"pterm-dev-server"``. A missing label, or one
    made only of separators, becomes ``"pterm-term-<slot_id>"``.
    """
    label = normalize_label(display_name)
    if not label:
        label = f"{SYNTHETIC_NAME_PREFIX}{slot_id}"
    return f"{prefix}{label}"
