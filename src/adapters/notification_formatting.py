"""Shared notification formatting helpers.

Keeping formatting here prevents drift between notifiers and keeps messages
consistent regardless of delivery channel.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from core.models import MatchRecord

DIVIDER = "──────────────"


def format_timestamp(time_us: Optional[int]) -> str:
    """Return local time for a Jetstream time_us, or now when it is unknown."""

    if time_us is None:
        moment = datetime.now(timezone.utc)
    else:
        moment = datetime.fromtimestamp(time_us / 1_000_000, tz=timezone.utc)
    return moment.astimezone().strftime("%H:%M:%S %d-%m-%Y")


def post_link(uri: Optional[str]) -> Optional[str]:
    """Return a bsky.app link for a post URI, if the URI is a post."""

    if not uri or not uri.startswith("at://"):
        return None
    parts = uri[len("at://") :].split("/")
    if len(parts) != 3 or parts[1] != "app.bsky.feed.post":
        return None
    did, _, rkey = parts
    return f"https://bsky.app/profile/{did}/post/{rkey}"


def _format_plain(match: MatchRecord) -> str:
    lines = [
        f"[{format_timestamp(match.time_us)}]",
        f"Filter: {match.filter_name}",
        f"Repo:   {match.repo}",
        DIVIDER,
    ]
    if match.text_snippet:
        lines.extend(["", match.text_snippet, ""])
    lines.extend(["Why:", match.reason])
    link = post_link(match.uri)
    if link:
        lines.extend(["", "Link:", link])
    lines.append(DIVIDER)
    return "\n".join(lines)


def _format_markdown(match: MatchRecord) -> str:
    def escape_md(value: str) -> str:
        for ch in r"*[`_":
            value = value.replace(ch, f"\\{ch}")
        return value

    lines = [
        f"[{format_timestamp(match.time_us)}]",
        f"**Filter:** {escape_md(match.filter_name)}",
        f"**Repo:** `{match.repo}`",
        DIVIDER,
    ]
    if match.text_snippet:
        lines.extend(["", escape_md(match.text_snippet), ""])
    lines.extend(["**Why:**", escape_md(match.reason)])
    link = post_link(match.uri)
    if link:
        lines.extend(["", f"**Link:** {link}"])
    lines.append(DIVIDER)
    return "\n".join(lines)


def format_notification(match: MatchRecord, mode: str) -> str:
    """Return the notification formatted for the requested mode."""

    if mode == "plain":
        return _format_plain(match)
    if mode == "markdown":
        return _format_markdown(match)
    raise ValueError(f"Unsupported notification format: {mode}")
