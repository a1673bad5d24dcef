"""Jetstream-to-core event mapping adapter.

This keeps Jetstream wire details out of the core pipeline. A Jetstream
message is the JSON rendition of one firehose event, for example::

    {"did": "did:plc:...", "time_us": 1725911162329308, "kind": "commit",
     "commit": {"operation": "create", "collection": "app.bsky.feed.post",
                "rkey": "3l3qo2vutsw2b", "record": {"text": "hello"}}}
"""

from __future__ import annotations

from typing import Any, Optional, Tuple

from core.models import CommitEvent, Event, HandleUpdateEvent, OtherEvent

POST_COLLECTION = "app.bsky.feed.post"


def _post_texts(commit: dict) -> Tuple[str, ...]:
    # Only created or updated posts carry text; deletes have no record at all.
    if commit.get("collection") != POST_COLLECTION:
        return ()
    if commit.get("operation") not in {"create", "update"}:
        return ()
    record = commit.get("record") or {}
    text = record.get("text")
    if not isinstance(text, str) or not text:
        return ()
    return (text,)


def _time_us(message: dict) -> Optional[int]:
    value = message.get("time_us")
    if isinstance(value, int):
        return value
    return None


def build_event(message: dict[str, Any]) -> Event:
    """Build a core event from a decoded Jetstream message."""

    did = message.get("did")
    if not isinstance(did, str) or not did:
        raise ValueError("Jetstream message has no did")

    kind = message.get("kind")
    time_us = _time_us(message)

    if kind == "commit":
        commit = message.get("commit") or {}
        return CommitEvent(
            repo=did,
            texts=_post_texts(commit),
            collection=commit.get("collection"),
            rkey=commit.get("rkey"),
            operation=commit.get("operation"),
            time_us=time_us,
        )

    if kind == "identity":
        identity = message.get("identity") or {}
        return HandleUpdateEvent(repo=did, handle=identity.get("handle"), time_us=time_us)

    return OtherEvent(kind=str(kind or "unknown"), repo=did, time_us=time_us, payload=message)
