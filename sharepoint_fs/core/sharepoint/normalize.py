"""Path prefixing and response normalization for SharePoint items.

SharePoint REST responses describe files and folders with a
server-relative URL, one of two last-modified keys and an OData type tag.
This module turns that raw shape into a NormalizedEntry.
"""

from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel

LIBRARY_SEGMENT = "Shared Documents"
FOLDER_TYPE = "SP.Folder"

# Checked in order; the first key present wins
TIMESTAMP_KEYS = ("TimeLastModified", "Modified")


class NormalizedEntry(BaseModel):
    """Canonical metadata record for a file or directory."""

    path: str
    timestamp: int | None = None
    size: int | None = None
    type: Literal["file", "dir"] = "file"

    @property
    def bytes(self) -> int | None:
        """Alias of size."""
        return self.size

    @property
    def is_dir(self) -> bool:
        return self.type == "dir"

    @property
    def is_file(self) -> bool:
        return self.type == "file"

    def as_dict(self) -> dict[str, Any]:
        """Flat record; optional keys appear only when known."""
        record: dict[str, Any] = {"path": self.path}
        if self.timestamp is not None:
            record["timestamp"] = self.timestamp
        if self.size is not None:
            record["size"] = self.size
            record["bytes"] = self.size
        record["type"] = self.type
        return record


def apply_path_prefix(path: str) -> str:
    """Rewrite a path to exactly one leading slash and no trailing slash.

    Idempotent: "//a/" -> "/a", and "/a" stays "/a". Empty and "/" map to "/".
    """
    return "/" + path.strip("/")


def parse_timestamp(value: Any) -> int | None:
    """Parse an ISO-8601 timestamp into epoch seconds.

    Naive values are taken as UTC. Returns None for anything unparseable.
    """
    if not value:
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        try:
            parsed = datetime.fromisoformat(str(value).strip().replace("Z", "+00:00"))
        except ValueError:
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return int(parsed.timestamp())


def library_relative_path(server_relative_url: str) -> str:
    """Return the part of a server-relative URL after the library segment.

    "/sites/team/Shared Documents/foo/bar.txt" -> "foo/bar.txt". URLs that do
    not contain the segment yield "".
    """
    _, found, remainder = server_relative_url.partition(LIBRARY_SEGMENT)
    if not found:
        return ""
    return remainder.lstrip("/")


def normalize_response(response: Mapping[str, Any]) -> NormalizedEntry:
    """Translate a raw SharePoint item record into a NormalizedEntry.

    Args:
        response: Raw item with ServerRelativeUrl, optional TimeLastModified
            or Modified, optional size and a __metadata.type tag

    Returns:
        NormalizedEntry for the item
    """
    timestamp = None
    for key in TIMESTAMP_KEYS:
        if response.get(key) is not None:
            timestamp = parse_timestamp(response[key])
            break

    metadata = response.get("__metadata") or {}

    return NormalizedEntry(
        path=library_relative_path(response.get("ServerRelativeUrl") or ""),
        timestamp=timestamp,
        size=response.get("size"),
        type="dir" if metadata.get("type") == FOLDER_TYPE else "file",
    )
