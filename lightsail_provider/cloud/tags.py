"""
Tag helpers for Lightsail resources.

Lightsail represents tags as ``[{"key": ..., "value": ...}]``; locally we use
plain ``dict[str, str]``.  A `TagPolicy` carries the provider-wide default
tags and the ignore rules applied when reading tags back from AWS.
"""

from dataclasses import dataclass, field
from typing import Optional

AWS_TAG_PREFIX = "aws:"


@dataclass(frozen=True)
class TagPolicy:
    """Provider-wide default tags plus keys excluded from reads."""

    default_tags: dict[str, str] = field(default_factory=dict)
    ignore_keys: frozenset[str] = frozenset()
    ignore_key_prefixes: tuple[str, ...] = ()

    def merge(self, resource_tags: Optional[dict[str, str]]) -> dict[str, str]:
        """Defaults overlaid with resource-specific tags (resource wins)."""
        merged = dict(self.default_tags)
        merged.update(resource_tags or {})
        return merged

    def filter(self, tags: dict[str, str]) -> dict[str, str]:
        """Drop ``aws:`` system tags and anything matched by the ignore rules."""
        return {
            key: value
            for key, value in tags.items()
            if not key.startswith(AWS_TAG_PREFIX)
            and key not in self.ignore_keys
            and not any(key.startswith(p) for p in self.ignore_key_prefixes)
        }

    def remove_defaults(self, tags: dict[str, str]) -> dict[str, str]:
        """
        Strip tags that come purely from the defaults.

        A tag is removed only when the default has the same key *and* value;
        a resource-level override of a default key is kept.
        """
        return {
            key: value
            for key, value in tags.items()
            if self.default_tags.get(key) != value
        }


def to_lightsail(tags: dict[str, str]) -> list[dict]:
    """Build the tag list understood by the Lightsail API."""
    return [{"key": k, "value": v} for k, v in tags.items()]


def from_lightsail(tags: Optional[list[dict]]) -> dict[str, str]:
    """Convert a Lightsail tag list into a plain dict."""
    return {t["key"]: t.get("value", "") for t in tags or []}


def diff_tags(old: dict[str, str], new: dict[str, str]) -> tuple[dict[str, str], list[str]]:
    """
    Compute the tag changes needed to move from *old* to *new*.

    Returns ``(to_set, to_remove)``: tags added or whose value changed, and
    keys no longer present.
    """
    to_set = {k: v for k, v in new.items() if old.get(k) != v}
    to_remove = sorted(k for k in old if k not in new)
    return to_set, to_remove
