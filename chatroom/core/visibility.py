from __future__ import annotations

import re
from typing import Any, Dict, Iterable, List, Optional

from .schemas import BROADCAST


_LEADING_INT_RE = re.compile(r"^\s*[+-]?\d+")


def is_visible(message: Dict[str, Any], viewer: Optional[str]) -> bool:
    """Broadcast, addressed to or sent by the viewer, or publicly typed."""
    to = message.get("to")
    addressed = to == BROADCAST or to == viewer or message.get("from") == viewer
    return addressed or message.get("type") == "message"


def parse_limit(raw: Any) -> Optional[int]:
    """Parse a query-string limit; anything but a positive integer means no limit.

    A leading integer prefix is accepted, so "3abc" is 3.
    """
    if raw is None:
        return None
    if isinstance(raw, int) and not isinstance(raw, bool):
        value = raw
    else:
        match = _LEADING_INT_RE.match(str(raw))
        if not match:
            return None
        value = int(match.group(0))
    return value if value > 0 else None


def visible_messages(
    messages: Iterable[Dict[str, Any]],
    viewer: Optional[str],
    limit: Optional[int] = None,
) -> List[Dict[str, Any]]:
    visible = [m for m in messages if is_visible(m, viewer)]
    if isinstance(limit, int) and not isinstance(limit, bool) and limit > 0:
        return visible[-limit:]
    return visible
