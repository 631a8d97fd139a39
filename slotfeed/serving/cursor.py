"""
Opaque pagination cursor: URL-safe base64 of {"v": 1, "served": [item ids]}.
"""

import base64
import binascii
import json
from typing import List, Optional

from slotfeed.data.validators import InvalidFeedRequest
from slotfeed.config.constants import CURSOR_VERSION


def encode_cursor(served_ids: List[str], max_ids: Optional[int] = None) -> str:
    """Keeps the most recent `max_ids` ids."""
    if max_ids is not None:
        served_ids = served_ids[-max_ids:] if max_ids > 0 else []
    payload = json.dumps({"v": CURSOR_VERSION, "served": list(served_ids)}, separators=(",", ":"))
    return base64.urlsafe_b64encode(payload.encode("utf-8")).decode("ascii").rstrip("=")


def decode_cursor(cursor: Optional[str]) -> List[str]:
    """Served ids from a cursor; raises InvalidFeedRequest when malformed."""
    if not cursor:
        return []
    
    padded = cursor + "=" * (-len(cursor) % 4)
    try:
        raw = base64.urlsafe_b64decode(padded.encode("ascii"))
        payload = json.loads(raw.decode("utf-8"))
    except (binascii.Error, UnicodeError, ValueError) as e:
        raise InvalidFeedRequest(f"Malformed cursor: {e}") from e
    
    if not isinstance(payload, dict) or payload.get("v") != CURSOR_VERSION:
        raise InvalidFeedRequest("Malformed cursor: unsupported version")
    
    served = payload.get("served")
    if not isinstance(served, list) or not all(isinstance(i, str) for i in served):
        raise InvalidFeedRequest("Malformed cursor: served ids must be strings")
    
    return served
