"""
Relay between a browser-side player bridge and the Watch-Guard.

The browser cannot hand the server an iframe, so the page relays: every postMessage the player
sends is forwarded here as {"origin": event.origin, "data": event.data}, and every text frame the
server sends back is posted to the player verbatim (poll and seekTo commands).
"""

from __future__ import annotations

import json
from typing import Any, Optional, Tuple

from fastapi import WebSocket

from progression.watch_guard import PlayerChannel


class WebSocketPlayerChannel(PlayerChannel):
    """Outbound player commands go out as raw text frames."""

    def __init__(self, websocket: WebSocket):
        self.websocket = websocket

    async def send(self, message: str) -> None:
        await self.websocket.send_text(message)


def parse_envelope(text: str) -> Optional[Tuple[str, Any]]:
    """Return (origin, data) from a relayed frame, or None when the frame is not an envelope."""
    try:
        payload = json.loads(text)
    except ValueError:
        return None
    if not isinstance(payload, dict):
        return None
    origin = payload.get("origin")
    if not isinstance(origin, str) or "data" not in payload:
        return None
    return origin, payload["data"]


def learner_id_from_websocket(websocket: WebSocket) -> Optional[str]:
    """Learner id from the x-learner-id header or ?learner_id= (browsers cannot set WS headers)."""
    rid = websocket.headers.get("x-learner-id") or websocket.query_params.get("learner_id")
    return rid.strip() if rid and rid.strip() else None
