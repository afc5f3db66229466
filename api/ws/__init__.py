"""WebSocket relay between embedded players and the Watch-Guard."""

from api.ws.player_relay import WebSocketPlayerChannel, learner_id_from_websocket, parse_envelope

__all__ = ["WebSocketPlayerChannel", "learner_id_from_websocket", "parse_envelope"]
