"""
Player websocket.

WebSocket /learn/ws/courses/{course_id}/days/{day}/player relays an embedded player's messages
into the learner's Watch-Guard. The server pushes poll and seekTo commands as raw text and a
{"event": "videoCompleted", "day": n} frame once the day is watched.
"""

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect, status

from api.services.learner_session_service import LearnerSessionService, get_session_service, get_store
from api.utils.logger import configure_logging, set_request_context
from api.ws import WebSocketPlayerChannel, learner_id_from_websocket, parse_envelope
from infra.store.sql_store import SqlProgressStore
from progression.errors import EngineError
from progression.watch_guard import LockedPlaceholder, SampleOutcome

player_routes = APIRouter()
logger = configure_logging()


@player_routes.websocket("/ws/courses/{course_id}/days/{day}/player")
async def player_websocket(
    websocket: WebSocket,
    course_id: str,
    day: int,
    store: SqlProgressStore = Depends(get_store),
    sessions: LearnerSessionService = Depends(get_session_service),
):
    learner_id = learner_id_from_websocket(websocket)
    if not learner_id:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return
    set_request_context(websocket.headers.get("x-request-id"), learner_id)
    await websocket.accept()
    try:
        session = await sessions.get_or_open(store, store, learner_id, course_id)
        placeholder_or_monitor = session.attach_player(day, WebSocketPlayerChannel(websocket))
    except EngineError as e:
        logger.warning("player socket refused learner=%s course=%s day=%s error=%s", learner_id, course_id, day, e)
        await websocket.send_json({"event": "error", **e.to_dict()})
        await websocket.close()
        return

    if isinstance(placeholder_or_monitor, LockedPlaceholder):
        await websocket.send_json({"event": "locked", "day": day, "message": placeholder_or_monitor.message})
        await websocket.close()
        return

    monitor = placeholder_or_monitor
    try:
        while True:
            text = await websocket.receive_text()
            envelope = parse_envelope(text)
            if envelope is None:
                continue
            origin, data = envelope
            outcome = await session.guard.receive(origin, data)
            if outcome == SampleOutcome.COMPLETED:
                await websocket.send_json({"event": "videoCompleted", "day": day})
    except WebSocketDisconnect:
        pass
    finally:
        # Only tear down our own monitor; a newer socket may already own the guard.
        if session.guard.active is monitor:
            session.guard.deactivate()
        else:
            monitor.stop()
