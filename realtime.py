# backend/realtime.py
from flask import current_app
from flask_socketio import SocketIO, emit, join_room, leave_room

# one shared instance for the whole app
socketio = SocketIO(cors_allowed_origins="*", ping_interval=25, ping_timeout=20)

NS = "/rt"

@socketio.on("connect", namespace=NS)
def on_connect(auth):
    emit("connected", {"ok": True})

@socketio.on("disconnect", namespace=NS)
def on_disconnect():
    pass

@socketio.on("subscribe", namespace=NS)
def on_subscribe(data):
    route_id = (data or {}).get("route_id")
    if route_id:
        join_room(f"route:{route_id}")

@socketio.on("unsubscribe", namespace=NS)
def on_unsubscribe(data):
    route_id = (data or {}).get("route_id")
    if route_id:
        leave_room(f"route:{route_id}")


def _enabled() -> bool:
    return bool(current_app.config.get("REALTIME_ENABLED", True))


def emit_route_stations(route_id: int, stations: list) -> None:
    """Push a route's new stop order to everyone watching that route."""
    if not _enabled():
        return
    try:
        socketio.emit(
            "route:stations",
            {"route_id": int(route_id), "stations": stations},
            room=f"route:{route_id}",
            namespace=NS,
        )
    except Exception:
        current_app.logger.exception("[rt] route:stations emit failed route=%s", route_id)


def emit_schedule_changed(payload: dict, *, route_id: int | None):
    """
    Broadcast a schedule change to:
      - everyone on /rt
      - and the route's room if route_id is provided
    """
    if not _enabled():
        return
    try:
        socketio.emit("schedule:changed", payload, namespace=NS)  # global
        if route_id:
            socketio.emit("schedule:changed", payload, room=f"route:{route_id}", namespace=NS)
    except Exception:
        current_app.logger.exception("[rt] schedule:changed emit failed id=%s", payload.get("id"))
