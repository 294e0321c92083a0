from flask import current_app, request
from flask_socketio import emit

from huntboard import db, socketio
from huntboard.errors import GameError
from huntboard.models import Event
from huntboard.services.game import lifecycle
from huntboard.services.game.broadcast import NAMESPACE, UPDATE_EVENT, hub
from huntboard.services.game.scoreboard import event_stats


def _get_sid() -> str:
    return request.sid  # type: ignore[attr-defined]


def _event_id_from(data):
    raw = (data or {}).get('event_id') if isinstance(data, dict) else data
    try:
        return int(raw)
    except (TypeError, ValueError):
        return None


def handle_connect():
    emit('connected', {'message': 'Connected to /ws'})


def handle_disconnect(reason=None):
    sid = _get_sid()
    left = hub.remove_connection(sid)
    if left:
        current_app.logger.info(f"[disconnect] sid={sid} left events={left}")


def handle_join_event(data):
    event_id = _event_id_from(data)
    if event_id is None:
        emit('error', {'message': 'event_id is required'})
        return
    if db.session.get(Event, event_id) is None:
        emit('error', {'message': 'Event not found'})
        return
    count = hub.subscribe(event_id, _get_sid())
    emit('joined', {'event_id': event_id, 'subscribers': count})
    # Fresh viewers get the current standings without waiting for a push
    hub.send_scoreboard(event_id, _get_sid())


def handle_leave_event(data):
    event_id = _event_id_from(data)
    if event_id is None:
        emit('error', {'message': 'event_id is required'})
        return
    hub.unsubscribe(event_id, _get_sid())
    emit('left', {'event_id': event_id})


def handle_request_live_data(data):
    if not isinstance(data, dict):
        emit('live_data_error', {'error': 'Invalid request'})
        return
    kind = data.get('type')
    params = data.get('params') or {}
    if not isinstance(params, dict):
        emit('live_data_error', {'error': 'Invalid parameters'})
        return
    try:
        if kind == 'scoreboard':
            event_id = _event_id_from(params)
            if event_id is None:
                emit('live_data_error', {'error': 'event_id is required'})
                return
            hub.send_scoreboard(event_id, _get_sid())
            return
        if kind == 'team_progress':
            team_id = params.get('team_id')
            if team_id is None:
                emit('live_data_error', {'error': 'team_id is required'})
                return
            rows = lifecycle.team_progress(int(team_id))
            emit(UPDATE_EVENT, {'type': 'team_progress', 'team_id': int(team_id), 'data': rows})
            return
        if kind == 'event_stats':
            event_id = _event_id_from(params)
            if event_id is None:
                emit('live_data_error', {'error': 'event_id is required'})
                return
            emit(UPDATE_EVENT, {'type': 'event_stats', 'event_id': event_id, 'data': event_stats(event_id)})
            return
        emit('live_data_error', {'error': f'Unknown live data type: {kind}'})
    except GameError as exc:
        emit('live_data_error', exc.to_dict())
    except (TypeError, ValueError):
        emit('live_data_error', {'error': 'Invalid parameters'})


def handle_ping(data):
    emit('pong', data or {})


def register_socketio_handlers() -> None:
    """Register Socket.IO event handlers on the '/ws' namespace."""
    socketio.on_event('connect', handle_connect, namespace=NAMESPACE)
    socketio.on_event('disconnect', handle_disconnect, namespace=NAMESPACE)
    socketio.on_event('join_event', handle_join_event, namespace=NAMESPACE)
    socketio.on_event('leave_event', handle_leave_event, namespace=NAMESPACE)
    socketio.on_event('request_live_data', handle_request_live_data, namespace=NAMESPACE)
    socketio.on_event('ping', handle_ping, namespace=NAMESPACE)
