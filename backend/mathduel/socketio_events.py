from flask_socketio import join_room, leave_room, emit
from mathduel import socketio


def handle_connect():
    emit('connected', {'message': 'Connected to /ws'})


def handle_join_game(data):
    """Subscribe this socket to state updates of one game document."""
    game_id = (data or {}).get('game_id')
    if not game_id:
        emit('error', {'message': 'game_id is required'})
        return
    room = f"game:{game_id}"
    join_room(room)
    emit('joined', {'room': room})


def handle_leave_game(data):
    game_id = (data or {}).get('game_id')
    if not game_id:
        emit('error', {'message': 'game_id is required'})
        return
    room = f"game:{game_id}"
    leave_room(room)
    emit('left', {'room': room})


def handle_ping(data):
    emit('pong', data or {})


def register_socketio_handlers() -> None:
    """Register Socket.IO event handlers on namespace '/ws'."""
    socketio.on_event('connect', handle_connect, namespace='/ws')
    socketio.on_event('join_game', handle_join_game, namespace='/ws')
    socketio.on_event('leave_game', handle_leave_game, namespace='/ws')
    socketio.on_event('ping', handle_ping, namespace='/ws')
