"""
WebSocket Event Handlers

Handles all WebSocket events for real-time duels and provides the room
broadcaster the duel service publishes snapshots through.
"""

import threading

from flask import request
from flask_socketio import emit, join_room, leave_room
from ..services.duel_service import get_duel_service
from ..utils.decorators import socket_payload_required
from ..utils.game_logger import game_logger

# Simple tracking of connected users
connected_users = {}  # socket_id -> user_id
_connected_lock = threading.Lock()


def duel_room(match_id):
    return f"duel_{match_id}"


def make_room_broadcaster(socketio):
    """Build the callback the duel service uses to fan snapshots out to a duel room."""
    def broadcast(match_id, event, snapshot):
        socketio.emit('duel_state_update', {
            'success': True,
            'match_id': match_id,
            'event': event,
            'state': snapshot
        }, room=duel_room(match_id))

        if event == 'duel_finished':
            socketio.emit('duel_ended', {
                'match_id': match_id,
                'winner_id': snapshot.get('winnerId'),
                'target_word': snapshot.get('targetWord'),
                'end_reason': snapshot.get('endReason'),
                'game_status': snapshot.get('status')
            }, room=duel_room(match_id))

    return broadcast


def register_websocket_handlers(socketio):
    """Register all WebSocket event handlers."""

    @socketio.on('connect')
    def handle_connect():
        """Handle WebSocket connection."""
        pass

    @socketio.on('disconnect')
    def handle_disconnect(*args):
        """Forfeit the active duels of a user whose socket dropped."""
        with _connected_lock:
            user_id = connected_users.pop(request.sid, None)
            # Another socket of the same user keeps the duel alive
            if user_id is None or user_id in connected_users.values():
                return

        duel_service = get_duel_service()
        if not duel_service:
            return

        result = duel_service.handle_player_disconnect(user_id)
        if result['games_affected'] > 0:
            game_logger.logger.info(
                f"WebSocket disconnect: user '{user_id}' forfeited {result['games_affected']} duel(s)"
            )

    @socketio.on('join_duel')
    @socket_payload_required('match_id', 'user_id')
    def handle_join_duel(data):
        """Join a duel room for real-time updates."""
        duel_service = get_duel_service()
        if not duel_service:
            emit('error', {'error': 'Duel service unavailable'})
            return

        match_id = data['match_id']
        user_id = str(data['user_id'])

        state = duel_service.get_match_state(match_id)
        if state is None or user_id not in state.players:
            emit('error', {'error': 'Duel not found or access denied'})
            return

        join_room(duel_room(match_id))
        with _connected_lock:
            connected_users[request.sid] = user_id

        game_logger.log_user_action(None, 'join_duel', match_id, user_id=user_id)

        emit('duel_state_update', {
            'success': True,
            'match_id': match_id,
            'event': 'joined',
            'state': state.to_dict()
        })

        emit('player_joined', {
            'user_id': user_id,
            'username': state.players[user_id].username
        }, room=duel_room(match_id), include_self=False)

    @socketio.on('leave_duel')
    @socket_payload_required('match_id')
    def handle_leave_duel(data):
        """Leave a duel room."""
        match_id = data['match_id']
        leave_room(duel_room(match_id))
        with _connected_lock:
            user_id = connected_users.pop(request.sid, None)
        game_logger.log_user_action(None, 'leave_duel', match_id, user_id=user_id)

    @socketio.on('submit_move')
    @socket_payload_required('match_id', 'user_id', 'word')
    def handle_submit_move(data):
        """Submit a transformation; the room receives the new snapshot via the broadcaster."""
        duel_service = get_duel_service()
        if not duel_service:
            emit('move_result', {'success': False, 'error': 'Duel service unavailable'})
            return

        match_id = data['match_id']
        user_id = str(data['user_id'])
        word = data['word']

        game_logger.log_user_action(None, 'submit_move', match_id, user_id=user_id, word=word)

        result = duel_service.submit_move(match_id, user_id, word)
        response_data = result.to_dict()
        game_logger.log_server_response(None, 'submit_move', result.success, response_data, match_id)
        emit('move_result', response_data)

    @socketio.on('request_hint')
    @socket_payload_required('match_id', 'user_id')
    def handle_request_hint(data):
        """Request hints; only the requesting player receives the suggestions."""
        duel_service = get_duel_service()
        if not duel_service:
            emit('hint_result', {'success': False, 'error': 'Duel service unavailable'})
            return

        match_id = data['match_id']
        user_id = str(data['user_id'])

        game_logger.log_user_action(None, 'request_hint', match_id, user_id=user_id)

        result = duel_service.request_hint(match_id, user_id, data.get('limit'))
        emit('hint_result', result.to_dict())
