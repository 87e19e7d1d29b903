"""
Duel Controller

Handles all word morph duel HTTP endpoints.
"""

from flask import Blueprint, request, jsonify
from ..models.duel import ErrorKind, OperationFailed
from ..services.duel_service import get_duel_service
from ..services.dictionary_service import get_dictionary_service
from ..utils.decorators import require_json_fields
from ..utils.game_logger import game_logger

duel_bp = Blueprint('duel', __name__)

ERROR_STATUS = {
    ErrorKind.MATCH_NOT_FOUND: 404,
    ErrorKind.PLAYER_NOT_FOUND: 404,
    ErrorKind.MATCH_ALREADY_EXISTS: 409,
    ErrorKind.MATCH_ALREADY_FINISHED: 409,
    ErrorKind.NOT_YOUR_TURN: 409,
    ErrorKind.PLAYER_ALREADY_COMPLETED: 409,
    ErrorKind.INVALID_PLAYERS: 400,
    ErrorKind.INVALID_WORD_LENGTH: 400,
    ErrorKind.INVALID_TRANSFORMATION: 400,
    ErrorKind.WORD_NOT_IN_DICTIONARY: 400,
    ErrorKind.VALIDATION_UNAVAILABLE: 503,
    ErrorKind.NO_WORD_PAIR: 503,
}


def _service_unavailable():
    return jsonify({
        'success': False,
        'error': 'Duel service unavailable'
    }), 500


def _respond(action, result, match_id, success_status=200, **log_details):
    """Log and serialize a service result with the matching HTTP status."""
    response_data = result.to_dict()
    if isinstance(result, OperationFailed):
        game_logger.log_server_response(
            request, action, False, response_data, match_id,
            error_code=result.kind.value, **log_details
        )
        return jsonify(response_data), ERROR_STATUS.get(result.kind, 400)

    game_logger.log_server_response(request, action, True, response_data, match_id, **log_details)
    return jsonify(response_data), success_status


def _error_response(action, error, match_id=None):
    game_logger.log_error(request, error, action, match_id)
    error_response = {
        'success': False,
        'error': str(error)
    }
    game_logger.log_server_response(request, action, False, error_response, match_id)
    return jsonify(error_response), 500


@duel_bp.route('/duel/<match_id>/start', methods=['POST'])
@require_json_fields('playerIds', 'usernames')
def start_duel(match_id, data=None):
    """Start a duel between exactly two players."""
    try:
        duel_service = get_duel_service()
        if not duel_service:
            return _service_unavailable()

        player_ids = data['playerIds']
        usernames = data['usernames']
        if not isinstance(player_ids, list) or len(player_ids) != 2:
            return jsonify({'success': False, 'error': 'Exactly 2 player IDs required'}), 400
        if not isinstance(usernames, list) or len(usernames) != 2:
            return jsonify({'success': False, 'error': 'Exactly 2 usernames required'}), 400

        game_logger.log_user_action(request, 'start_duel', match_id, players=player_ids)

        result = duel_service.start_duel(
            match_id, str(player_ids[0]), str(usernames[0]), str(player_ids[1]), str(usernames[1])
        )
        return _respond('start_duel', result, match_id, success_status=201)

    except Exception as e:
        return _error_response('start_duel', e, match_id)


@duel_bp.route('/duel/<match_id>/move', methods=['POST'])
@require_json_fields('userId', 'newWord')
def submit_move(match_id, data=None):
    """Submit a one-letter transformation for validation and scoring."""
    try:
        duel_service = get_duel_service()
        if not duel_service:
            return _service_unavailable()

        user_id = str(data['userId'])
        new_word = data['newWord']

        game_logger.log_user_action(request, 'submit_move', match_id, user_id=user_id, word=new_word)

        result = duel_service.submit_move(match_id, user_id, new_word)
        return _respond('submit_move', result, match_id, word=new_word)

    except Exception as e:
        return _error_response('submit_move', e, match_id)


@duel_bp.route('/duel/<match_id>/hints', methods=['POST'])
@require_json_fields('userId')
def request_hints(match_id, data=None):
    """Request ranked next-word suggestions from the player's hint budget."""
    try:
        duel_service = get_duel_service()
        if not duel_service:
            return _service_unavailable()

        user_id = str(data['userId'])
        limit = data.get('limit')

        game_logger.log_user_action(request, 'request_hint', match_id, user_id=user_id, limit=limit)

        result = duel_service.request_hint(match_id, user_id, limit)
        return _respond('request_hint', result, match_id)

    except Exception as e:
        return _error_response('request_hint', e, match_id)


@duel_bp.route('/duel/<match_id>/forfeit', methods=['POST'])
@require_json_fields('userId')
def forfeit(match_id, data=None):
    """Concede the duel to the opponent."""
    try:
        duel_service = get_duel_service()
        if not duel_service:
            return _service_unavailable()

        user_id = str(data['userId'])
        game_logger.log_user_action(request, 'forfeit', match_id, user_id=user_id)

        result = duel_service.forfeit(match_id, user_id)
        return _respond('forfeit', result, match_id)

    except Exception as e:
        return _error_response('forfeit', e, match_id)


@duel_bp.route('/duel/<match_id>/state', methods=['GET'])
def get_state(match_id):
    """Get the current duel snapshot."""
    try:
        duel_service = get_duel_service()
        if not duel_service:
            return _service_unavailable()

        game_logger.log_user_action(request, 'get_state', match_id)

        state = duel_service.get_match_state(match_id)
        if state is None:
            error_response = {
                'success': False,
                'error': {'code': ErrorKind.MATCH_NOT_FOUND.value, 'message': 'Game not found'}
            }
            game_logger.log_server_response(request, 'get_state', False, error_response, match_id)
            return jsonify(error_response), 404

        response_data = {
            'success': True,
            'state': state.to_dict()
        }
        game_logger.log_server_response(request, 'get_state', True, response_data, match_id)
        return jsonify(response_data)

    except Exception as e:
        return _error_response('get_state', e, match_id)


@duel_bp.route('/duel/<match_id>', methods=['DELETE'])
def delete_duel(match_id):
    """Discard a duel from memory."""
    try:
        duel_service = get_duel_service()
        if not duel_service:
            return _service_unavailable()

        game_logger.log_user_action(request, 'delete_duel', match_id)

        success = duel_service.delete_match(match_id)
        response_data = {'success': success}
        game_logger.log_server_response(request, 'delete_duel', success, response_data, match_id)

        if success:
            game_logger.log_game_event(match_id, 'duel_deleted')

        return jsonify(response_data), 200 if success else 404

    except Exception as e:
        return _error_response('delete_duel', e, match_id)


@duel_bp.route('/health', methods=['GET'])
def health_check():
    """Health check endpoint."""
    try:
        duel_service = get_duel_service()
        dictionary_service = get_dictionary_service()

        response_data = {
            'status': 'healthy',
            'duels': duel_service.get_stats() if duel_service else None,
            'dictionary': dictionary_service.get_stats() if dictionary_service else None,
            'log_stats': game_logger.get_log_stats(),
        }
        game_logger.log_server_response(request, 'health_check', True, response_data)
        return jsonify(response_data)

    except Exception as e:
        game_logger.log_error(request, e, 'health_check')
        return jsonify({'status': 'error', 'error': str(e)}), 500
