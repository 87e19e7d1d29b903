"""
Dictionary Controller

Exposes the local dictionary over HTTP, in the shape RemoteDictionaryOracle consumes.
"""

from flask import Blueprint, request, jsonify
from ..services.dictionary_service import get_dictionary_service
from ..utils.decorators import require_json_fields
from ..utils.game_logger import game_logger

dictionary_bp = Blueprint('dictionary', __name__)


def _service_unavailable():
    return jsonify({
        'success': False,
        'error': 'Dictionary service unavailable'
    }), 500


@dictionary_bp.route('/validate', methods=['POST'])
@require_json_fields('word')
def validate_word(data=None):
    """Check a single word against the dictionary."""
    dictionary_service = get_dictionary_service()
    if not dictionary_service:
        return _service_unavailable()

    word = data['word']
    valid = dictionary_service.is_valid_word(word)
    response_data = {'word': word, 'valid': valid}
    if not valid:
        response_data['suggestions'] = dictionary_service.get_suggestions(word)
    return jsonify(response_data)


@dictionary_bp.route('/validate/batch', methods=['POST'])
@require_json_fields('words')
def validate_words(data=None):
    """Check several words at once."""
    dictionary_service = get_dictionary_service()
    if not dictionary_service:
        return _service_unavailable()

    words = data['words']
    if not isinstance(words, list):
        return jsonify({'success': False, 'error': 'words must be a list'}), 400

    results = dictionary_service.validate_words(words)
    return jsonify({
        'results': results,
        'allValid': all(result['valid'] for result in results),
    })


@dictionary_bp.route('/words', methods=['GET'])
def all_words():
    """Every dictionary word, sorted. Debug endpoint."""
    dictionary_service = get_dictionary_service()
    if not dictionary_service:
        return _service_unavailable()

    words = dictionary_service.get_all_words()
    return jsonify({'words': words, 'total': len(words)})


@dictionary_bp.route('/words/random', methods=['GET'])
def random_word():
    """Random morphable word, optionally with a minimum neighbor count."""
    dictionary_service = get_dictionary_service()
    if not dictionary_service:
        return _service_unavailable()

    min_degree = request.args.get('minDegree', default=0, type=int)
    word = dictionary_service.random_word(min_degree)
    if word is None:
        return jsonify({'success': False, 'error': 'Dictionary is empty'}), 404

    analysis = dictionary_service.get_word_analysis(word, neighbor_limit=0)
    return jsonify({
        'word': word,
        'degree': analysis['neighborCount'],
        'branchLevel': analysis['branchLevel'],
    })


@dictionary_bp.route('/analysis/word', methods=['POST'])
@require_json_fields('word')
def word_analysis(data=None):
    """Neighbors, degree and branch level of a word."""
    dictionary_service = get_dictionary_service()
    if not dictionary_service:
        return _service_unavailable()

    try:
        neighbor_limit = int(data.get('neighborLimit', 20))
    except (TypeError, ValueError):
        return jsonify({'success': False, 'error': 'neighborLimit must be an integer'}), 400

    return jsonify(dictionary_service.get_word_analysis(data['word'], neighbor_limit))


@dictionary_bp.route('/stats', methods=['GET'])
def stats():
    dictionary_service = get_dictionary_service()
    if not dictionary_service:
        return _service_unavailable()

    game_logger.log_user_action(request, 'dictionary_stats')
    return jsonify(dictionary_service.get_stats())
