"""
Services Package

Contains all business logic and service classes.
"""

from .word_graph import WordGraphIndex
from .insight_service import WordInsightEngine, classify_branching, hamming_distance
from .hint_service import HintSelector
from .match_store import InMemoryMatchStore, MatchStore
from .dictionary_service import (
    DictionaryService,
    DictionaryUnavailableError,
    RemoteDictionaryOracle,
    get_dictionary_service,
)
from .duel_service import DuelService, evaluate_color_feedback, get_duel_service

__all__ = [
    'WordGraphIndex',
    'WordInsightEngine', 'classify_branching', 'hamming_distance',
    'HintSelector',
    'InMemoryMatchStore', 'MatchStore',
    'DictionaryService', 'DictionaryUnavailableError', 'RemoteDictionaryOracle', 'get_dictionary_service',
    'DuelService', 'evaluate_color_feedback', 'get_duel_service',
]
