"""Shared fixtures for the duel server tests."""

import os
import tempfile

# Keep test logs out of the working tree; must run before duel_server is imported
os.environ.setdefault('LOG_DIR', tempfile.mkdtemp(prefix='duel-logs-'))

import pytest

from duel_server.services.dictionary_service import DictionaryUnavailableError
from duel_server.services.duel_service import DuelService
from duel_server.services.word_graph import WordGraphIndex

# SLATE neighbors: PLATE, SLAVE, STATE, SKATE
DUEL_VOCAB = [
    "SLATE", "PLATE", "PLANE", "SLAVE", "SHAVE",
    "STATE", "SKATE", "CRATE", "CRANE", "GRATE",
]


class FakeOracle:
    """Scripted dictionary oracle."""

    def __init__(self, words, picks=None):
        self.words = {word.upper() for word in words}
        self.picks = list(picks or [])
        self.fail = False
        self.validated = []

    def is_valid_word(self, word):
        self.validated.append(word)
        if self.fail:
            raise DictionaryUnavailableError("dictionary timed out")
        return isinstance(word, str) and word.upper() in self.words

    def random_word(self, min_degree=0):
        if self.fail:
            raise DictionaryUnavailableError("dictionary timed out")
        return self.picks.pop(0) if self.picks else None


@pytest.fixture
def graph():
    return WordGraphIndex(DUEL_VOCAB)


@pytest.fixture
def oracle():
    return FakeOracle(DUEL_VOCAB, picks=["SLATE", "PLANE"])


@pytest.fixture
def service(oracle, graph):
    return DuelService(oracle, graph, min_start_degree=0)


@pytest.fixture
def started(service):
    """A duel SLATE -> PLANE between u1 (first to move) and u2."""
    result = service.start_duel("m1", "u1", "Alice", "u2", "Bob")
    assert result.success
    return service
