"""
Data Models Package

Contains all data models and schemas used throughout the application.
"""

from .duel import (
    BranchLevel,
    ColorFeedback,
    DuelError,
    DuelFinished,
    DuelStarted,
    DuelState,
    DuelStatus,
    ErrorKind,
    HintBudget,
    HintCategory,
    HintGranted,
    HintSuggestion,
    MoveAccepted,
    OperationFailed,
    PlayerProgress,
    TransformationStep,
    WordInsight,
)

__all__ = [
    'BranchLevel', 'ColorFeedback', 'DuelError', 'DuelFinished', 'DuelStarted', 'DuelState', 'DuelStatus',
    'ErrorKind', 'HintBudget', 'HintCategory', 'HintGranted', 'HintSuggestion', 'MoveAccepted',
    'OperationFailed', 'PlayerProgress', 'TransformationStep', 'WordInsight',
]
