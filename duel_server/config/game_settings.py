"""
Game Configuration Constants Module

This module defines all word morph duel rules and tuning constants.
All game parameters are centralized here and may be overridden through
environment variables of the same name (e.g. MAX_TURNS=40).
"""

import json
import os
from typing import List, Final


def _env_int(name: str, default: int) -> int:
    """Read an integer override from the environment."""
    raw = os.getenv(name)
    if raw is None or raw.strip() == '':
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"Environment variable {name} must be an integer, got {raw!r}")


WORD_LENGTH: Final[int] = _env_int('WORD_LENGTH', 5)
"""
Length of every word in a duel.
Type: Final[int] - Immutable to prevent accidental modification
"""

MAX_TURNS: Final[int] = _env_int('MAX_TURNS', 50)
"""Turn ceiling after which the duel is decided by green-letter count."""

MIN_START_DEGREE: Final[int] = _env_int('MIN_START_DEGREE', 6)
"""Minimum neighbor count for start and target words, to avoid early dead-ends."""

# Branching classification thresholds
HIGH_BRANCH_THRESHOLD: Final[int] = _env_int('HIGH_BRANCH_THRESHOLD', 12)
LOW_BRANCH_THRESHOLD: Final[int] = _env_int('LOW_BRANCH_THRESHOLD', 3)

# Hint economy
MAX_HINTS_PER_PLAYER: Final[int] = _env_int('MAX_HINTS_PER_PLAYER', 5)
HINTS_PER_REQUEST: Final[int] = _env_int('HINTS_PER_REQUEST', 3)
MAX_HINTS_PER_REQUEST: Final[int] = _env_int('MAX_HINTS_PER_REQUEST', 10)

NEIGHBOR_SAMPLE: Final[int] = _env_int('NEIGHBOR_SAMPLE', 8)
"""Size of the neighbor sample attached to an insight (UI display only)."""

MAX_WORD_PICK_ATTEMPTS: Final[int] = _env_int('MAX_WORD_PICK_ATTEMPTS', 20)

# Scoring
POINTS_BASE: Final[int] = _env_int('POINTS_BASE', 100)
POINTS_PER_STEP_PENALTY: Final[int] = _env_int('POINTS_PER_STEP_PENALTY', 5)
FIRST_TO_FINISH_BONUS: Final[int] = _env_int('FIRST_TO_FINISH_BONUS', 50)


# Load word list from JSON file
def _load_word_list() -> List[str]:
    """
    Load the morph vocabulary from words.json.

    Returns:
        List[str]: List of uppercase words of WORD_LENGTH letters

    Raises:
        FileNotFoundError: If words.json file is not found
        ValueError: If JSON is malformed, the list is empty or contains invalid words
    """
    config_dir = os.path.dirname(os.path.abspath(__file__))
    json_file_path = os.getenv('WORD_LIST_PATH') or os.path.join(config_dir, 'words.json')

    try:
        with open(json_file_path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except FileNotFoundError:
        raise FileNotFoundError(f"Word list file not found: {json_file_path}")
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in {json_file_path}: {e}")

    # Accept both a bare array and {"words": [...]}
    word_list = data.get('words') if isinstance(data, dict) else data

    if not isinstance(word_list, list):
        raise ValueError("JSON file must contain an array of words")

    if not word_list:
        raise ValueError("Word list cannot be empty")

    uppercase_words = [str(word).strip().upper() for word in word_list]

    for word in uppercase_words:
        if len(word) != WORD_LENGTH:
            raise ValueError(f"Word '{word}' is not {WORD_LENGTH} characters long")
        if not word.isalpha():
            raise ValueError(f"Word '{word}' contains non-alphabetic characters")

    return uppercase_words


# Curated Word Database loaded from JSON file
WORD_LIST: Final[List[str]] = _load_word_list()


def validate_word_list_integrity(words: List[str] = WORD_LIST) -> bool:
    """
    Validates the integrity and consistency of the word database.

    Checks length, alphabetic characters, uppercase formatting and uniqueness.

    Returns:
        bool: True if word list passes all validation checks

    Raises:
        ValueError: If any validation check fails with detailed error message
    """
    if not words:
        raise ValueError("Word list cannot be empty")

    for index, word in enumerate(words):
        if len(word) != WORD_LENGTH:
            raise ValueError(f"Word at index {index} '{word}' is not {WORD_LENGTH} characters long")

        if not word.isalpha():
            raise ValueError(f"Word at index {index} '{word}' contains non-alphabetic characters")

        if not word.isupper():
            raise ValueError(f"Word at index {index} '{word}' is not in uppercase format")

    if len(words) != len(set(words)):
        duplicates = sorted({word for word in words if words.count(word) > 1})
        raise ValueError(f"Duplicate words found in word list: {duplicates}")

    return True


def get_word_statistics(words: List[str] = WORD_LIST) -> dict:
    """
    Analyzes the word list and returns statistical information for game balancing.

    Returns:
        dict: total_words, avg_vowel_count, letter_frequency, most_common_letters
    """
    if not words:
        return {"error": "Word list is empty"}

    vowels = set('AEIOU')
    total_vowels = sum(len([char for char in word if char in vowels]) for word in words)

    letter_frequency = {}
    for word in words:
        for char in word:
            letter_frequency[char] = letter_frequency.get(char, 0) + 1

    return {
        "total_words": len(words),
        "avg_vowel_count": round(total_vowels / len(words), 2),
        "letter_frequency": letter_frequency,
        "most_common_letters": sorted(letter_frequency.items(), key=lambda x: x[1], reverse=True)[:5]
    }


if __name__ == "__main__":

    try:
        validate_word_list_integrity()
        print(" Word list validation passed")

        stats = get_word_statistics()
        print(f" Game statistics: {stats}")
    except ValueError as config_error:
        print(f" Configuration validation failed: {config_error}")
        exit(1)
