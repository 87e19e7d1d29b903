"""
Helper Functions

Contains utility functions used throughout the application.
"""

from typing import Dict, Optional


def normalize_word(word) -> str:
    """Uppercase, trimmed form of a submitted word; empty string for non-strings."""
    if not isinstance(word, str):
        return ''
    return word.strip().upper()


def get_user_identity(request_obj=None, user_id: Optional[str] = None) -> Dict[str, Optional[str]]:
    """Extract user identity information from a request (or a system caller)."""
    if request_obj is None:
        return {'user_ip': 'system', 'user_id': user_id}

    user_ip = getattr(request_obj, 'remote_addr', None) or 'unknown'
    return {
        'user_ip': user_ip,
        'user_id': user_id,
    }
