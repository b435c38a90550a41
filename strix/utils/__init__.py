"""
Strix Utils Package

- naming: config token and environment key derivation
- urls: URL path manipulation utilities
"""

from .naming import config_token_for, is_config_token, to_upper_snake
from .urls import join_paths

__all__ = [
    "config_token_for",
    "is_config_token",
    "to_upper_snake",
    "join_paths",
]
