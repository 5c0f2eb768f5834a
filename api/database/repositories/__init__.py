"""Database repositories for data access layer"""

from .base import BaseRepository
from .transaction import TransactionRepository
from .validation import ValidationCursorRepository

__all__ = [
    "BaseRepository",
    "TransactionRepository",
    "ValidationCursorRepository",
]
