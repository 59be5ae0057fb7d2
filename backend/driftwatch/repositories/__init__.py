"""Repository layer for database operations"""

from .base import BaseRepository
from .claim import ClaimRepository
from .scan_run import ScanRunRepository

__all__ = [
    "BaseRepository",
    "ClaimRepository",
    "ScanRunRepository",
]
