"""Repository layer for phaser storage.

Repositories provide domain-specific data access on top of the raw
database:
- CertificationRepository: certifications and phase configs
- ItemRepository: certification items
- LockRepository: named per-certification locks
"""

from .base import BaseRepository
from .certification import CertificationRepository
from .item import ItemRepository
from .lock import LockRepository

__all__ = [
    "BaseRepository",
    "CertificationRepository",
    "ItemRepository",
    "LockRepository",
]
