from database.repositories.base import BaseRepository
from database.repositories.coordinator import CoordinatorRepository

__all__ = [
    'BaseRepository',
    'CoordinatorRepository',
]
