"""ORM models for database persistence."""

from .base import Base
from .confession import Confession

__all__ = [
    "Base",
    "Confession",
]
