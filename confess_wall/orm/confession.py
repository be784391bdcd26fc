"""Confession model for the submission feed."""

from typing import Optional

from sqlalchemy import BigInteger, Integer, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class Confession(Base):
    """One anonymous confession. Only `likes` changes after insert."""

    __tablename__ = "confessions"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[Optional[str]] = mapped_column("time", String, nullable=True)
    photo_ref: Mapped[Optional[str]] = mapped_column("photo", String, nullable=True)
    likes: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default=text("0")
    )

    def to_dict(self) -> dict:
        """Serialize using the public feed field names."""
        return {
            "id": self.id,
            "message": self.message,
            "time": self.created_at,
            "photo": self.photo_ref,
            "likes": self.likes,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Confession":
        return cls(
            id=int(data["id"]),
            message=data["message"],
            created_at=data.get("time"),
            photo_ref=data.get("photo"),
            likes=int(data.get("likes") or 0),
        )

    def __repr__(self) -> str:
        return f"Confession(id={self.id}, likes={self.likes})"
