"""
SQLAlchemy ORM model for the 'comments' table.
"""

from datetime import datetime

from sqlalchemy import ForeignKey, Index, String, Text
from sqlalchemy import TIMESTAMP
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base
from .vent_orm import new_item_id, utc_now


class CommentORM(Base):
    """
    SQLAlchemy ORM model representing an anonymous comment on a vent.

    Attributes:
        id (str): Opaque identifier assigned at creation.
        vent_id (str): The parent vent. Checked by the store before insert.
        user_id (str): Chat id of the commenter.
        username (str, optional): Commenter handle.
        display_name (str, optional): Commenter first and last name.
        text (str): The comment content.
        created_at (datetime): Creation time, used for oldest-first listing.
    """
    __tablename__ = "comments"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_item_id)
    vent_id: Mapped[str] = mapped_column(String(32), ForeignKey("vents.id"), nullable=False)
    user_id: Mapped[str] = mapped_column(Text, nullable=False)
    username: Mapped[str | None] = mapped_column(Text, nullable=True)
    display_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    text: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False, default=utc_now)

    vent = relationship("VentORM", back_populates="comments", lazy="raise")

    __table_args__ = (
        Index("idx_comment_vent_id_created_at", "vent_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<CommentORM(id='{self.id}', vent_id='{self.vent_id}', created_at='{self.created_at}')>"
