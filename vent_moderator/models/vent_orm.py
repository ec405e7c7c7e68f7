"""
SQLAlchemy ORM model for the 'vents' table.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import BigInteger, CheckConstraint, Enum, Index, Integer, String, Text
from sqlalchemy import TIMESTAMP
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base
from .dtos import VentState


def new_item_id() -> str:
    """Opaque identifier for vents and comments (32 hex characters)."""
    return uuid.uuid4().hex


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class VentORM(Base):
    """
    SQLAlchemy ORM model representing a submitted vent.

    Attributes:
        id (str): Opaque identifier assigned at creation.
        user_id (str): Chat id of the submitter.
        username (str, optional): Submitter handle without the leading '@'.
        display_name (str, optional): Submitter first and last name.
        text (str): The vent content.
        state (VentState): pending, approved or rejected. Never returns to pending.
        public_number (int, optional): Sequential number, set iff state is approved.
        channel_message_id (int, optional): Id of the published channel message.
        comment_count (int): Number of accepted comments.
        created_at (datetime): Creation time, never updated.
        decided_at (datetime, optional): When the admin decision was committed.
        decided_by (str, optional): Chat id of the deciding admin.
    """
    __tablename__ = "vents"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_item_id)
    user_id: Mapped[str] = mapped_column(Text, nullable=False, comment="Chat id of the submitter.")
    username: Mapped[str | None] = mapped_column(Text, nullable=True)
    display_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    text: Mapped[str] = mapped_column(Text, nullable=False)
    state: Mapped[VentState] = mapped_column(
        Enum(
            VentState,
            name="vent_state",
            native_enum=False,
            length=16,
            values_callable=lambda states: [s.value for s in states],
        ),
        nullable=False,
        default=VentState.PENDING,
    )
    public_number: Mapped[int | None] = mapped_column(Integer, nullable=True, unique=True)
    channel_message_id: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    comment_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False, default=utc_now)
    decided_at: Mapped[datetime | None] = mapped_column(TIMESTAMP(timezone=True), nullable=True)
    decided_by: Mapped[str | None] = mapped_column(Text, nullable=True)

    comments = relationship("CommentORM", back_populates="vent", lazy="raise")

    __table_args__ = (
        CheckConstraint(
            "(state = 'approved' AND public_number IS NOT NULL) OR "
            "(state <> 'approved' AND public_number IS NULL)",
            name="ck_vent_public_number_iff_approved",
        ),
        CheckConstraint("comment_count >= 0", name="ck_vent_comment_count_non_negative"),
        Index("idx_vent_state_created_at", "state", "created_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<VentORM(id='{self.id}', state='{self.state}', "
            f"public_number={self.public_number}, comment_count={self.comment_count})>"
        )
