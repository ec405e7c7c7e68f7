"""
SQLAlchemy ORM model for the 'sequence_counters' table.
"""

from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class SequenceCounterORM(Base):
    """
    A named durable counter.

    Attributes:
        name (str): Counter key, e.g. "vent_number".
        next_value (int): The next value the allocator will hand out.
    """
    __tablename__ = "sequence_counters"

    name: Mapped[str] = mapped_column(String(64), primary_key=True)
    next_value: Mapped[int] = mapped_column(Integer, nullable=False)

    def __repr__(self) -> str:
        return f"<SequenceCounterORM(name='{self.name}', next_value={self.next_value})>"
