"""
Models package for the vent moderation service.

This package contains SQLAlchemy ORM models and Pydantic DTOs.
"""

# Ensure all ORM models are registered with the Base metadata when this package is imported.
from . import base
from . import vent_orm
from . import comment_orm
from . import sequence_counter_orm

from .base import Base
from .vent_orm import VentORM
from .comment_orm import CommentORM
from .sequence_counter_orm import SequenceCounterORM

from .dtos import (
    AuthorInfo,
    CommentDTO,
    Decision,
    DecisionOutcome,
    VentDTO,
    VentState,
)

__all__ = [
    # Base
    "Base",
    # ORMs
    "VentORM",
    "CommentORM",
    "SequenceCounterORM",
    # DTOs
    "AuthorInfo",
    "CommentDTO",
    "Decision",
    "DecisionOutcome",
    "VentDTO",
    "VentState",
]
