"""ORM Models — SQLAlchemy declarative models for all persisted entities.

Invariants:
    - All models inherit from Base (db/base.py)
    - Every row outside `users` is scoped by owner_id

Design Decisions:
    - One file per entity for locality (ADR: ExMA max 3-4 files to understand a feature)
    - All models imported here so Base.metadata is complete before create_all
      or Alembic autogenerate runs
"""

from mathcoach.models.user import User  # noqa: F401
from mathcoach.models.learning_session import LearningSession  # noqa: F401
from mathcoach.models.learning_report import LearningReport  # noqa: F401
from mathcoach.models.learning_history import LearningHistory  # noqa: F401
from mathcoach.models.user_stats import UserStats  # noqa: F401
from mathcoach.models.behavior_event import BehaviorEvent  # noqa: F401
