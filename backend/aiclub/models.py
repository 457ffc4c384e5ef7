"""SQLModel data models.

This module defines the club's database tables using SQLModel. Table
and index names match the SQL schema the service has always shipped
with, so an existing PostgreSQL database can be reused as-is.

`challenge_leaderboard` is a database view, not a table. It is described
by a plain SQLAlchemy `Table` bound to its own `MetaData` so that
`SQLModel.metadata.create_all()` never tries to create it; the view
itself is installed by `database.install_triggers_and_views()`.
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import (
    JSON,
    CheckConstraint,
    Column,
    DateTime,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    UniqueConstraint,
    Uuid,
    text,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlmodel import Field, Relationship, SQLModel

ROLES = ("user", "admin")
CHALLENGE_TYPES = ("general", "notebook")
SUBMISSION_STATUSES = ("pending", "grading", "graded", "error")

JSONVariant = JSON().with_variant(JSONB(), "postgresql")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _timestamp(**kwargs):
    """Timezone-aware, non-null timestamp column defaulting to now."""
    return Field(default_factory=utcnow, sa_type=DateTime(timezone=True), nullable=False, **kwargs)


class User(SQLModel, table=True):
    """A club member.

    Fields:
    - `email`: unique login address, stored lower-cased
    - `password_hash`: `None` for accounts that only sign in with Google
    - `points`: base points awarded by admins
    - `challenge_points`: sum of the member's best challenge scores
    - `rank`: competition rank over `points + challenge_points`
    """
    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint("role IN ('user', 'admin')", name="users_role_check"),
        Index("idx_users_points", "points"),
        Index("idx_users_role", "role"),
        Index("idx_users_google_id", "google_id"),
    )

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    email: str = Field(max_length=255, unique=True, nullable=False)
    password_hash: Optional[str] = Field(default=None, max_length=255)
    full_name: str = Field(default="", max_length=255, sa_column_kwargs={"server_default": ""})
    phone_num: Optional[str] = Field(default=None, max_length=50)
    image: Optional[str] = Field(default=None, max_length=512)
    points: int = Field(default=0, sa_column_kwargs={"server_default": text("0")})
    rank: int = Field(default=0, sa_column_kwargs={"server_default": text("0")})
    challenge_points: int = Field(default=0, sa_column_kwargs={"server_default": text("0")})
    role: str = Field(default="user", max_length=50, sa_column_kwargs={"server_default": "user"})
    google_id: Optional[str] = Field(default=None, max_length=255, unique=True)
    university: Optional[str] = Field(default=None, max_length=255)
    major: Optional[str] = Field(default=None, max_length=255)
    university_major_set: bool = Field(default=False, sa_column_kwargs={"server_default": text("false")})
    created_at: datetime = _timestamp()

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


class UserStats(SQLModel, table=True):
    """Per-member profile statistics, one row per user."""
    __tablename__ = "user_stats"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    user_id: uuid.UUID = Field(foreign_key="users.id", ondelete="CASCADE", unique=True, nullable=False)
    best_subject: Optional[str] = Field(default=None, max_length=255)
    improveable: Optional[str] = Field(default=None, max_length=255)
    quickest_hunter: int = 0
    challenges_taken: int = 0
    created_at: datetime = _timestamp()
    updated_at: datetime = _timestamp(sa_column_kwargs={"onupdate": utcnow})


class Leaderboard(SQLModel, table=True):
    """A hand-maintained leaderboard (e.g. a workshop or hackathon board)."""
    __tablename__ = "leaderboards"

    id: Optional[int] = Field(default=None, primary_key=True)
    title: str = Field(max_length=255)
    created_at: datetime = _timestamp()
    entries: List["LeaderboardEntry"] = Relationship(
        back_populates="leaderboard",
        sa_relationship_kwargs={
            "cascade": "all, delete-orphan",
            "passive_deletes": True,
            "order_by": "LeaderboardEntry.points.desc()",
        },
    )


class LeaderboardEntry(SQLModel, table=True):
    """A named score line on a `Leaderboard`."""
    __tablename__ = "leaderboard_entries"
    __table_args__ = (
        Index("idx_leaderboard_entries_leaderboard_id", "leaderboard_id"),
        Index("idx_leaderboard_entries_points", "points"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    leaderboard_id: int = Field(foreign_key="leaderboards.id", ondelete="CASCADE", nullable=False)
    name: str = Field(max_length=255)
    points: int = 0
    created_at: datetime = _timestamp()
    leaderboard: Optional[Leaderboard] = Relationship(back_populates="entries")


class Resource(SQLModel, table=True):
    """A learning resource (course, workshop material) shown on the site."""
    __tablename__ = "resources"

    id: Optional[int] = Field(default=None, primary_key=True)
    title: str = Field(max_length=255)
    provider: str = Field(max_length=255)
    cover_image: Optional[str] = Field(default=None, max_length=512)
    instructor_name: str = Field(default="", max_length=255)
    instructor_image: Optional[str] = Field(default=None, max_length=512)
    notion_url: Optional[str] = Field(default=None, max_length=512)
    visible: bool = Field(default=True, sa_column_kwargs={"server_default": text("true")})
    updated_at: datetime = _timestamp(sa_column_kwargs={"onupdate": utcnow})
    created_at: datetime = _timestamp()


class Quote(SQLModel, table=True):
    """A motivational quote attached to resource detail pages."""
    __tablename__ = "quotes"

    id: Optional[int] = Field(default=None, primary_key=True)
    text: str
    author: str
    visible: bool = Field(default=True, sa_column_kwargs={"server_default": text("true")})
    created_at: datetime = _timestamp()
    updated_at: datetime = _timestamp(sa_column_kwargs={"onupdate": utcnow})


class Challenge(SQLModel, table=True):
    """A weekly challenge.

    `challenge_type` is `general` for link-only challenges and `notebook`
    for challenges that accept notebook submissions scored out of
    `max_score`. The optional `start_date`/`end_date` bound the window in
    which the challenge is current and open for submissions.
    """
    __tablename__ = "challenges"
    __table_args__ = (
        CheckConstraint("challenge_type IN ('general', 'notebook')", name="challenges_type_check"),
        Index("idx_challenges_is_current", "is_current"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    week: int = 1
    title: str = Field(max_length=255)
    description: str
    challenge_url: str = Field(default="", max_length=512)
    is_current: bool = Field(default=False, sa_column_kwargs={"server_default": text("false")})
    visible: bool = Field(default=True, sa_column_kwargs={"server_default": text("true")})
    start_date: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))
    end_date: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))
    notebook_url: Optional[str] = None
    max_score: int = Field(default=100, sa_column_kwargs={"server_default": text("100")})
    grading_criteria: Optional[Dict[str, Any]] = Field(default=None, sa_type=JSONVariant)
    challenge_type: str = Field(default="general", max_length=50, sa_column_kwargs={"server_default": "general"})
    updated_at: datetime = _timestamp(sa_column_kwargs={"onupdate": utcnow})
    created_at: datetime = _timestamp()


class ChallengeSubmission(SQLModel, table=True):
    """A member's notebook submission for a challenge.

    `notebook_content` is written once at submission time. `updated_at`
    is maintained by a database trigger.
    """
    __tablename__ = "challenge_submissions"
    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'grading', 'graded', 'error')",
            name="challenge_submissions_status_check",
        ),
        Index("idx_challenge_submissions_user_id", "user_id"),
        Index("idx_challenge_submissions_challenge_id", "challenge_id"),
        Index("idx_challenge_submissions_status", "status"),
        Index("idx_challenge_submissions_submitted_at", "submitted_at"),
    )

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    user_id: uuid.UUID = Field(foreign_key="users.id", ondelete="CASCADE", nullable=False)
    challenge_id: int = Field(foreign_key="challenges.id", ondelete="CASCADE", nullable=False)
    notebook_content: Dict[str, Any] = Field(sa_type=JSONVariant, nullable=False)
    score: Optional[int] = None
    max_score: int
    feedback: Optional[str] = None
    status: str = Field(default="pending", max_length=50, sa_column_kwargs={"server_default": "pending"})
    execution_time_ms: Optional[int] = None
    submitted_at: datetime = _timestamp()
    graded_at: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))
    created_at: datetime = _timestamp()
    updated_at: datetime = _timestamp()


class ChallengeAttempt(SQLModel, table=True):
    """Per (user, challenge) aggregate of attempts and best score."""
    __tablename__ = "challenge_attempts"
    __table_args__ = (
        UniqueConstraint("user_id", "challenge_id", name="challenge_attempts_user_id_challenge_id_key"),
        Index("idx_challenge_attempts_user_id", "user_id"),
        Index("idx_challenge_attempts_challenge_id", "challenge_id"),
        Index("idx_challenge_attempts_best_score", "best_score"),
    )

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    user_id: uuid.UUID = Field(foreign_key="users.id", ondelete="CASCADE", nullable=False)
    challenge_id: int = Field(foreign_key="challenges.id", ondelete="CASCADE", nullable=False)
    attempt_number: int
    best_score: int = Field(default=0, sa_column_kwargs={"server_default": text("0")})
    total_attempts: int = Field(default=0, sa_column_kwargs={"server_default": text("0")})
    last_attempt_at: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))
    created_at: datetime = _timestamp()
    updated_at: datetime = _timestamp()


class ContactMessage(SQLModel, table=True):
    """A message left through the public contact form."""
    __tablename__ = "contact_messages"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    name: str = Field(max_length=255)
    email: str = Field(max_length=255)
    message: str
    created_at: datetime = _timestamp()


view_metadata = MetaData()

challenge_leaderboard = Table(
    "challenge_leaderboard",
    view_metadata,
    Column("id", Uuid, primary_key=True),
    Column("name", String),
    Column("image", String),
    Column("total_score", Integer),
    Column("challenges_completed", Integer),
    Column("total_points", Integer),
)
