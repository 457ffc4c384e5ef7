"""Repository classes encapsulating database operations.

Each repository is small and focused on a single aggregate (users,
resources, quotes, challenges, submissions, leaderboards, contact
messages). Repositories return SQLModel objects and perform
commits/refreshes where appropriate.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from sqlalchemy import func, or_
from sqlalchemy import select as sa_select
from sqlmodel import Session, select

from . import models


class UserRepository:
    """CRUD operations for `User` objects."""
    def __init__(self, session: Session):
        self.session = session

    def create(self, user: models.User) -> models.User:
        """Persist a new user and return the managed instance."""
        self.session.add(user)
        self.session.commit()
        self.session.refresh(user)
        return user

    def save(self, user: models.User) -> models.User:
        self.session.add(user)
        self.session.commit()
        self.session.refresh(user)
        return user

    def get(self, user_id: uuid.UUID) -> Optional[models.User]:
        """Get a `User` by primary key."""
        return self.session.get(models.User, user_id)

    def get_by_email(self, email: str) -> Optional[models.User]:
        """Return a `User` by email or `None` if not found."""
        stmt = select(models.User).where(models.User.email == email)
        return self.session.exec(stmt).first()

    def get_by_google_id(self, google_id: str) -> Optional[models.User]:
        stmt = select(models.User).where(models.User.google_id == google_id)
        return self.session.exec(stmt).first()

    def email_taken_by_other(self, email: str, user_id: uuid.UUID) -> bool:
        """Return True if another user already owns `email`."""
        stmt = select(models.User.id).where(models.User.email == email, models.User.id != user_id)
        return self.session.exec(stmt).first() is not None

    def top_by_points(self, limit: int = 10) -> List[models.User]:
        stmt = select(models.User).order_by(models.User.points.desc(), models.User.created_at).limit(limit)
        return self.session.exec(stmt).all()

    def list_by_total_points(self) -> List[models.User]:
        """All users ordered by `points + challenge_points`, highest first."""
        total = models.User.points + models.User.challenge_points
        stmt = select(models.User).order_by(total.desc(), models.User.created_at)
        return self.session.exec(stmt).all()

    def delete(self, user: models.User) -> None:
        self.session.delete(user)
        self.session.commit()


class UserStatsRepository:
    """Access to the one-per-user `UserStats` row."""
    def __init__(self, session: Session):
        self.session = session

    def create_for(self, user_id: uuid.UUID) -> models.UserStats:
        stats = models.UserStats(user_id=user_id)
        self.session.add(stats)
        self.session.commit()
        self.session.refresh(stats)
        return stats

    def get_for(self, user_id: uuid.UUID) -> Optional[models.UserStats]:
        stmt = select(models.UserStats).where(models.UserStats.user_id == user_id)
        return self.session.exec(stmt).first()


class LeaderboardRepository:
    """Stored leaderboards, their entries and the challenge leaderboard view."""
    def __init__(self, session: Session):
        self.session = session

    def list_boards(self) -> List[models.Leaderboard]:
        stmt = select(models.Leaderboard).order_by(models.Leaderboard.id)
        return self.session.exec(stmt).all()

    def get_board(self, board_id: int) -> Optional[models.Leaderboard]:
        return self.session.get(models.Leaderboard, board_id)

    def get_entry(self, board_id: int, entry_id: int) -> Optional[models.LeaderboardEntry]:
        entry = self.session.get(models.LeaderboardEntry, entry_id)
        if entry is None or entry.leaderboard_id != board_id:
            return None
        return entry

    def save(self, obj):
        """Persist a board or an entry and return the refreshed instance."""
        self.session.add(obj)
        self.session.commit()
        self.session.refresh(obj)
        return obj

    def delete(self, obj) -> None:
        self.session.delete(obj)
        self.session.commit()

    def challenge_standings(self, limit: int = 10) -> List[dict]:
        """Top rows of the `challenge_leaderboard` view by total points."""
        view = models.challenge_leaderboard
        stmt = sa_select(view).order_by(view.c.total_points.desc(), view.c.name).limit(limit)
        return [dict(row) for row in self.session.connection().execute(stmt).mappings()]


class ResourceRepository:
    """CRUD operations for `Resource` records."""
    def __init__(self, session: Session):
        self.session = session

    def list(self, include_hidden: bool = False) -> List[models.Resource]:
        """Return resources ordered by id, visible ones only by default."""
        stmt = select(models.Resource).order_by(models.Resource.id)
        if not include_hidden:
            stmt = stmt.where(models.Resource.visible == True)  # noqa: E712
        return self.session.exec(stmt).all()

    def get(self, resource_id: int) -> Optional[models.Resource]:
        return self.session.get(models.Resource, resource_id)

    def save(self, resource: models.Resource) -> models.Resource:
        self.session.add(resource)
        self.session.commit()
        self.session.refresh(resource)
        return resource

    def delete(self, resource: models.Resource) -> None:
        self.session.delete(resource)
        self.session.commit()


class QuoteRepository:
    """CRUD operations and random selection for `Quote` records."""
    def __init__(self, session: Session):
        self.session = session

    def list(self) -> List[models.Quote]:
        return self.session.exec(select(models.Quote).order_by(models.Quote.id)).all()

    def get(self, quote_id: int) -> Optional[models.Quote]:
        return self.session.get(models.Quote, quote_id)

    def random_visible(self) -> Optional[models.Quote]:
        """Return one random visible quote, or `None` when there are none."""
        stmt = select(models.Quote).where(models.Quote.visible == True).order_by(func.random()).limit(1)  # noqa: E712
        return self.session.exec(stmt).first()

    def save(self, quote: models.Quote) -> models.Quote:
        self.session.add(quote)
        self.session.commit()
        self.session.refresh(quote)
        return quote

    def delete(self, quote: models.Quote) -> None:
        self.session.delete(quote)
        self.session.commit()


class ChallengeRepository:
    """CRUD operations and window queries for `Challenge` records."""
    def __init__(self, session: Session):
        self.session = session

    def list(self, include_hidden: bool = False) -> List[models.Challenge]:
        stmt = select(models.Challenge).order_by(models.Challenge.id)
        if not include_hidden:
            stmt = stmt.where(models.Challenge.visible == True)  # noqa: E712
        return self.session.exec(stmt).all()

    def get(self, challenge_id: int) -> Optional[models.Challenge]:
        return self.session.get(models.Challenge, challenge_id)

    def current(self, now: datetime) -> Optional[models.Challenge]:
        """Return the visible challenge whose date window contains `now`.

        Open-ended bounds count as unbounded. Challenges flagged
        `is_current` win over the rest; ties go to the newest.
        """
        c = models.Challenge
        stmt = (
            select(c)
            .where(c.visible == True)  # noqa: E712
            .where(or_(c.start_date == None, c.start_date <= now))  # noqa: E711
            .where(or_(c.end_date == None, c.end_date >= now))  # noqa: E711
            .order_by(c.is_current.desc(), c.created_at.desc(), c.id.desc())
            .limit(1)
        )
        return self.session.exec(stmt).first()

    def clear_current_flags(self, except_id: Optional[int] = None) -> None:
        stmt = select(models.Challenge).where(models.Challenge.is_current == True)  # noqa: E712
        for challenge in self.session.exec(stmt).all():
            if challenge.id != except_id:
                challenge.is_current = False
                self.session.add(challenge)

    def save(self, challenge: models.Challenge) -> models.Challenge:
        self.session.add(challenge)
        self.session.commit()
        self.session.refresh(challenge)
        return challenge

    def delete(self, challenge: models.Challenge) -> None:
        self.session.delete(challenge)
        self.session.commit()


class SubmissionRepository:
    """Persist and query notebook `ChallengeSubmission` rows."""
    def __init__(self, session: Session):
        self.session = session

    def create(self, submission: models.ChallengeSubmission) -> models.ChallengeSubmission:
        self.session.add(submission)
        self.session.commit()
        self.session.refresh(submission)
        return submission

    def get(self, submission_id: uuid.UUID) -> Optional[models.ChallengeSubmission]:
        return self.session.get(models.ChallengeSubmission, submission_id)

    def list_for_user(self, user_id: uuid.UUID, challenge_id: int) -> List[models.ChallengeSubmission]:
        """Return one user's submissions for a challenge, newest first."""
        s = models.ChallengeSubmission
        stmt = select(s).where(s.user_id == user_id, s.challenge_id == challenge_id).order_by(s.submitted_at.desc())
        return self.session.exec(stmt).all()

    def list(self, status: Optional[str] = None, challenge_id: Optional[int] = None) -> List[models.ChallengeSubmission]:
        s = models.ChallengeSubmission
        stmt = select(s).order_by(s.submitted_at.desc())
        if status is not None:
            stmt = stmt.where(s.status == status)
        if challenge_id is not None:
            stmt = stmt.where(s.challenge_id == challenge_id)
        return self.session.exec(stmt).all()


class AttemptRepository:
    """Per (user, challenge) `ChallengeAttempt` aggregates."""
    def __init__(self, session: Session):
        self.session = session

    def get_for(self, user_id: uuid.UUID, challenge_id: int) -> Optional[models.ChallengeAttempt]:
        a = models.ChallengeAttempt
        stmt = select(a).where(a.user_id == user_id, a.challenge_id == challenge_id)
        return self.session.exec(stmt).first()

    def total_best_score(self, user_id: uuid.UUID) -> int:
        """Sum of best scores across all of a user's attempts."""
        a = models.ChallengeAttempt
        stmt = select(func.coalesce(func.sum(a.best_score), 0)).where(a.user_id == user_id)
        return int(self.session.exec(stmt).one())

    def user_ids_for_challenge(self, challenge_id: int) -> List[uuid.UUID]:
        a = models.ChallengeAttempt
        stmt = select(a.user_id).where(a.challenge_id == challenge_id).distinct()
        return list(self.session.exec(stmt).all())


class ContactRepository:
    """Persist and list `ContactMessage` rows."""
    def __init__(self, session: Session):
        self.session = session

    def create(self, message: models.ContactMessage) -> models.ContactMessage:
        self.session.add(message)
        self.session.commit()
        self.session.refresh(message)
        return message

    def list(self) -> List[models.ContactMessage]:
        stmt = select(models.ContactMessage).order_by(models.ContactMessage.created_at.desc())
        return self.session.exec(stmt).all()

    def get(self, message_id: uuid.UUID) -> Optional[models.ContactMessage]:
        return self.session.get(models.ContactMessage, message_id)

    def delete(self, message: models.ContactMessage) -> None:
        self.session.delete(message)
        self.session.commit()
