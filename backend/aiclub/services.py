"""Business logic services used by HTTP controllers.

This module holds small service classes that coordinate repositories
and domain rules. Services are intentionally thin: they perform
validation, execute domain logic and persist aggregates via
repositories. Failures are reported with the exception classes below,
which `main` maps to HTTP status codes.
"""

import json
import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Tuple

import jwt
from passlib.context import CryptContext
from sqlmodel import Session

from . import models, repositories
from .config import settings

PWD_CTX = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")
MIN_PASSWORD_LENGTH = 6
TOP_USERS_BOARD_ID = 0
TOP_USERS_BOARD_TITLE = "Top Users"

logger = logging.getLogger("aiclub.services")

# Allowed submission status moves; graded and error are terminal.
SUBMISSION_TRANSITIONS = {
    "pending": {"grading", "graded", "error"},
    "grading": {"graded", "error"},
    "graded": set(),
    "error": set(),
}


class ServiceError(Exception):
    """Base class for domain errors raised by services."""


class InvalidInput(ServiceError, ValueError):
    pass


class AuthenticationFailed(ServiceError):
    pass


class NotFound(ServiceError, LookupError):
    pass


class Conflict(ServiceError):
    pass


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive datetimes (SQLite drops tzinfo) and convert aware ones."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _log_event(event: str, **fields):
    logger.info("%s %s", event, json.dumps(fields, default=str, ensure_ascii=True))


def _require_text(value: Optional[str], field: str) -> str:
    if value is None or not value.strip():
        raise InvalidInput(f"{field} must not be empty")
    return value.strip()


def create_access_token(user: models.User) -> str:
    """Sign a JWT for `user` valid for `JWT_EXPIRE_HOURS`."""
    expire = datetime.now(timezone.utc) + timedelta(hours=settings.JWT_EXPIRE_HOURS)
    payload = {"sub": str(user.id), "role": user.role, "exp": int(expire.timestamp())}
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


class RankingService:
    """Keep `users.challenge_points` and `users.rank` consistent."""
    def __init__(self, session: Session):
        self.session = session
        self.user_repo = repositories.UserRepository(session)
        self.attempt_repo = repositories.AttemptRepository(session)

    def sync_challenge_points(self, user_id: uuid.UUID) -> None:
        """Copy the user's summed best scores into `challenge_points` and re-rank."""
        self.sync_many([user_id])

    def sync_many(self, user_ids) -> None:
        for user_id in user_ids:
            user = self.user_repo.get(user_id)
            if user is None:
                continue
            user.challenge_points = self.attempt_repo.total_best_score(user_id)
            self.session.add(user)
        self.session.commit()
        self.recompute_ranks()

    def recompute_ranks(self) -> int:
        """Assign competition ranks (1, 2, 2, 4, ...) over total points.

        Returns the number of users whose rank changed.
        """
        changed = 0
        rank = 0
        previous_total = None
        for position, user in enumerate(self.user_repo.list_by_total_points(), start=1):
            total = user.points + user.challenge_points
            if total != previous_total:
                rank = position
                previous_total = total
            if user.rank != rank:
                user.rank = rank
                self.session.add(user)
                changed += 1
        if changed:
            self.session.commit()
        return changed


class AuthService:
    """Authentication related operations (signup, login, Google sign-in)."""
    def __init__(self, session: Session):
        self.session = session
        self.user_repo = repositories.UserRepository(session)
        self.stats_repo = repositories.UserStatsRepository(session)

    def _create_user(self, user: models.User) -> models.User:
        created = self.user_repo.create(user)
        self.stats_repo.create_for(created.id)
        RankingService(self.session).recompute_ranks()
        self.session.refresh(created)
        return created

    def signup(self, full_name: str, phone_num: Optional[str], email: str, password: str) -> Tuple[models.User, str]:
        """Create a password account and return it with a fresh token."""
        email = _require_text(email, "email").lower()
        if "@" not in email:
            raise InvalidInput("email is not valid")
        if password is None or len(password) < MIN_PASSWORD_LENGTH:
            raise InvalidInput(f"password must be at least {MIN_PASSWORD_LENGTH} characters")
        if self.user_repo.get_by_email(email):
            raise Conflict("User already exists")
        user = self._create_user(
            models.User(
                email=email,
                password_hash=PWD_CTX.hash(password),
                full_name=(full_name or "").strip(),
                phone_num=phone_num or None,
            )
        )
        _log_event("user_signed_up", user_id=user.id, method="password")
        return user, create_access_token(user)

    def login(self, email: str, password: str) -> Tuple[models.User, str]:
        """Verify credentials and return the user with a signed JWT.

        Raises `AuthenticationFailed` for unknown emails or bad passwords
        and `InvalidInput` for accounts that only use Google Sign-In.
        """
        user = self.user_repo.get_by_email((email or "").strip().lower())
        if not user:
            raise AuthenticationFailed("Authentication failed")
        if not user.password_hash:
            raise InvalidInput("This account uses Google Sign-In. Please use the 'Sign in with Google' button.")
        if not PWD_CTX.verify(password, user.password_hash):
            raise AuthenticationFailed("Authentication failed")
        return user, create_access_token(user)

    def change_password(self, user: models.User, current_password: str, new_password: str) -> None:
        if not user.password_hash:
            raise InvalidInput("This account uses Google Sign-In and doesn't have a password.")
        if not PWD_CTX.verify(current_password, user.password_hash):
            raise AuthenticationFailed("Authentication failed")
        if new_password is None or len(new_password) < MIN_PASSWORD_LENGTH:
            raise InvalidInput(f"password must be at least {MIN_PASSWORD_LENGTH} characters")
        user.password_hash = PWD_CTX.hash(new_password)
        self.user_repo.save(user)
        _log_event("password_changed", user_id=user.id)

    def complete_profile(self, user: models.User, university: str, major: str) -> models.User:
        user.university = _require_text(university, "university")
        user.major = _require_text(major, "major")
        user.university_major_set = True
        return self.user_repo.save(user)

    def sign_in_with_google(self, sub: str, email: str, name: Optional[str], picture: Optional[str]) -> Tuple[models.User, str, bool]:
        """Find, link or create the account behind a Google identity.

        Returns `(user, token, needs_profile_completion)`.
        """
        email = _require_text(email, "email").lower()
        user = self.user_repo.get_by_google_id(sub)
        if user:
            user.email = email
            user.full_name = name or user.full_name
            user.image = picture or user.image
            user = self.user_repo.save(user)
            method = "existing"
        else:
            user = self.user_repo.get_by_email(email)
            if user:
                user.google_id = sub
                user.image = picture or user.image
                user = self.user_repo.save(user)
                method = "linked"
            else:
                user = self._create_user(
                    models.User(email=email, password_hash=None, full_name=name or email, google_id=sub, image=picture)
                )
                method = "created"
        _log_event("google_sign_in", user_id=user.id, outcome=method)
        return user, create_access_token(user), not user.university_major_set


class ProfileService:
    """Read and update the signed-in member's profile."""
    def __init__(self, session: Session):
        self.session = session
        self.user_repo = repositories.UserRepository(session)
        self.stats_repo = repositories.UserStatsRepository(session)

    def stats_for(self, user: models.User) -> models.UserStats:
        stats = self.stats_repo.get_for(user.id)
        if stats is None:
            # accounts created before user_stats existed
            stats = self.stats_repo.create_for(user.id)
        return stats

    def update(self, user: models.User, changes: Dict[str, Any]) -> models.User:
        """Apply `full_name`, `email` and `image` changes that were supplied."""
        email = changes.get("email")
        if email is not None:
            email = _require_text(email, "email").lower()
            if "@" not in email:
                raise InvalidInput("email is not valid")
            if email != user.email and self.user_repo.email_taken_by_other(email, user.id):
                raise Conflict("User already exists")
            user.email = email
        if changes.get("full_name") is not None:
            user.full_name = changes["full_name"].strip()
        if changes.get("image") is not None:
            user.image = changes["image"]
        return self.user_repo.save(user)

    def set_avatar(self, user: models.User, image_url: str) -> models.User:
        user.image = image_url
        return self.user_repo.save(user)


class AdminUserService:
    """Administrative changes to member accounts."""
    def __init__(self, session: Session):
        self.session = session
        self.user_repo = repositories.UserRepository(session)

    def _get(self, user_id: uuid.UUID) -> models.User:
        user = self.user_repo.get(user_id)
        if not user:
            raise NotFound("Resource not found")
        return user

    def update(self, user_id: uuid.UUID, points: Optional[int] = None, role: Optional[str] = None) -> models.User:
        user = self._get(user_id)
        if role is not None:
            if role not in models.ROLES:
                raise InvalidInput(f"role must be one of {', '.join(models.ROLES)}")
            user.role = role
        if points is not None:
            if points < 0:
                raise InvalidInput("points must be >= 0")
            user.points = points
        self.user_repo.save(user)
        RankingService(self.session).recompute_ranks()
        self.session.refresh(user)
        _log_event("user_updated_by_admin", user_id=user.id, points=points, role=role)
        return user

    def delete(self, user_id: uuid.UUID) -> None:
        user = self._get(user_id)
        self.user_repo.delete(user)
        RankingService(self.session).recompute_ranks()
        _log_event("user_deleted", user_id=user_id)


class LeaderboardService:
    """Club leaderboards: the live top-users board plus stored boards."""
    def __init__(self, session: Session):
        self.session = session
        self.repo = repositories.LeaderboardRepository(session)
        self.user_repo = repositories.UserRepository(session)

    def boards(self, limit: int = 10) -> List[dict]:
        """Return the live top-users board followed by every stored board."""
        out = [{
            "id": TOP_USERS_BOARD_ID,
            "title": TOP_USERS_BOARD_TITLE,
            "entries": [{"name": u.full_name, "points": u.points} for u in self.user_repo.top_by_points(limit)],
        }]
        for board in self.repo.list_boards():
            out.append({
                "id": board.id,
                "title": board.title,
                "entries": [{"name": e.name, "points": e.points} for e in board.entries],
            })
        return out

    def challenge_standings(self, limit: int = 10) -> List[dict]:
        return self.repo.challenge_standings(limit)

    def _board(self, board_id: int) -> models.Leaderboard:
        board = self.repo.get_board(board_id)
        if not board:
            raise NotFound("Resource not found")
        return board

    def create_board(self, title: str) -> models.Leaderboard:
        return self.repo.save(models.Leaderboard(title=_require_text(title, "title")))

    def delete_board(self, board_id: int) -> None:
        self.repo.delete(self._board(board_id))

    def add_entry(self, board_id: int, name: str, points: int) -> models.LeaderboardEntry:
        board = self._board(board_id)
        entry = models.LeaderboardEntry(leaderboard_id=board.id, name=_require_text(name, "name"), points=points)
        return self.repo.save(entry)

    def update_entry(self, board_id: int, entry_id: int, changes: Dict[str, Any]) -> models.LeaderboardEntry:
        entry = self.repo.get_entry(board_id, entry_id)
        if not entry:
            raise NotFound("Resource not found")
        if changes.get("name") is not None:
            entry.name = _require_text(changes["name"], "name")
        if changes.get("points") is not None:
            entry.points = changes["points"]
        return self.repo.save(entry)

    def delete_entry(self, board_id: int, entry_id: int) -> None:
        entry = self.repo.get_entry(board_id, entry_id)
        if not entry:
            raise NotFound("Resource not found")
        self.repo.delete(entry)


class ResourceService:
    """Learning resources, public and admin views."""
    def __init__(self, session: Session):
        self.session = session
        self.repo = repositories.ResourceRepository(session)
        self.quote_repo = repositories.QuoteRepository(session)

    def list(self, include_hidden: bool = False) -> List[models.Resource]:
        return self.repo.list(include_hidden=include_hidden)

    def get(self, resource_id: int, include_hidden: bool = False) -> models.Resource:
        resource = self.repo.get(resource_id)
        if not resource or (not resource.visible and not include_hidden):
            raise NotFound("Resource not found")
        return resource

    def detail(self, resource_id: int) -> Tuple[models.Resource, Optional[models.Quote]]:
        """Return a visible resource together with one random visible quote."""
        return self.get(resource_id), self.quote_repo.random_visible()

    def create(self, fields: Dict[str, Any]) -> models.Resource:
        resource = models.Resource(
            title=_require_text(fields.get("title"), "title"),
            provider=_require_text(fields.get("provider"), "provider"),
            cover_image=fields.get("cover_image"),
            notion_url=fields.get("notion_url") or None,
            instructor_name=fields.get("instructor_name") or "",
            instructor_image=fields.get("instructor_image"),
            visible=True if fields.get("visible") is None else bool(fields["visible"]),
        )
        resource = self.repo.save(resource)
        _log_event("resource_created", resource_id=resource.id)
        return resource

    def update(self, resource_id: int, changes: Dict[str, Any]) -> models.Resource:
        """Apply a partial update; keys absent from `changes` are left alone.

        An empty `notion_url` clears the link.
        """
        resource = self.get(resource_id, include_hidden=True)
        for key in ("title", "provider"):
            if changes.get(key) is not None:
                setattr(resource, key, _require_text(changes[key], key))
        if "notion_url" in changes:
            resource.notion_url = changes["notion_url"] or None
        if changes.get("instructor_name"):
            resource.instructor_name = changes["instructor_name"]
        for key in ("cover_image", "instructor_image"):
            if changes.get(key) is not None:
                setattr(resource, key, changes[key])
        if changes.get("visible") is not None:
            resource.visible = bool(changes["visible"])
        return self.repo.save(resource)

    def set_visibility(self, resource_id: int, visible: bool) -> models.Resource:
        resource = self.get(resource_id, include_hidden=True)
        resource.visible = visible
        return self.repo.save(resource)

    def delete(self, resource_id: int) -> None:
        self.repo.delete(self.get(resource_id, include_hidden=True))


class QuoteService:
    """Admin management of motivational quotes."""
    def __init__(self, session: Session):
        self.session = session
        self.repo = repositories.QuoteRepository(session)

    def _get(self, quote_id: int) -> models.Quote:
        quote = self.repo.get(quote_id)
        if not quote:
            raise NotFound("Resource not found")
        return quote

    def list(self) -> List[models.Quote]:
        return self.repo.list()

    def create(self, text: str, author: str, visible: bool = True) -> models.Quote:
        return self.repo.save(models.Quote(text=_require_text(text, "text"), author=_require_text(author, "author"), visible=visible))

    def update(self, quote_id: int, changes: Dict[str, Any]) -> models.Quote:
        quote = self._get(quote_id)
        for key in ("text", "author"):
            if changes.get(key) is not None:
                setattr(quote, key, _require_text(changes[key], key))
        if changes.get("visible") is not None:
            quote.visible = bool(changes["visible"])
        return self.repo.save(quote)

    def set_visibility(self, quote_id: int, visible: bool) -> models.Quote:
        return self.update(quote_id, {"visible": visible})

    def delete(self, quote_id: int) -> None:
        self.repo.delete(self._get(quote_id))


class ChallengeService:
    """Weekly challenges: the current one for members, CRUD for admins."""
    def __init__(self, session: Session):
        self.session = session
        self.repo = repositories.ChallengeRepository(session)

    def current(self, now: Optional[datetime] = None) -> models.Challenge:
        challenge = self.repo.current(now or models.utcnow())
        if not challenge:
            raise NotFound("Resource not found")
        return challenge

    def list(self, include_hidden: bool = False) -> List[models.Challenge]:
        return self.repo.list(include_hidden=include_hidden)

    def get(self, challenge_id: int, include_hidden: bool = True) -> models.Challenge:
        challenge = self.repo.get(challenge_id)
        if not challenge or (not challenge.visible and not include_hidden):
            raise NotFound("Resource not found")
        return challenge

    def _apply(self, challenge: models.Challenge, fields: Dict[str, Any]):
        for key in ("title", "description"):
            if fields.get(key) is not None:
                setattr(challenge, key, _require_text(fields[key], key))
        for key in ("week", "challenge_url", "visible", "notebook_url", "grading_criteria"):
            if fields.get(key) is not None:
                setattr(challenge, key, fields[key])
        for key in ("start_date", "end_date"):
            if fields.get(key) is not None:
                setattr(challenge, key, ensure_utc(fields[key]))
        if fields.get("challenge_type") is not None:
            if fields["challenge_type"] not in models.CHALLENGE_TYPES:
                raise InvalidInput(f"challengeType must be one of {', '.join(models.CHALLENGE_TYPES)}")
            challenge.challenge_type = fields["challenge_type"]
        if fields.get("max_score") is not None:
            if fields["max_score"] <= 0:
                raise InvalidInput("maxScore must be greater than 0")
            challenge.max_score = fields["max_score"]
        start, end = ensure_utc(challenge.start_date), ensure_utc(challenge.end_date)
        if start and end and end < start:
            raise InvalidInput("endDate must not be before startDate")

    def create(self, fields: Dict[str, Any]) -> models.Challenge:
        challenge = models.Challenge(
            title=_require_text(fields.get("title"), "title"),
            description=_require_text(fields.get("description"), "description"),
            week=fields.get("week") or 1,
            challenge_url=fields.get("challenge_url") or "",
            is_current=False,
        )
        self._apply(challenge, fields)
        challenge = self.repo.save(challenge)
        _log_event("challenge_created", challenge_id=challenge.id, challenge_type=challenge.challenge_type)
        return challenge

    def update(self, challenge_id: int, changes: Dict[str, Any]) -> models.Challenge:
        challenge = self.get(challenge_id)
        self._apply(challenge, changes)
        return self.repo.save(challenge)

    def set_visibility(self, challenge_id: int, visible: bool) -> models.Challenge:
        challenge = self.get(challenge_id)
        challenge.visible = visible
        return self.repo.save(challenge)

    def make_current(self, challenge_id: int) -> models.Challenge:
        """Flag one challenge as current and clear the flag everywhere else."""
        challenge = self.get(challenge_id)
        self.repo.clear_current_flags(except_id=challenge.id)
        challenge.is_current = True
        return self.repo.save(challenge)

    def delete(self, challenge_id: int) -> None:
        """Delete a challenge; its attempts cascade away, so affected users are re-scored."""
        challenge = self.get(challenge_id)
        affected = repositories.AttemptRepository(self.session).user_ids_for_challenge(challenge.id)
        self.repo.delete(challenge)
        RankingService(self.session).sync_many(affected)
        _log_event("challenge_deleted", challenge_id=challenge_id, users_rescored=len(affected))


class SubmissionService:
    """Notebook submissions and the per-challenge attempt aggregate.

    Notebooks are stored as submitted and never executed here; a score is
    recorded later through `record_grade` by an administrator or an
    external grader.
    """
    def __init__(self, session: Session):
        self.session = session
        self.repo = repositories.SubmissionRepository(session)
        self.attempt_repo = repositories.AttemptRepository(session)
        self.challenge_repo = repositories.ChallengeRepository(session)
        self.stats_repo = repositories.UserStatsRepository(session)

    def _validate_notebook(self, notebook: Any):
        if not isinstance(notebook, dict):
            raise InvalidInput("notebook must be a JSON object")
        if not isinstance(notebook.get("cells"), list):
            raise InvalidInput("notebook must contain a 'cells' list")
        if len(json.dumps(notebook)) > settings.MAX_UPLOAD_BYTES:
            raise InvalidInput("notebook too large")

    def submit(self, user: models.User, challenge_id: int, notebook: Any) -> models.ChallengeSubmission:
        """Store a pending submission and bump the user's attempt counters.

        The submission, the attempt aggregate and the user's stats are
        written in one commit.
        """
        challenge = self.challenge_repo.get(challenge_id)
        if not challenge or not challenge.visible:
            raise NotFound("Resource not found")
        if challenge.challenge_type != "notebook":
            raise InvalidInput("challenge does not accept notebook submissions")
        now = models.utcnow()
        if challenge.start_date and now < ensure_utc(challenge.start_date):
            raise InvalidInput("challenge has not started yet")
        if challenge.end_date and now > ensure_utc(challenge.end_date):
            raise InvalidInput("challenge is closed")
        self._validate_notebook(notebook)

        submission = models.ChallengeSubmission(
            user_id=user.id,
            challenge_id=challenge.id,
            notebook_content=notebook,
            max_score=challenge.max_score or 100,
            status="pending",
            submitted_at=now,
        )
        attempt = self.attempt_repo.get_for(user.id, challenge.id)
        if attempt is None:
            attempt = models.ChallengeAttempt(
                user_id=user.id,
                challenge_id=challenge.id,
                attempt_number=1,
                total_attempts=1,
                best_score=0,
                last_attempt_at=now,
            )
            stats = self.stats_repo.get_for(user.id)
            if stats is not None:
                stats.challenges_taken += 1
                self.session.add(stats)
        else:
            attempt.total_attempts += 1
            attempt.attempt_number = attempt.total_attempts
            attempt.last_attempt_at = now
        self.session.add(attempt)
        submission = self.repo.create(submission)
        _log_event(
            "submission_created",
            submission_id=submission.id,
            user_id=user.id,
            challenge_id=challenge.id,
            attempt_number=attempt.attempt_number,
        )
        return submission

    def list_own(self, user: models.User, challenge_id: int) -> List[models.ChallengeSubmission]:
        return self.repo.list_for_user(user.id, challenge_id)

    def attempt_for(self, user: models.User, challenge_id: int) -> models.ChallengeAttempt:
        attempt = self.attempt_repo.get_for(user.id, challenge_id)
        if not attempt:
            raise NotFound("Resource not found")
        return attempt

    def get_for_viewer(self, viewer: models.User, submission_id: uuid.UUID) -> models.ChallengeSubmission:
        """Return a submission to its owner or an admin; anyone else gets NotFound."""
        submission = self.repo.get(submission_id)
        if not submission or (submission.user_id != viewer.id and not viewer.is_admin):
            raise NotFound("Resource not found")
        return submission

    def list_all(self, status: Optional[str] = None, challenge_id: Optional[int] = None) -> List[models.ChallengeSubmission]:
        if status is not None and status not in models.SUBMISSION_STATUSES:
            raise InvalidInput(f"status must be one of {', '.join(models.SUBMISSION_STATUSES)}")
        return self.repo.list(status=status, challenge_id=challenge_id)

    def _transition(self, submission_id: uuid.UUID, target: str) -> models.ChallengeSubmission:
        submission = self.repo.get(submission_id)
        if not submission:
            raise NotFound("Resource not found")
        if target not in SUBMISSION_TRANSITIONS[submission.status]:
            raise Conflict(f"cannot move submission from {submission.status} to {target}")
        return submission

    def start_grading(self, submission_id: uuid.UUID) -> models.ChallengeSubmission:
        submission = self._transition(submission_id, "grading")
        submission.status = "grading"
        self.session.add(submission)
        self.session.commit()
        self.session.refresh(submission)
        return submission

    def record_grade(self, submission_id: uuid.UUID, score: int, feedback: Optional[str] = None,
                     execution_time_ms: Optional[int] = None) -> models.ChallengeSubmission:
        """Mark a submission graded and fold its score into the attempt's best.

        The owner's `challenge_points` and every rank are refreshed
        afterwards.
        """
        submission = self._transition(submission_id, "graded")
        if score < 0 or score > submission.max_score:
            raise InvalidInput(f"score must be between 0 and {submission.max_score}")
        if execution_time_ms is not None and execution_time_ms < 0:
            raise InvalidInput("executionTimeMs must be >= 0")
        submission.status = "graded"
        submission.score = score
        submission.feedback = feedback
        submission.execution_time_ms = execution_time_ms
        submission.graded_at = models.utcnow()
        self.session.add(submission)

        attempt = self.attempt_repo.get_for(submission.user_id, submission.challenge_id)
        if attempt is None:
            attempt = models.ChallengeAttempt(
                user_id=submission.user_id,
                challenge_id=submission.challenge_id,
                attempt_number=1,
                total_attempts=1,
                last_attempt_at=submission.submitted_at,
            )
        if score > (attempt.best_score or 0):
            attempt.best_score = score
        self.session.add(attempt)
        self.session.commit()
        self.session.refresh(submission)

        RankingService(self.session).sync_challenge_points(submission.user_id)
        _log_event("submission_graded", submission_id=submission.id, score=score, max_score=submission.max_score)
        return submission

    def record_failure(self, submission_id: uuid.UUID, feedback: Optional[str] = None) -> models.ChallengeSubmission:
        submission = self._transition(submission_id, "error")
        submission.status = "error"
        submission.feedback = feedback
        self.session.add(submission)
        self.session.commit()
        self.session.refresh(submission)
        _log_event("submission_failed", submission_id=submission.id)
        return submission


class ContactService:
    """Public contact form and its admin inbox."""
    def __init__(self, session: Session):
        self.session = session
        self.repo = repositories.ContactRepository(session)

    def create(self, name: str, email: str, message: str) -> models.ContactMessage:
        msg = models.ContactMessage(
            name=_require_text(name, "name"),
            email=_require_text(email, "email"),
            message=_require_text(message, "message"),
        )
        msg = self.repo.create(msg)
        _log_event("contact_message_received", message_id=msg.id)
        return msg

    def list(self) -> List[models.ContactMessage]:
        return self.repo.list()

    def delete(self, message_id: uuid.UUID) -> None:
        msg = self.repo.get(message_id)
        if not msg:
            raise NotFound("Resource not found")
        self.repo.delete(msg)
