"""Pydantic request schemas used by the API.

Schemas keep API input shapes stable and provide validation for
controller handlers and tests. Field names are snake_case in Python and
camelCase on the wire (`fullName`, `maxScore`, ...); both spellings are
accepted on input.
"""

from datetime import date, datetime, time, timezone
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SignupIn(CamelModel):
    """Payload for `POST /auth/signup`."""
    full_name: str = ""
    phone_num: Optional[str] = None
    email: str
    password: str


class LoginIn(CamelModel):
    email: str
    password: str


class CompleteProfileIn(CamelModel):
    university: str
    major: str


class ProfileUpdateIn(CamelModel):
    """Partial profile update; omitted fields are left unchanged."""
    full_name: Optional[str] = None
    email: Optional[str] = None
    image: Optional[str] = None


class PasswordChangeIn(CamelModel):
    current_password: str
    new_password: str


class ContactIn(CamelModel):
    name: str
    email: str
    message: str


class VisibilityIn(CamelModel):
    visible: bool


def _parse_date(value: Any) -> Any:
    """Accept `YYYY-MM-DD` (midnight UTC) or an ISO datetime string."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date):
        dt = datetime.combine(value, time.min)
    elif isinstance(value, str):
        try:
            if len(value) == 10:
                dt = datetime.combine(date.fromisoformat(value), time.min)
            else:
                dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            raise ValueError("dates must be YYYY-MM-DD or ISO 8601 datetimes")
    else:
        raise ValueError("dates must be strings")
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


class ChallengeIn(CamelModel):
    """Create/update payload for admin challenge endpoints."""
    title: Optional[str] = None
    description: Optional[str] = None
    week: Optional[int] = None
    challenge_url: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    visible: Optional[bool] = None
    challenge_type: Optional[str] = None
    notebook_url: Optional[str] = None
    max_score: Optional[int] = None
    grading_criteria: Optional[Dict[str, Any]] = None

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def _dates(cls, value):
        return _parse_date(value)


class NotebookSubmissionIn(CamelModel):
    notebook: Any


class GradeIn(CamelModel):
    score: int
    feedback: Optional[str] = None
    execution_time_ms: Optional[int] = None


class FailIn(CamelModel):
    feedback: Optional[str] = None


class QuoteIn(CamelModel):
    text: str
    author: str
    visible: bool = True


class QuoteUpdateIn(CamelModel):
    text: Optional[str] = None
    author: Optional[str] = None
    visible: Optional[bool] = None


class LeaderboardIn(CamelModel):
    title: str


class LeaderboardEntryIn(CamelModel):
    name: str
    points: int = 0


class LeaderboardEntryUpdateIn(CamelModel):
    name: Optional[str] = None
    points: Optional[int] = None


class AdminUserUpdateIn(CamelModel):
    points: Optional[int] = None
    role: Optional[str] = None

