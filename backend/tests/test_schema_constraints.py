import time
import uuid

import pytest
from sqlalchemy import func
from sqlalchemy import select as sa_select
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from aiclub import models
from aiclub.database import DEFAULT_QUOTES, build_engine, create_db_and_tables, drop_db_and_tables


@pytest.fixture
def eng(tmp_path):
    eng = build_engine(f"sqlite:///{tmp_path / 'schema.db'}")
    create_db_and_tables(eng)
    yield eng
    drop_db_and_tables(eng)
    eng.dispose()


def _user(session, email="a@example.com", points=0):
    user = models.User(email=email, full_name=email.split("@")[0], points=points)
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


def _challenge(session, title="Week 1"):
    ch = models.Challenge(title=title, description="d", challenge_type="notebook")
    session.add(ch)
    session.commit()
    session.refresh(ch)
    return ch


def _submission(session, user, challenge):
    sub = models.ChallengeSubmission(user_id=user.id, challenge_id=challenge.id, notebook_content={"cells": []}, max_score=100)
    session.add(sub)
    session.commit()
    session.refresh(sub)
    return sub


def _attempt(session, user, challenge, best_score=0):
    attempt = models.ChallengeAttempt(user_id=user.id, challenge_id=challenge.id, attempt_number=1, total_attempts=1, best_score=best_score)
    session.add(attempt)
    session.commit()
    session.refresh(attempt)
    return attempt


def _standing(session, user_id):
    view = models.challenge_leaderboard
    return session.connection().execute(sa_select(view).where(view.c.id == user_id)).mappings().first()


def test_duplicate_email_rejected(eng):
    with Session(eng) as session:
        _user(session, "dup@example.com")
        session.add(models.User(email="dup@example.com"))
        with pytest.raises(IntegrityError):
            session.commit()


def test_submission_requires_existing_user_and_challenge(eng):
    with Session(eng) as session:
        user = _user(session)
        challenge = _challenge(session)
        session.add(models.ChallengeSubmission(user_id=uuid.uuid4(), challenge_id=challenge.id, notebook_content={}, max_score=100))
        with pytest.raises(IntegrityError):
            session.commit()
        session.rollback()
        session.add(models.ChallengeSubmission(user_id=user.id, challenge_id=99999, notebook_content={}, max_score=100))
        with pytest.raises(IntegrityError):
            session.commit()


def test_check_constraints(eng):
    with Session(eng) as session:
        session.add(models.User(email="x@example.com", role="superuser"))
        with pytest.raises(IntegrityError):
            session.commit()
        session.rollback()
        session.add(models.Challenge(title="t", description="d", challenge_type="quiz"))
        with pytest.raises(IntegrityError):
            session.commit()


def test_one_attempt_row_per_user_and_challenge(eng):
    with Session(eng) as session:
        user = _user(session)
        challenge = _challenge(session)
        _attempt(session, user, challenge)
        session.add(models.ChallengeAttempt(user_id=user.id, challenge_id=challenge.id, attempt_number=2))
        with pytest.raises(IntegrityError):
            session.commit()


def test_deleting_user_cascades(eng):
    with Session(eng) as session:
        user = _user(session, points=5)
        challenge = _challenge(session)
        session.add(models.UserStats(user_id=user.id))
        session.commit()
        _submission(session, user, challenge)
        _attempt(session, user, challenge, best_score=40)
        user_id = user.id
        assert _standing(session, user_id) is not None
        session.delete(user)
        session.commit()

    with Session(eng) as session:
        s, a = models.ChallengeSubmission, models.ChallengeAttempt
        assert session.exec(select(s).where(s.user_id == user_id)).all() == []
        assert session.exec(select(a).where(a.user_id == user_id)).all() == []
        assert session.exec(select(models.UserStats).where(models.UserStats.user_id == user_id)).first() is None
        assert _standing(session, user_id) is None


def test_deleting_challenge_cascades_submissions(eng):
    with Session(eng) as session:
        user = _user(session)
        challenge = _challenge(session)
        _submission(session, user, challenge)
        session.delete(challenge)
        session.commit()
        assert session.exec(select(func.count()).select_from(models.ChallengeSubmission)).one() == 0


def test_leaderboard_view_totals(eng):
    with Session(eng) as session:
        user = _user(session, "lead@example.com", points=10)
        idle = _user(session, "idle@example.com", points=3)
        c1, c2 = _challenge(session, "one"), _challenge(session, "two")
        _attempt(session, user, c1, best_score=40)
        _attempt(session, user, c2, best_score=25)

        row = _standing(session, user.id)
        assert row["total_score"] == 65
        assert row["challenges_completed"] == 2
        assert row["total_points"] == 75
        assert row["name"] == "lead"

        idle_row = _standing(session, idle.id)
        assert idle_row["total_score"] == 0
        assert idle_row["challenges_completed"] == 0
        assert idle_row["total_points"] == 3


def test_updated_at_advances_on_update(eng):
    with Session(eng) as session:
        user = _user(session)
        challenge = _challenge(session)
        sub = _submission(session, user, challenge)
        attempt = _attempt(session, user, challenge)
        sub_id, attempt_id = sub.id, attempt.id
        sub_before, attempt_before = sub.updated_at, attempt.updated_at

        time.sleep(0.05)
        sub.status = "grading"
        attempt.total_attempts = 2
        session.add(sub)
        session.add(attempt)
        session.commit()

    with Session(eng) as session:
        assert session.get(models.ChallengeSubmission, sub_id).updated_at > sub_before.replace(tzinfo=None)
        assert session.get(models.ChallengeAttempt, attempt_id).updated_at > attempt_before.replace(tzinfo=None)


def test_default_quotes_seeded_once(eng):
    create_db_and_tables(eng)
    with Session(eng) as session:
        quotes = session.exec(select(models.Quote)).all()
        assert len(quotes) == len(DEFAULT_QUOTES)
        assert sum(1 for q in quotes if not q.visible) == 1
