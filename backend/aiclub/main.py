"""FastAPI application entrypoint and HTTP controllers.

This module defines the HTTP endpoints of the AI club backend.
Controllers are intentionally thin: they accept requests, delegate to
services, and turn models into the camelCase JSON the frontend expects.

Endpoint groups:
- /health
- /auth/* (password signup/login, Google OAuth, profile completion)
- /users/* (profile, avatar, password)
- /leaderboards, /challenges/leaderboard
- /resources, /resources/{id}
- /challenges/current, notebook submissions and attempts
- /contact
- /admin/* (resources, challenges, submissions, quotes, leaderboards,
  users, contact messages)
"""

import json
import logging
import os
import time
import uuid
from typing import Optional
from urllib.parse import urlencode

from fastapi import Depends, FastAPI, File, Form, HTTPException, Query, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse, Response
from fastapi.staticfiles import StaticFiles
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session

from . import models, services
from .auth import get_current_user, require_admin
from .config import settings
from .database import check_connection, create_db_and_tables, get_session
from .schemas import (
    AdminUserUpdateIn,
    ChallengeIn,
    CompleteProfileIn,
    ContactIn,
    FailIn,
    GradeIn,
    LeaderboardEntryIn,
    LeaderboardEntryUpdateIn,
    LeaderboardIn,
    LoginIn,
    NotebookSubmissionIn,
    PasswordChangeIn,
    ProfileUpdateIn,
    QuoteIn,
    QuoteUpdateIn,
    SignupIn,
    VisibilityIn,
)
from .utils import rate_limit, uploads
from .utils.google_oauth import GoogleOAuthClient, GoogleOAuthError, InvalidOAuthState, create_oauth_state, verify_oauth_state

app = FastAPI(title="AI Club API")
logger = logging.getLogger("aiclub.api")
if not logger.handlers:
    logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO"))
_rate_limiter = rate_limit.InMemoryRateLimiter()

# Wide-open CORS keeps the local frontend dev server working without extra config.
if settings.ALLOW_DEV_CORS:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

settings.UPLOADS_DIR.mkdir(parents=True, exist_ok=True)
app.mount("/uploads", StaticFiles(directory=settings.UPLOADS_DIR), name="uploads")

create_db_and_tables()

_ERROR_STATUS = (
    (services.InvalidInput, 400),
    (services.AuthenticationFailed, 401),
    (services.NotFound, 404),
    (services.Conflict, 409),
)


@app.exception_handler(services.ServiceError)
async def service_error_handler(request: Request, exc: services.ServiceError):
    status = next((code for cls, code in _ERROR_STATUS if isinstance(exc, cls)), 500)
    return JSONResponse(status_code=status, content={"detail": str(exc)})


@app.exception_handler(IntegrityError)
async def integrity_error_handler(request: Request, exc: IntegrityError):
    """Report constraint violations as client errors instead of 500s."""
    msg = str(exc.orig).lower()
    if "unique" in msg or "duplicate key" in msg:
        if "users.email" in msg or "users_email_key" in msg:
            detail = "User already exists"
        else:
            detail = "resource already exists"
        status = 409
    else:
        detail = "constraint violation"
        status = 400
    logger.warning("integrity_error %s", json.dumps({"path": request.url.path, "status_code": status, "error": msg[:200]}))
    return JSONResponse(status_code=status, content={"detail": detail})


@app.middleware("http")
async def request_context_middleware(request: Request, call_next):
    req_id = request.headers.get("X-Request-ID", uuid.uuid4().hex)
    request.state.request_id = req_id
    started = time.perf_counter()
    fields = {
        "request_id": req_id,
        "path": request.url.path,
        "method": request.method,
        "client": request.client.host if request.client else "unknown",
    }
    response: Response
    try:
        response = await call_next(request)
    except Exception:
        fields["duration_ms"] = round((time.perf_counter() - started) * 1000.0, 2)
        logger.exception("request_failed %s", json.dumps(fields, ensure_ascii=True))
        raise
    response.headers["X-Request-ID"] = req_id
    fields["status_code"] = response.status_code
    fields["duration_ms"] = round((time.perf_counter() - started) * 1000.0, 2)
    logger.info("request_done %s", json.dumps(fields, ensure_ascii=True))
    return response


def _iso(value):
    value = services.ensure_utc(value)
    return value.isoformat() if value else None


def _user_out(user: models.User) -> dict:
    return {"id": str(user.id), "fullName": user.full_name, "email": user.email, "image": user.image, "role": user.role}


def _resource_card(resource: models.Resource) -> dict:
    return {
        "id": resource.id,
        "title": resource.title,
        "provider": resource.provider,
        "coverImage": resource.cover_image,
        "instructor": {"name": resource.instructor_name, "image": resource.instructor_image},
    }


def _resource_admin(resource: models.Resource) -> dict:
    return {
        **_resource_card(resource),
        "notionUrl": resource.notion_url,
        "visible": resource.visible,
        "createdAt": _iso(resource.created_at),
        "updatedAt": _iso(resource.updated_at),
    }


def _quote_out(quote: models.Quote) -> dict:
    return {"id": quote.id, "text": quote.text, "author": quote.author, "visible": quote.visible}


def _challenge_public(challenge: models.Challenge) -> dict:
    return {
        "id": challenge.id,
        "week": challenge.week,
        "title": challenge.title,
        "description": challenge.description,
        "challengeUrl": challenge.challenge_url,
        "challengeType": challenge.challenge_type,
        "notebookUrl": challenge.notebook_url,
        "maxScore": challenge.max_score,
        "startDate": _iso(challenge.start_date),
        "endDate": _iso(challenge.end_date),
    }


def _challenge_admin(challenge: models.Challenge) -> dict:
    return {
        **_challenge_public(challenge),
        "isCurrent": challenge.is_current,
        "visible": challenge.visible,
        "gradingCriteria": challenge.grading_criteria,
        "createdAt": _iso(challenge.created_at),
        "updatedAt": _iso(challenge.updated_at),
    }


def _submission_out(sub: models.ChallengeSubmission, include_notebook: bool = False) -> dict:
    out = {
        "id": str(sub.id),
        "userId": str(sub.user_id),
        "challengeId": sub.challenge_id,
        "score": sub.score,
        "maxScore": sub.max_score,
        "feedback": sub.feedback,
        "status": sub.status,
        "executionTimeMs": sub.execution_time_ms,
        "submittedAt": _iso(sub.submitted_at),
        "gradedAt": _iso(sub.graded_at),
        "updatedAt": _iso(sub.updated_at),
    }
    if include_notebook:
        out["notebook"] = sub.notebook_content
    return out


def _attempt_out(attempt: models.ChallengeAttempt) -> dict:
    return {
        "challengeId": attempt.challenge_id,
        "attemptNumber": attempt.attempt_number,
        "bestScore": attempt.best_score,
        "totalAttempts": attempt.total_attempts,
        "lastAttemptAt": _iso(attempt.last_attempt_at),
    }


def _entry_out(entry: models.LeaderboardEntry) -> dict:
    return {"id": entry.id, "leaderboardId": entry.leaderboard_id, "name": entry.name, "points": entry.points}


async def submitted_form_fields(request: Request) -> dict:
    """Raw text fields of a multipart body, including empty ones."""
    form = await request.form()
    return {k: v for k, v in form.items() if isinstance(v, str)}


def get_google_client() -> GoogleOAuthClient:
    if not settings.google_oauth_enabled:
        raise HTTPException(status_code=503, detail="Google login is not configured")
    return GoogleOAuthClient.from_settings()


@app.get("/health")
def health():
    """Health check including a database round-trip."""
    if not check_connection():
        return JSONResponse(status_code=503, content={"status": "degraded", "database": "unhealthy"})
    return {"status": "ok", "database": "healthy"}


@app.post("/auth/signup")
def signup(payload: SignupIn, db: Session = Depends(get_session)):
    """Create a password account and return `{token, user}`."""
    user, token = services.AuthService(db).signup(payload.full_name, payload.phone_num, payload.email, payload.password)
    return {"token": token, "user": _user_out(user)}


@app.post("/auth/login")
def login(payload: LoginIn, request: Request, db: Session = Depends(get_session)):
    rate_limit.enforce(_rate_limiter, request, "login", "LOGIN_RATE_LIMIT_PER_MIN", 20)
    user, token = services.AuthService(db).login(payload.email, payload.password)
    return {"token": token, "user": _user_out(user)}


@app.get("/auth/google")
def google_login(google: GoogleOAuthClient = Depends(get_google_client)):
    """Redirect the browser to Google's consent screen."""
    return RedirectResponse(url=google.authorize_url(create_oauth_state()))


@app.get("/auth/google/callback")
def google_callback(
    code: Optional[str] = None,
    state: Optional[str] = None,
    db: Session = Depends(get_session),
    google: GoogleOAuthClient = Depends(get_google_client),
):
    """Finish Google sign-in and hand the token to the frontend.

    Redirects to `{FRONTEND_URL}/auth/callback` with the token and the
    URL-encoded user JSON; accounts without university/major also get
    `needs_profile_completion=true`.
    """
    try:
        verify_oauth_state(state)
    except InvalidOAuthState as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    if not code:
        raise HTTPException(status_code=400, detail="missing authorization code")
    try:
        info = google.fetch_user_info(google.exchange_code(code))
    except GoogleOAuthError as exc:
        raise HTTPException(status_code=502, detail=str(exc))
    user, token, needs_completion = services.AuthService(db).sign_in_with_google(info.sub, info.email, info.name, info.picture)
    params = {"token": token, "user": json.dumps(_user_out(user))}
    if needs_completion:
        params["needs_profile_completion"] = "true"
    return RedirectResponse(url=f"{settings.FRONTEND_URL}/auth/callback?{urlencode(params)}")


@app.post("/auth/complete-profile")
def complete_profile(payload: CompleteProfileIn, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    services.AuthService(db).complete_profile(user, payload.university, payload.major)
    return {"success": True}


@app.get("/users/profile")
def get_profile(db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    stats = services.ProfileService(db).stats_for(user)
    return {
        "rank": user.rank,
        "name": user.full_name,
        "points": user.points,
        "challengePoints": user.challenge_points,
        "image": user.image,
        "email": user.email,
        "university": user.university,
        "major": user.major,
        "stats": {
            "bestSubject": stats.best_subject,
            "improveable": stats.improveable,
            "quickestHunter": stats.quickest_hunter,
            "challengesTaken": stats.challenges_taken,
        },
    }


@app.put("/users/profile")
def update_profile(payload: ProfileUpdateIn, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    updated = services.ProfileService(db).update(user, payload.model_dump(exclude_unset=True))
    return _user_out(updated)


@app.post("/users/avatar")
def upload_avatar(
    avatar: Optional[UploadFile] = File(default=None),
    db: Session = Depends(get_session),
    user: models.User = Depends(get_current_user),
):
    """Store an avatar image and point the profile at it."""
    if avatar is None or not avatar.filename:
        raise HTTPException(status_code=400, detail="No avatar file provided")
    url = uploads.save_image(avatar, "avatars")
    services.ProfileService(db).set_avatar(user, url)
    return {"imageUrl": url}


@app.put("/users/password")
def change_password(payload: PasswordChangeIn, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    services.AuthService(db).change_password(user, payload.current_password, payload.new_password)
    return {"success": True}


@app.get("/leaderboards")
def list_leaderboards(db: Session = Depends(get_session)):
    return services.LeaderboardService(db).boards()


@app.get("/challenges/leaderboard")
def challenge_leaderboard(db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    """Top ten rows of the challenge leaderboard view."""
    rows = services.LeaderboardService(db).challenge_standings()
    return [
        {
            "id": str(row["id"]),
            "name": row["name"],
            "image": row["image"],
            "points": row["total_points"],
            "totalScore": row["total_score"],
            "challengesCompleted": row["challenges_completed"],
        }
        for row in rows
    ]


@app.get("/resources")
def list_resources(db: Session = Depends(get_session)):
    return [_resource_card(r) for r in services.ResourceService(db).list()]


@app.get("/resources/{resource_id}")
def get_resource(resource_id: int, db: Session = Depends(get_session)):
    """A visible resource plus one random visible quote."""
    resource, quote = services.ResourceService(db).detail(resource_id)
    return {
        "id": resource.id,
        "title": resource.title,
        "provider": resource.provider,
        "notionUrl": resource.notion_url,
        "instructor": {"name": resource.instructor_name, "image": resource.instructor_image},
        "quote": {"text": quote.text, "author": quote.author} if quote else None,
    }


@app.get("/challenges/current")
def current_challenge(db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    return _challenge_public(services.ChallengeService(db).current())


@app.post("/challenges/{challenge_id}/submissions", status_code=201)
def submit_notebook(
    challenge_id: int,
    payload: NotebookSubmissionIn,
    db: Session = Depends(get_session),
    user: models.User = Depends(get_current_user),
):
    """Submit a notebook for a notebook-type challenge."""
    sub = services.SubmissionService(db).submit(user, challenge_id, payload.notebook)
    return _submission_out(sub)


@app.get("/challenges/{challenge_id}/submissions")
def list_my_submissions(challenge_id: int, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    return [_submission_out(s) for s in services.SubmissionService(db).list_own(user, challenge_id)]


@app.get("/challenges/{challenge_id}/attempt")
def my_attempt(challenge_id: int, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    return _attempt_out(services.SubmissionService(db).attempt_for(user, challenge_id))


@app.get("/submissions/{submission_id}")
def get_submission(submission_id: uuid.UUID, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    sub = services.SubmissionService(db).get_for_viewer(user, submission_id)
    return _submission_out(sub, include_notebook=True)


@app.post("/contact")
def contact(payload: ContactIn, request: Request, db: Session = Depends(get_session)):
    rate_limit.enforce(_rate_limiter, request, "contact", "CONTACT_RATE_LIMIT_PER_MIN", 5)
    services.ContactService(db).create(payload.name, payload.email, payload.message)
    return {"success": True, "message": "Message sent successfully"}


# --- admin: resources -------------------------------------------------------

@app.get("/admin/resources")
def admin_list_resources(
    include_hidden: bool = Query(default=True, alias="includeHidden"),
    db: Session = Depends(get_session),
    admin: models.User = Depends(require_admin),
):
    return {"items": [_resource_admin(r) for r in services.ResourceService(db).list(include_hidden=include_hidden)]}


@app.get("/admin/resources/{resource_id}")
def admin_get_resource(resource_id: int, db: Session = Depends(get_session), admin: models.User = Depends(require_admin)):
    return {"item": _resource_admin(services.ResourceService(db).get(resource_id, include_hidden=True))}


@app.post("/admin/resources")
def admin_create_resource(
    title: str = Form(...),
    provider: str = Form(...),
    notion_url: Optional[str] = Form(default=None, alias="notionUrl"),
    instructor_name: Optional[str] = Form(default=None, alias="instructorName"),
    visible: Optional[bool] = Form(default=None),
    quote_text: Optional[str] = Form(default=None, alias="quoteText"),
    quote_author: Optional[str] = Form(default=None, alias="quoteAuthor"),
    cover_image: Optional[UploadFile] = File(default=None, alias="coverImage"),
    instructor_image: Optional[UploadFile] = File(default=None, alias="instructorImage"),
    db: Session = Depends(get_session),
    admin: models.User = Depends(require_admin),
):
    """Create a resource from a multipart form.

    `quoteText`/`quoteAuthor` are accepted for older admin clients and
    ignored; quotes are managed under /admin/quotes.
    """
    fields = {
        "title": title,
        "provider": provider,
        "notion_url": notion_url,
        "instructor_name": instructor_name,
        "visible": visible,
    }
    if cover_image is not None and cover_image.filename:
        fields["cover_image"] = uploads.save_image(cover_image, "resources/covers")
    if instructor_image is not None and instructor_image.filename:
        fields["instructor_image"] = uploads.save_image(instructor_image, "resources/instructors")
    return {"item": _resource_admin(services.ResourceService(db).create(fields))}


@app.put("/admin/resources/{resource_id}")
def admin_update_resource(
    resource_id: int,
    title: Optional[str] = Form(default=None),
    provider: Optional[str] = Form(default=None),
    instructor_name: Optional[str] = Form(default=None, alias="instructorName"),
    visible: Optional[bool] = Form(default=None),
    cover_image: Optional[UploadFile] = File(default=None, alias="coverImage"),
    instructor_image: Optional[UploadFile] = File(default=None, alias="instructorImage"),
    raw_fields: dict = Depends(submitted_form_fields),
    db: Session = Depends(get_session),
    admin: models.User = Depends(require_admin),
):
    """Partially update a resource; an empty `notionUrl` clears the link."""
    svc = services.ResourceService(db)
    svc.get(resource_id, include_hidden=True)
    changes = {"title": title, "provider": provider, "instructor_name": instructor_name, "visible": visible}
    if "notionUrl" in raw_fields:
        changes["notion_url"] = raw_fields["notionUrl"].strip()
    if cover_image is not None and cover_image.filename:
        changes["cover_image"] = uploads.save_image(cover_image, "resources/covers")
    if instructor_image is not None and instructor_image.filename:
        changes["instructor_image"] = uploads.save_image(instructor_image, "resources/instructors")
    return {"item": _resource_admin(svc.update(resource_id, changes))}


@app.patch("/admin/resources/{resource_id}/visibility")
def admin_resource_visibility(resource_id: int, payload: VisibilityIn, db: Session = Depends(get_session), admin: models.User = Depends(require_admin)):
    return {"item": _resource_admin(services.ResourceService(db).set_visibility(resource_id, payload.visible))}


@app.delete("/admin/resources/{resource_id}")
def admin_delete_resource(resource_id: int, db: Session = Depends(get_session), admin: models.User = Depends(require_admin)):
    services.ResourceService(db).delete(resource_id)
    return {"success": True}


# --- admin: challenges ------------------------------------------------------

@app.get("/admin/challenges")
def admin_list_challenges(
    include_hidden: bool = Query(default=True, alias="includeHidden"),
    db: Session = Depends(get_session),
    admin: models.User = Depends(require_admin),
):
    return {"items": [_challenge_admin(c) for c in services.ChallengeService(db).list(include_hidden=include_hidden)]}


@app.post("/admin/challenges")
def admin_create_challenge(payload: ChallengeIn, db: Session = Depends(get_session), admin: models.User = Depends(require_admin)):
    challenge = services.ChallengeService(db).create(payload.model_dump(exclude_unset=True))
    return {"item": _challenge_admin(challenge)}


@app.get("/admin/challenges/{challenge_id}")
def admin_get_challenge(challenge_id: int, db: Session = Depends(get_session), admin: models.User = Depends(require_admin)):
    return {"item": _challenge_admin(services.ChallengeService(db).get(challenge_id))}


@app.put("/admin/challenges/{challenge_id}")
def admin_update_challenge(challenge_id: int, payload: ChallengeIn, db: Session = Depends(get_session), admin: models.User = Depends(require_admin)):
    challenge = services.ChallengeService(db).update(challenge_id, payload.model_dump(exclude_unset=True))
    return {"item": _challenge_admin(challenge)}


@app.patch("/admin/challenges/{challenge_id}/visibility")
def admin_challenge_visibility(challenge_id: int, payload: VisibilityIn, db: Session = Depends(get_session), admin: models.User = Depends(require_admin)):
    return {"item": _challenge_admin(services.ChallengeService(db).set_visibility(challenge_id, payload.visible))}


@app.post("/admin/challenges/{challenge_id}/current")
def admin_make_current(challenge_id: int, db: Session = Depends(get_session), admin: models.User = Depends(require_admin)):
    return {"item": _challenge_admin(services.ChallengeService(db).make_current(challenge_id))}


@app.delete("/admin/challenges/{challenge_id}")
def admin_delete_challenge(challenge_id: int, db: Session = Depends(get_session), admin: models.User = Depends(require_admin)):
    services.ChallengeService(db).delete(challenge_id)
    return {"success": True}


# --- admin: submissions -----------------------------------------------------

@app.get("/admin/submissions")
def admin_list_submissions(
    status: Optional[str] = None,
    challenge_id: Optional[int] = Query(default=None, alias="challengeId"),
    db: Session = Depends(get_session),
    admin: models.User = Depends(require_admin),
):
    subs = services.SubmissionService(db).list_all(status=status, challenge_id=challenge_id)
    return {"items": [_submission_out(s) for s in subs]}


@app.post("/admin/submissions/{submission_id}/start")
def admin_start_grading(submission_id: uuid.UUID, db: Session = Depends(get_session), admin: models.User = Depends(require_admin)):
    return {"item": _submission_out(services.SubmissionService(db).start_grading(submission_id))}


@app.post("/admin/submissions/{submission_id}/grade")
def admin_grade_submission(submission_id: uuid.UUID, payload: GradeIn, db: Session = Depends(get_session), admin: models.User = Depends(require_admin)):
    sub = services.SubmissionService(db).record_grade(submission_id, payload.score, payload.feedback, payload.execution_time_ms)
    return {"item": _submission_out(sub)}


@app.post("/admin/submissions/{submission_id}/fail")
def admin_fail_submission(submission_id: uuid.UUID, payload: FailIn, db: Session = Depends(get_session), admin: models.User = Depends(require_admin)):
    return {"item": _submission_out(services.SubmissionService(db).record_failure(submission_id, payload.feedback))}


# --- admin: quotes ----------------------------------------------------------

@app.get("/admin/quotes")
def admin_list_quotes(db: Session = Depends(get_session), admin: models.User = Depends(require_admin)):
    return {"items": [_quote_out(q) for q in services.QuoteService(db).list()]}


@app.post("/admin/quotes")
def admin_create_quote(payload: QuoteIn, db: Session = Depends(get_session), admin: models.User = Depends(require_admin)):
    return {"item": _quote_out(services.QuoteService(db).create(payload.text, payload.author, payload.visible))}


@app.put("/admin/quotes/{quote_id}")
def admin_update_quote(quote_id: int, payload: QuoteUpdateIn, db: Session = Depends(get_session), admin: models.User = Depends(require_admin)):
    return {"item": _quote_out(services.QuoteService(db).update(quote_id, payload.model_dump(exclude_unset=True)))}


@app.patch("/admin/quotes/{quote_id}/visibility")
def admin_quote_visibility(quote_id: int, payload: VisibilityIn, db: Session = Depends(get_session), admin: models.User = Depends(require_admin)):
    return {"item": _quote_out(services.QuoteService(db).set_visibility(quote_id, payload.visible))}


@app.delete("/admin/quotes/{quote_id}")
def admin_delete_quote(quote_id: int, db: Session = Depends(get_session), admin: models.User = Depends(require_admin)):
    services.QuoteService(db).delete(quote_id)
    return {"success": True}


# --- admin: leaderboards ----------------------------------------------------

@app.post("/admin/leaderboards")
def admin_create_leaderboard(payload: LeaderboardIn, db: Session = Depends(get_session), admin: models.User = Depends(require_admin)):
    board = services.LeaderboardService(db).create_board(payload.title)
    return {"item": {"id": board.id, "title": board.title, "entries": []}}


@app.delete("/admin/leaderboards/{board_id}")
def admin_delete_leaderboard(board_id: int, db: Session = Depends(get_session), admin: models.User = Depends(require_admin)):
    services.LeaderboardService(db).delete_board(board_id)
    return {"success": True}


@app.post("/admin/leaderboards/{board_id}/entries")
def admin_add_entry(board_id: int, payload: LeaderboardEntryIn, db: Session = Depends(get_session), admin: models.User = Depends(require_admin)):
    return {"item": _entry_out(services.LeaderboardService(db).add_entry(board_id, payload.name, payload.points))}


@app.put("/admin/leaderboards/{board_id}/entries/{entry_id}")
def admin_update_entry(
    board_id: int,
    entry_id: int,
    payload: LeaderboardEntryUpdateIn,
    db: Session = Depends(get_session),
    admin: models.User = Depends(require_admin),
):
    entry = services.LeaderboardService(db).update_entry(board_id, entry_id, payload.model_dump(exclude_unset=True))
    return {"item": _entry_out(entry)}


@app.delete("/admin/leaderboards/{board_id}/entries/{entry_id}")
def admin_delete_entry(board_id: int, entry_id: int, db: Session = Depends(get_session), admin: models.User = Depends(require_admin)):
    services.LeaderboardService(db).delete_entry(board_id, entry_id)
    return {"success": True}


# --- admin: users and contact messages -------------------------------------

@app.patch("/admin/users/{user_id}")
def admin_update_user(user_id: uuid.UUID, payload: AdminUserUpdateIn, db: Session = Depends(get_session), admin: models.User = Depends(require_admin)):
    user = services.AdminUserService(db).update(user_id, points=payload.points, role=payload.role)
    return {"item": {**_user_out(user), "points": user.points, "rank": user.rank}}


@app.delete("/admin/users/{user_id}")
def admin_delete_user(user_id: uuid.UUID, db: Session = Depends(get_session), admin: models.User = Depends(require_admin)):
    services.AdminUserService(db).delete(user_id)
    return {"success": True}


@app.get("/admin/contact-messages")
def admin_list_contact_messages(db: Session = Depends(get_session), admin: models.User = Depends(require_admin)):
    return {
        "items": [
            {"id": str(m.id), "name": m.name, "email": m.email, "message": m.message, "createdAt": _iso(m.created_at)}
            for m in services.ContactService(db).list()
        ]
    }


@app.delete("/admin/contact-messages/{message_id}")
def admin_delete_contact_message(message_id: uuid.UUID, db: Session = Depends(get_session), admin: models.User = Depends(require_admin)):
    services.ContactService(db).delete(message_id)
    return {"success": True}
