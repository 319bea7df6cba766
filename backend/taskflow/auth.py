import logging
import secrets
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional, Tuple

import bcrypt
from fastapi import Depends, Request, Response
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from . import config, crud
from .database import get_db
from .models import User
from .schemas import ActionResult, CurrentUser

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid email or password"
USER_EXISTS = "User already exists"


class LoginRequired(Exception):
    """Raised by the route guard when the request carries no valid session."""


def _password_bytes(password: str) -> bytes:
    # bcrypt only looks at the first 72 bytes
    return password.encode("utf-8")[:72]


def hash_password(password: str) -> str:
    salt = bcrypt.gensalt(rounds=config.BCRYPT_ROUNDS)
    return bcrypt.hashpw(_password_bytes(password), salt).decode("utf-8")


def verify_password(password: str, hashed: str) -> bool:
    try:
        return bcrypt.checkpw(_password_bytes(password), hashed.encode("utf-8"))
    except ValueError:
        # malformed stored hash
        return False


_dummy_hash = None


def _check_unknown_user_password(password: str) -> None:
    """Run bcrypt against a throwaway hash; an unknown email costs as much as a wrong password."""
    global _dummy_hash
    if _dummy_hash is None:
        _dummy_hash = hash_password(generate_session_token())
    verify_password(password, _dummy_hash)


def generate_session_token() -> str:
    """32 bytes from the OS CSPRNG, hex encoded (64 chars)."""
    return secrets.token_hex(32)


def _start_session(db: Session, user: User) -> str:
    token = generate_session_token()
    expires_at = crud.utcnow() + timedelta(hours=config.SESSION_TTL_HOURS)
    crud.create_session(db, user.id, token, expires_at)
    return token


def signup(db: Session, email: str, password: str, name: str) -> Tuple[ActionResult, Optional[str]]:
    """
    Register a new user and open a session for them.
    Returns the result and, on success, the new session token.
    """
    email = (email or "").strip()
    name = (name or "").strip()
    password = password or ""

    if not email:
        return ActionResult(error="Email is required"), None
    if not password:
        return ActionResult(error="Password is required"), None
    if not name:
        return ActionResult(error="Name is required"), None

    try:
        if crud.get_user_by_email(db, email):
            return ActionResult(error=USER_EXISTS), None
        user = crud.create_user(db, email, name, hash_password(password))
        token = _start_session(db, user)
    except IntegrityError:
        # lost a race with a concurrent signup for the same email
        db.rollback()
        return ActionResult(error=USER_EXISTS), None
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Signup failed")
        return ActionResult(error="Failed to create account"), None

    logger.info(f"User {user.id} signed up")
    return ActionResult(success=True, message="Account created", user=CurrentUser.model_validate(user)), token


def login(db: Session, email: str, password: str) -> Tuple[ActionResult, Optional[str]]:
    """
    Verify credentials and open a session.
    Unknown email and wrong password produce the same error.
    """
    email = (email or "").strip()
    password = password or ""

    if not email or not password:
        return ActionResult(error="Email and password are required"), None

    try:
        user = crud.get_user_by_email(db, email)
        if not user:
            _check_unknown_user_password(password)
            return ActionResult(error=INVALID_CREDENTIALS), None
        if not verify_password(password, user.password):
            return ActionResult(error=INVALID_CREDENTIALS), None
        crud.purge_expired_sessions(db)
        token = _start_session(db, user)
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Login failed")
        return ActionResult(error="Failed to log in"), None

    logger.info(f"User {user.id} logged in")
    return ActionResult(success=True, message="Logged in", user=CurrentUser.model_validate(user)), token


def logout(db: Session, token: Optional[str]) -> None:
    if not token:
        return
    try:
        if crud.delete_session(db, token):
            logger.info("Session closed")
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Failed to delete session")


def get_current_user(db: Session, token: Optional[str]) -> Optional[CurrentUser]:
    """Resolve a session token to its user. Read-only."""
    if not token:
        return None
    try:
        session = crud.get_session_by_token(db, token)
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Session lookup failed")
        return None
    if not session:
        return None
    if session.expires_at <= crud.utcnow():
        return None
    return CurrentUser.model_validate(session.user)


def set_session_cookie(response: Response, token: str) -> None:
    # no max_age: the cookie lives for the browser session
    response.set_cookie(config.SESSION_COOKIE_NAME, token, httponly=True, path="/")


def clear_session_cookie(response: Response) -> None:
    response.set_cookie(config.SESSION_COOKIE_NAME, "", max_age=0, httponly=True, path="/")


@dataclass
class RequestContext:
    """Per-request state handed explicitly to every operation."""
    db: Session
    user: Optional[CurrentUser]
    token: Optional[str]


def get_request_context(request: Request, db: Session = Depends(get_db)) -> RequestContext:
    """
    FastAPI dependency resolving the session cookie once per request
    Usage: ctx = Depends(get_request_context)
    """
    token = request.cookies.get(config.SESSION_COOKIE_NAME)
    return RequestContext(db=db, user=get_current_user(db, token), token=token)


def guard(ctx: RequestContext = Depends(get_request_context)) -> RequestContext:
    """
    FastAPI dependency for protected reads; redirects to the login page
    when there is no authenticated user.
    """
    if ctx.user is None:
        raise LoginRequired()
    return ctx
