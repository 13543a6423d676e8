"""
Authentication blueprint:
- POST /auth/register
- POST /auth/login
- POST /auth/refresh
- POST /auth/logout
- POST /auth/forgot-password
- POST /auth/reset-password/<token>

Session model:
- A short-lived access token (JWT, JWT_SECRET) is returned in the body and sent
  back by clients as a Bearer header.
- A refresh token (JWT, JWT_REFRESH_SECRET) travels only in the httpOnly `rt`
  cookie and is stored on the user row. Exactly one refresh token per user is
  honored; every login and every refresh overwrites it.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from functools import lru_cache

from flask import Blueprint, request, jsonify, current_app, after_this_request

from devdocs.models import storage
from devdocs.models.user import User
from devdocs.models.schemas.user import (
    UserCreateSchema,
    UserLoginSchema,
    UserOutSchema,
    ForgotPasswordSchema,
    ResetPasswordSchema,
)
from devdocs.api.errors import Conflict, InvalidCredentials, Unauthenticated, BadRequest, TooManyRequests
from devdocs.utils.email_templates import reset_password_email, password_changed_email
from devdocs.utils.mailer import MailError
from devdocs.utils.security import (
    hash_password,
    verify_password,
    sign_access,
    sign_refresh,
    verify_refresh,
    peek_user_id,
    generate_reset_token,
    digest_reset_token,
    TokenError,
)

logger = logging.getLogger(__name__)

bp = Blueprint("auth", __name__)

user_create_schema = UserCreateSchema()
user_login_schema = UserLoginSchema()
user_out_schema = UserOutSchema()
forgot_password_schema = ForgotPasswordSchema()
reset_password_schema = ResetPasswordSchema()


# -- refresh cookie -----------------------------------------------------------

def _cookie_options() -> dict:
    cfg = current_app.config
    return {
        "httponly": True,
        "secure": cfg["REFRESH_COOKIE_SECURE"],
        "samesite": cfg["REFRESH_COOKIE_SAMESITE"],
        "path": "/",
        "domain": cfg["COOKIE_DOMAIN"],
    }


def set_refresh_cookie(response, token: str):
    max_age = int(current_app.config["REFRESH_TOKEN_EXPIRES"].total_seconds())
    response.set_cookie(current_app.config["REFRESH_COOKIE_NAME"], token, max_age=max_age, **_cookie_options())
    return response


def clear_refresh_cookie(response):
    response.delete_cookie(current_app.config["REFRESH_COOKIE_NAME"], **_cookie_options())
    return response


def _clear_cookie_on_response():
    """Clear the cookie on whatever response ends up being sent, error responses included."""
    @after_this_request
    def _clear(response):
        return clear_refresh_cookie(response)


# -- helpers ------------------------------------------------------------------

def _enforce_auth_rate_limit() -> None:
    """One budget per client IP across the credential endpoints."""
    cfg = current_app.config
    limiter = current_app.extensions["rate_limiter"]
    ip = request.remote_addr or "unknown"
    if not limiter.allow(f"auth:ip:{ip}", limit=cfg["AUTH_RATE_LIMIT"], per_seconds=cfg["AUTH_RATE_WINDOW_SECONDS"]):
        logger.warning("auth rate limit hit for %s", ip)
        raise TooManyRequests()


@lru_cache(maxsize=1)
def _dummy_hash() -> str:
    return hash_password("not-a-real-password")


def _utc(dt: datetime) -> datetime:
    # SQLite hands timezone-aware columns back naive
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)


def _issue_session(user: User, status: int, message: str):
    """Sign a fresh token pair, overwrite the stored refresh token, set the cookie."""
    access = sign_access(user.id)
    refresh = sign_refresh(user.id)

    # Overwrite, never append: any earlier refresh token for this user stops working
    user.refresh_token = refresh
    storage.new(user)
    storage.save()

    response = jsonify(
        {
            "message": message,
            "token": access,
            "user": user_out_schema.dump(user),
        }
    )
    set_refresh_cookie(response, refresh)
    return response, status


# -- routes -------------------------------------------------------------------

@bp.post("/register")
def register():
    """
    Register a new user and start a session.
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      - in: body
        name: body
        schema:
          type: object
          required: [username, email, password]
          properties:
            username: { type: string }
            email: { type: string }
            password: { type: string, minLength: 6 }
    responses:
      201:
        description: Created; body has the access token, refresh token set as `rt` cookie
      409:
        description: Email or username already registered
      422:
        description: Validation error
      429:
        description: Too many attempts from this address
    """
    _enforce_auth_rate_limit()
    payload = request.get_json(silent=True) or {}
    data = user_create_schema.load(payload)

    session = storage.get_session()
    if session.query(User).filter(User.email == data["email"]).first():
        raise Conflict("User already exists")
    if session.query(User).filter(User.username == data["username"]).first():
        raise Conflict("User already exists")

    user = User(
        username=data["username"],
        email=data["email"],
        password_hash=hash_password(data["password"]),
    )
    storage.new(user)
    storage.save()
    logger.info("registered user %s", user.id)

    return _issue_session(user, 201, "Account created")


@bp.post("/login")
def login():
    """
    Login with email or username; returns an access token and sets the refresh cookie
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           required: [identifier, password]
           properties:
             identifier: { type: string, description: "email or username (alias: email)" }
             password: { type: string }
    responses:
      200:
        description: OK
      401:
        description: Invalid credentials
      422:
        description: Validation error
      429:
        description: Too many attempts from this address
    """
    _enforce_auth_rate_limit()
    payload = request.get_json(silent=True) or {}
    data = user_login_schema.load(payload)

    user = storage.find_user_by_login(data["identifier"])
    if user is None:
        # Spend the same hashing time as a real comparison
        verify_password(data["password"], _dummy_hash())
        raise InvalidCredentials()
    if not verify_password(data["password"], user.password_hash):
        raise InvalidCredentials()

    return _issue_session(user, 200, "Login successful")


@bp.post("/refresh")
def refresh():
    """
    Exchange the `rt` cookie for a new access token; the refresh token is rotated
    ---
    tags:
      - Auth
    responses:
      200:
        description: OK; body has the new access token, `rt` cookie replaced
      401:
        description: Missing, invalid, expired or already-rotated refresh token
    """
    token = request.cookies.get(current_app.config["REFRESH_COOKIE_NAME"])
    if not token:
        raise Unauthenticated("No refresh token")

    try:
        claims = verify_refresh(token)
    except TokenError as e:
        logger.info("refresh rejected: %s", e)
        _clear_cookie_on_response()
        raise Unauthenticated("Invalid refresh token")

    user_id = claims["id"]
    new_refresh = sign_refresh(user_id)
    # Compare-and-set against the stored value; a token that was already rotated
    # away (replayed or stolen) matches nothing and is refused outright.
    if not storage.swap_refresh_token(user_id, token, new_refresh):
        logger.warning("refresh token mismatch for user %s", user_id)
        _clear_cookie_on_response()
        raise Unauthenticated("Refresh token mismatch")

    response = jsonify({"token": sign_access(user_id)})
    set_refresh_cookie(response, new_refresh)
    return response, 200


@bp.post("/logout")
def logout():
    """
    Logout: revoke the stored refresh token (best effort) and clear the cookie
    ---
    tags:
      - Auth
    responses:
      200:
        description: Always OK, with or without a session
    """
    token = request.cookies.get(current_app.config["REFRESH_COOKIE_NAME"])
    if token:
        user_id = peek_user_id(token)
        if user_id:
            try:
                storage.set_refresh_token(user_id, None)
            except Exception:
                # Logout must still succeed for the client
                logger.exception("could not revoke refresh token for user %s", user_id)

    response = jsonify({"ok": True})
    clear_refresh_cookie(response)
    return response, 200


@bp.post("/forgot-password")
def forgot_password():
    """
    Email a password reset link
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      - in: body
        name: body
        schema:
          type: object
          required: [email]
          properties:
            email: { type: string }
    responses:
      200:
        description: Same answer whether or not the email is registered
      422:
        description: Validation error
      429:
        description: Too many attempts from this address
    """
    _enforce_auth_rate_limit()
    payload = request.get_json(silent=True) or {}
    data = forgot_password_schema.load(payload)
    cfg = current_app.config

    body = {"message": "If that email is registered, a reset link has been sent"}

    session = storage.get_session()
    user = session.query(User).filter(User.email == data["email"]).first()
    if user is None:
        return jsonify(body), 200

    raw, digest = generate_reset_token()
    user.reset_password_token = digest
    user.reset_password_expires = datetime.now(timezone.utc) + cfg["RESET_TOKEN_EXPIRES"]
    user.save()

    reset_url = f"{cfg['CLIENT_URL']}/reset-password/{raw}"
    email = reset_password_email(
        app_name=cfg["APP_NAME"],
        company=cfg["COMPANY_NAME"],
        reset_url=reset_url,
        support_url=cfg["SUPPORT_URL"],
        username=user.username,
        expiry_minutes=int(cfg["RESET_TOKEN_EXPIRES"].total_seconds() // 60),
    )
    try:
        current_app.extensions["mailer"].send(user.email, email["subject"], email["text"], email["html"])
    except MailError as e:
        logger.warning("reset email failed for user %s: %s", user.id, e)
        if cfg["APP_ENV"] not in ("prod", "production"):
            # Local development without a mail server still gets a usable link
            body["devResetURL"] = reset_url

    return jsonify(body), 200


@bp.post("/reset-password/<token>")
def reset_password(token: str):
    """
    Set a new password with a reset token; signs the user out everywhere
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      - in: path
        name: token
        type: string
        required: true
      - in: body
        name: body
        schema:
          type: object
          required: [password]
          properties:
            password: { type: string, minLength: 6 }
    responses:
      200:
        description: Password changed
      400:
        description: Invalid or expired token
      422:
        description: Validation error
      429:
        description: Too many attempts from this address
    """
    _enforce_auth_rate_limit()
    payload = request.get_json(silent=True) or {}
    data = reset_password_schema.load(payload)
    cfg = current_app.config

    session = storage.get_session()
    user = session.query(User).filter(User.reset_password_token == digest_reset_token(token)).first()
    if (
        user is None
        or user.reset_password_expires is None
        or _utc(user.reset_password_expires) <= datetime.now(timezone.utc)
    ):
        raise BadRequest("Invalid or expired token")

    user.password_hash = hash_password(data["password"])
    user.clear_reset_token()
    user.refresh_token = None
    user.save()
    logger.info("password reset for user %s", user.id)

    email = password_changed_email(
        app_name=cfg["APP_NAME"],
        company=cfg["COMPANY_NAME"],
        support_url=cfg["SUPPORT_URL"],
        username=user.username,
    )
    try:
        current_app.extensions["mailer"].send(user.email, email["subject"], email["text"], email["html"])
    except MailError as e:
        logger.warning("password-changed email failed for user %s: %s", user.id, e)

    return jsonify({"message": "Password reset successful"}), 200
