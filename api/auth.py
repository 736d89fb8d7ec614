"""
Authentication blueprint (mounted at /api/v1/users):
- POST /register        multipart form + avatar / coverImage files
- POST /login           sets accessToken / refreshToken cookies
- POST /logout          clears the stored refresh token and both cookies
- POST /refresh-token   rotates the token pair

Tokens are returned both as http-only cookies (browsers) and in the JSON
body (other clients). Refresh tokens are single-use: every refresh revokes
the token that was presented.
"""
from __future__ import annotations

from flask import Blueprint, request, jsonify, g, current_app

from models import storage
from models.user_store import UserStore
from services.sessions import SessionService
from utils.decorators import jwt_required, ACCESS_COOKIE, REFRESH_COOKIE
from utils.uploader import discard, save_upload

bp = Blueprint("auth", __name__)


def get_session_service() -> SessionService:
    return SessionService(UserStore(storage), current_app.extensions["media_uploader"])


def _cookie_options() -> dict:
    return {
        "httponly": True,
        "secure": current_app.config.get("COOKIE_SECURE", True),
        "samesite": current_app.config.get("COOKIE_SAMESITE", "None"),
    }


def _set_token_cookies(response, access_token: str, refresh_token: str):
    opts = _cookie_options()
    response.set_cookie(
        ACCESS_COOKIE, access_token,
        max_age=int(current_app.config["ACCESS_TOKEN_EXPIRES"].total_seconds()), **opts
    )
    response.set_cookie(
        REFRESH_COOKIE, refresh_token,
        max_age=int(current_app.config["REFRESH_TOKEN_EXPIRES"].total_seconds()), **opts
    )
    return response


def _clear_token_cookies(response):
    opts = _cookie_options()
    response.delete_cookie(ACCESS_COOKIE, **opts)
    response.delete_cookie(REFRESH_COOKIE, **opts)
    return response


def _payload() -> dict:
    if request.is_json:
        body = request.get_json(silent=True)
        # a JSON array or scalar carries no fields
        return body if isinstance(body, dict) else {}
    return request.form.to_dict()


@bp.post("/register")
def register():
    """
    Register a new user.
    ---
    tags:
      - Auth
    consumes:
      - multipart/form-data
    parameters:
      - { in: formData, name: fullName, type: string, required: true }
      - { in: formData, name: email, type: string, required: true }
      - { in: formData, name: username, type: string, required: true }
      - { in: formData, name: password, type: string, required: true }
      - { in: formData, name: avatar, type: file, required: true }
      - { in: formData, name: coverImage, type: file, required: false }
    responses:
      201:
        description: Created
      400:
        description: Validation error / missing avatar
      409:
        description: Username or email already taken
    """
    tmp_dir = current_app.config["UPLOAD_TMP_DIR"]
    avatar_path = save_upload(request.files.get("avatar"), tmp_dir)
    try:
        cover_path = save_upload(request.files.get("coverImage"), tmp_dir)
    except Exception:
        discard(avatar_path)
        raise

    user = get_session_service().register(_payload(), avatar_path, cover_path)
    return jsonify(
        {
            "status": 201,
            "message": "User registered successfully",
            "data": user,
        }
    ), 201


@bp.post("/login")
def login():
    """
    Login with username or email: returns accessToken and refreshToken
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
           properties:
             username: { type: string }
             email: { type: string }
             password: { type: string }
    responses:
      200:
        description: OK (returns tokens, sets cookies)
      400:
        description: Neither username nor email supplied
      401:
        description: Invalid user credentials
    """
    user, access_token, refresh_token = get_session_service().login(_payload())
    response = jsonify(
        {
            "status": 200,
            "message": "User logged in successfully",
            "data": {"user": user, "accessToken": access_token, "refreshToken": refresh_token},
        }
    )
    return _set_token_cookies(response, access_token, refresh_token), 200


@bp.post("/logout")
@jwt_required()
def logout():
    """
    Logout: revokes the stored refresh token and clears cookies
    ---
    tags:
      - Auth
    security:
      - Bearer: []
    responses:
      200:
        description: Logged out
      401:
        description: Unauthorized
    """
    get_session_service().logout(g.current_user_id)
    response = jsonify({"status": 200, "message": "User logged out", "data": {}})
    return _clear_token_cookies(response), 200


@bp.post("/refresh-token")
def refresh_token():
    """
    Use a refresh token to obtain new access and refresh tokens (rotation)
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
           properties:
             refreshToken: { type: string }
    responses:
      200:
        description: OK (returns new token pair, sets cookies)
      401:
        description: Missing, invalid, expired or already used refresh token
    """
    presented = request.cookies.get(REFRESH_COOKIE) or _payload().get("refreshToken")
    access_token, new_refresh = get_session_service().rotate(presented)
    response = jsonify(
        {
            "status": 200,
            "message": "Access token refreshed",
            "data": {"accessToken": access_token, "refreshToken": new_refresh},
        }
    )
    return _set_token_cookies(response, access_token, new_refresh), 200
