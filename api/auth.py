"""
Authentication blueprint:
- POST /auth/register
- POST /auth/login
- POST /auth/refresh
- POST /auth/logout

The implementation:
- Uses argon2 for password hashing (via utils.security)
- Issues short-lived JWT access tokens (HS256) and opaque refresh tokens
- Stores refresh token digests in DB (RefreshToken model) so we can revoke / rotate them
- All the work happens in AuthService; these views only move JSON in and out
"""
from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request

bp = Blueprint("auth", __name__)

REFRESH_HEADER = "X-Refresh-Token"


def _service():
    return current_app.extensions["auth_service"]


def _json_body() -> dict:
    """The JSON body if it is an object, else {}."""
    payload = request.get_json(silent=True)
    return payload if isinstance(payload, dict) else {}


def _presented_refresh_token(payload: dict):
    """Refresh token from the JSON body, falling back to the X-Refresh-Token header."""
    return payload.get("refresh_token") or request.headers.get(REFRESH_HEADER)


@bp.post("/register")
def register():
    """
    register a new user.
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
          required: [name, email, password]
          properties:
            name: { type: string }
            email: { type: string }
            password: { type: string }
    responses:
      201:
        description: Created
      409:
        description: Email already registered
      422:
        description: Validation error
    """
    payload = _json_body()
    user = _service().register(payload.get("name"), payload.get("email"), payload.get("password"))
    return jsonify({"data": user}), 201


@bp.post("/login")
def login():
    """
    Login: return access_token and refresh_token
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
             email: { type: string }
             password: { type: string }
    responses:
      200:
        description: OK (returns tokens)
      401:
        description: Invalid credentials
    """
    payload = _json_body()
    result = _service().login(payload.get("email"), payload.get("password"))
    user = result.pop("user")
    return jsonify(dict(result, data=user)), 200


@bp.post("/refresh")
def refresh():
    """
    Use refresh token to obtain new access and refresh tokens (rotation)
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
             refresh_token: { type: string }
      -  in: header
         name: X-Refresh-Token
         type: string
         required: false
    responses:
      200:
        description: OK (returns a new token pair)
      401:
        description: Invalid, revoked or expired refresh token
    """
    payload = _json_body()
    return jsonify(_service().refresh(_presented_refresh_token(payload))), 200


@bp.post("/logout")
def logout():
    """
    logout: revokes the refresh token (idempotent)
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
             refresh_token: { type: string }
    responses:
      204:
        description: ""
    """
    payload = _json_body()
    _service().logout(_presented_refresh_token(payload))
    return ("", 204)
