from __future__ import annotations

from flask import Blueprint, current_app, g, jsonify, request

from utils.decorators import jwt_required

bp = Blueprint("users", __name__)


@bp.get("/users/me")
@jwt_required()
def me():
    """
    Get current user info.
    ---
    tags:
      - Users
    security:
      - Bearer: []
    responses:
      200:
        description: OK
      401:
        description: Unauthorized
    """
    user = current_app.extensions["auth_service"].get_profile(g.current_user_id)
    return jsonify({"data": user}), 200


@bp.route("/users/me", methods=["PUT", "PATCH"])
@jwt_required()
def update_me():
    """
    Update current user's profile (name only).
    ---
    tags:
      - Users
    security:
      - Bearer: []
    consumes:
      - application/json
    parameters:
      - in: body
        name: body
        schema:
          type: object
          properties:
            name: { type: string }
    responses:
      200:
        description: OK
      401:
        description: Unauthorized
      422:
        description: Validation error
    """
    payload = request.get_json(silent=True)
    user = current_app.extensions["auth_service"].update_profile(g.current_user_id, payload)
    return jsonify({"data": user}), 200
