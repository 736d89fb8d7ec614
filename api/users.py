from __future__ import annotations

from flask import Blueprint, jsonify, g

from utils.decorators import jwt_required

bp = Blueprint("users", __name__)


@bp.get("/current-user")
@jwt_required()
def current_user():
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
    return jsonify(
        {
            "status": 200,
            "message": "Current user fetched successfully",
            "data": g.current_user,
        }
    ), 200
