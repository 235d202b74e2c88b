from flask import Blueprint, current_app

from utils.errors import StoreUnavailableError

bp = Blueprint("health", __name__)

VERSION = "1.0.0"


@bp.get("/health")
def health():
    """
    Health check (includes a round-trip to the user store)
    ---
    tags:
      - Health
    responses:
      200:
        description: API and store are up
        schema:
          type: object
          properties:
            status:
              type: string
              example: ok
            store:
              type: string
              example: ok
            version:
              type: string
              example: 1.0.0
      503:
        description: Store unreachable
    """
    try:
        current_app.extensions["auth_service"].storage.ping()
    except StoreUnavailableError:
        return {"status": "degraded", "store": "unavailable", "version": VERSION}, 503
    return {"status": "ok", "store": "ok", "version": VERSION}, 200
