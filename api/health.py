from flask import Blueprint, current_app
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

bp = Blueprint("health", __name__)


@bp.get("/health")
def health():
    """
    Health check, including a round trip to the token store
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
        description: Token store unreachable
    """
    storage = current_app.extensions["storage"]
    try:
        storage.get_session().execute(text("SELECT 1"))
    except SQLAlchemyError:
        current_app.logger.exception("Health check: store unavailable")
        return {"status": "degraded", "store": "unavailable", "version": "1.0.0"}, 503
    return {"status": "ok", "store": "ok", "version": "1.0.0"}, 200
