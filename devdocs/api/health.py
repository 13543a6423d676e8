import logging

from flask import Blueprint, current_app
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from devdocs import __version__
from devdocs.models import storage

logger = logging.getLogger(__name__)

bp = Blueprint("health", __name__)


@bp.get("/health")
def health():
    """
    Liveness plus a database round trip
    ---
    tags:
      - Health
    responses:
      200:
        description: API and database are up
        schema:
          type: object
          properties:
            status: { type: string, example: ok }
            version: { type: string, example: 1.0.0 }
            database: { type: string, example: ok }
            docgen: { type: string, example: model }
      503:
        description: Database unreachable
    """
    try:
        storage.get_session().execute(text("SELECT 1"))
        database = "ok"
    except SQLAlchemyError as e:
        logger.error("health check: database unreachable: %s", e)
        database = "unavailable"

    docgen = "model" if getattr(current_app.extensions["docgen"], "api_key", "") else "fallback"
    body = {"status": "ok" if database == "ok" else "degraded", "version": __version__,
            "database": database, "docgen": docgen}
    return body, 200 if database == "ok" else 503
