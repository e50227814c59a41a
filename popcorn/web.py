# popcorn/web.py
from flask import Blueprint, request, jsonify, current_app
from popcorn.service import PopcornService
from popcorn.watched import ValidationError, DuplicateEntryError
from popcorn.repo import RepoError
import logging

logger = logging.getLogger(__name__)

bp = Blueprint("main", __name__, url_prefix="")  # blueprint name = 'main'

def register_routes(app, service: PopcornService):
    """
    Register blueprint and ensure SERVICE is in app.config.
    Call this once during app creation (run.create_app does this).
    """
    if "SERVICE" not in app.config:
        app.config["SERVICE"] = service
    app.register_blueprint(bp)
    logger.debug("Registered blueprint 'main' and injected SERVICE")

def register_error_handlers(app):
    """Centralized handlers for service exceptions."""
    @app.errorhandler(DuplicateEntryError)
    def handle_duplicate(e):
        logger.warning("DuplicateEntryError: %s", e)
        return jsonify(error=str(e)), 409

    @app.errorhandler(ValidationError)
    def handle_validation_error(e):
        logger.warning("ValidationError: %s", e)
        return jsonify(error=str(e)), 400

    @app.errorhandler(RepoError)
    def handle_repo_error(e):
        logger.warning("RepoError: %s", e)
        return jsonify(error=str(e)), 507

# helper to get service instance
def current_service() -> PopcornService:
    return current_app.config["SERVICE"]

def _json_body() -> dict:
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        raise ValidationError("JSON object body required")
    return body

# -----------------------
# Snapshot
# -----------------------
@bp.route("/state")
def state():
    return jsonify(current_service().snapshot())

# -----------------------
# Search
# -----------------------
@bp.route("/search", methods=["POST"])
def search():
    svc = current_service()
    query = _json_body().get("query", "")
    if not isinstance(query, str):
        raise ValidationError("query must be a string")
    svc.search.set_query(query)
    return jsonify(svc.snapshot())

# -----------------------
# Selection / detail
# -----------------------
@bp.route("/select/<movie_id>", methods=["POST"])
def select(movie_id: str):
    svc = current_service()
    svc.selection.select(movie_id)
    return jsonify(svc.snapshot())

@bp.route("/close", methods=["POST"])
def close():
    svc = current_service()
    svc.selection.close()
    return jsonify(svc.snapshot())

@bp.route("/rating", methods=["POST"])
def rating():
    svc = current_service()
    entry = svc.selection.confirm_rating(_json_body().get("user_rating"))
    logger.info("Rated %s with %s", entry.id, entry.user_rating)
    return jsonify(svc.snapshot()), 201

@bp.route("/keys", methods=["POST"])
def keys():
    svc = current_service()
    key = _json_body().get("key", "")
    if not isinstance(key, str):
        raise ValidationError("key must be a string")
    handled = svc.press_key(key)
    return jsonify(handled=handled, state=svc.snapshot())

# -----------------------
# Watched list
# -----------------------
@bp.route("/watched")
def watched():
    return jsonify(current_service().watched.snapshot())

@bp.route("/watched/<movie_id>", methods=["DELETE"])
def watched_delete(movie_id: str):
    svc = current_service()
    svc.watched.remove(movie_id)
    return jsonify(svc.watched.snapshot())
