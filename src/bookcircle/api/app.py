"""Flask web API for the lending library."""

import logging
from typing import Any, Iterable, Optional

from flask import Flask, g, jsonify, request
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import SQLAlchemyError

from ..access import Principal
from ..db.models import User
from ..db.schemas import (
    BookCreate,
    BookTransfer,
    BookUpdate,
    LendingRequestCreate,
    UserStatusUpdate,
    UserSync,
)
from ..errors import BookCircleError, ValidationError
from ..services import Services

logger = logging.getLogger(__name__)


def _dump(model: BaseModel) -> dict[str, Any]:
    return model.model_dump(mode="json", by_alias=True)


def _dump_all(models: Iterable[BaseModel]) -> list[dict[str, Any]]:
    return [_dump(m) for m in models]


def _body() -> dict[str, Any]:
    """JSON body of the current request, or an empty dict."""
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def create_app(services: Services) -> Flask:
    """Create and configure the Flask app.

    Args:
        services: Wired service handles (see ``build_services``)
    """
    app = Flask(__name__)
    app.extensions["bookcircle"] = services

    gate = services.gate
    catalog = services.catalog
    lending = services.lending
    users = services.users
    notifications = services.notifications

    def principal() -> Principal:
        if "principal" not in g:
            g.principal = gate.authenticate(request.headers.get("Authorization"))
        return g.principal

    def active_user() -> User:
        return gate.require_active(principal())

    # -------------------------------------------------------------------------
    # Errors
    # -------------------------------------------------------------------------

    @app.errorhandler(BookCircleError)
    def handle_domain_error(e: BookCircleError):
        return jsonify(e.to_dict()), e.status_code

    @app.errorhandler(PydanticValidationError)
    def handle_validation_error(e: PydanticValidationError):
        error = ValidationError(
            "Invalid request body",
            details={"errors": e.errors(include_url=False, include_context=False, include_input=False)},
        )
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(SQLAlchemyError)
    def handle_database_error(e: SQLAlchemyError):
        logger.exception("Database error on %s %s", request.method, request.path)
        return jsonify({"error": "Internal server error", "code": "internal_error"}), 500

    @app.errorhandler(404)
    def handle_not_found(e):
        return jsonify({"error": "Route not found", "code": "not_found"}), 404

    @app.errorhandler(405)
    def handle_method_not_allowed(e):
        return jsonify({"error": "Method not allowed", "code": "method_not_allowed"}), 405

    @app.route("/health")
    def health():
        return jsonify({"status": "ok"})

    # -------------------------------------------------------------------------
    # Books
    # -------------------------------------------------------------------------

    @app.route("/books", methods=["GET"])
    def list_books():
        active_user()
        exclude_owner: Optional[str] = request.args.get("excludeOwner") or None
        return jsonify(_dump_all(catalog.list_books(exclude_owner_id=exclude_owner)))

    @app.route("/books/<book_id>", methods=["GET"])
    def get_book(book_id: str):
        active_user()
        return jsonify(_dump(catalog.get_book(book_id)))

    @app.route("/books", methods=["POST"])
    def create_book():
        user = active_user()
        data = BookCreate.model_validate(_body())
        return jsonify(_dump(catalog.create_book(data, user.id))), 201

    @app.route("/books/<book_id>", methods=["PUT"])
    def update_book(book_id: str):
        user = active_user()
        data = BookUpdate.model_validate(_body())
        return jsonify(_dump(catalog.update_book(book_id, data, user.id)))

    @app.route("/books/<book_id>", methods=["DELETE"])
    def delete_book(book_id: str):
        user = active_user()
        catalog.delete_book(book_id, user.id)
        return jsonify({"message": "Book deleted"})

    @app.route("/books/<book_id>/transfer", methods=["POST"])
    def transfer_book(book_id: str):
        user = active_user()
        data = BookTransfer.model_validate(_body())
        return jsonify(_dump(catalog.transfer_book(book_id, data.new_holder_id, user.id)))

    # -------------------------------------------------------------------------
    # Lending requests
    # -------------------------------------------------------------------------

    @app.route("/lending-requests", methods=["POST"])
    def create_request():
        user = active_user()
        data = LendingRequestCreate.model_validate(_body())
        return jsonify(_dump(lending.create_request(data.book_id, user.id))), 201

    @app.route("/lending-requests/my-requests", methods=["GET"])
    def my_requests():
        user = active_user()
        return jsonify(_dump_all(lending.list_mine(user.id)))

    @app.route("/lending-requests/for-my-books", methods=["GET"])
    def requests_for_my_books():
        user = active_user()
        return jsonify(_dump_all(lending.list_for_my_books(user.id)))

    @app.route("/lending-requests/<request_id>", methods=["GET"])
    def get_request(request_id: str):
        user = active_user()
        return jsonify(_dump(lending.get_request(request_id, user.id)))

    transitions = {
        "approve": lending.approve,
        "reject": lending.reject,
        "deliver": lending.deliver,
        "return": lending.return_book,
    }

    @app.route("/lending-requests/<request_id>/<action>", methods=["PATCH"])
    def transition_request(request_id: str, action: str):
        user = active_user()
        handler = transitions.get(action)
        if handler is None:
            return jsonify({"error": "Route not found", "code": "not_found"}), 404
        return jsonify(_dump(handler(request_id, user.id)))

    @app.route("/lending-requests/<request_id>", methods=["DELETE"])
    def cancel_request(request_id: str):
        user = active_user()
        return jsonify(_dump(lending.cancel(request_id, user.id)))

    # -------------------------------------------------------------------------
    # Users
    # -------------------------------------------------------------------------

    @app.route("/users/me", methods=["GET"])
    def me():
        return jsonify(_dump(users.get_profile(principal().id)))

    @app.route("/users/sync", methods=["POST"])
    def sync_user():
        data = UserSync.model_validate(_body())
        return jsonify(_dump(users.sync(principal(), data)))

    @app.route("/users/request-access", methods=["PATCH"])
    def request_access():
        return jsonify(_dump(users.request_access(principal().id)))

    @app.route("/users", methods=["GET"])
    def list_users():
        admin = gate.require_admin(principal())
        return jsonify(_dump_all(users.list_users(admin.id)))

    @app.route("/users/<user_id>/status", methods=["PATCH"])
    def set_user_status(user_id: str):
        admin = gate.require_admin(principal())
        data = UserStatusUpdate.model_validate(_body())
        return jsonify(_dump(users.set_status(user_id, data.status.value, admin.id)))

    # -------------------------------------------------------------------------
    # Notifications
    # -------------------------------------------------------------------------

    @app.route("/notifications", methods=["GET"])
    def list_notifications():
        return jsonify(_dump_all(notifications.list_for_user(principal().id)))

    @app.route("/notifications/unread-count", methods=["GET"])
    def unread_count():
        return jsonify({"count": notifications.unread_count(principal().id)})

    @app.route("/notifications/read-all", methods=["PATCH"])
    def mark_all_read():
        return jsonify({"updated": notifications.mark_all_read(principal().id)})

    @app.route("/notifications/<notification_id>/read", methods=["PATCH"])
    def mark_read(notification_id: str):
        return jsonify(_dump(notifications.mark_read(notification_id, principal().id)))

    return app


def run_server(services: Services, host: str = "127.0.0.1", port: int = 4000, debug: bool = False):
    """Run the API with the Flask development server."""
    app = create_app(services)
    logger.info("Serving bookcircle API on http://%s:%d", host, port)
    app.run(host=host, port=port, debug=debug, use_reloader=False, threaded=True)
