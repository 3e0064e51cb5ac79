from flask import Flask, jsonify
from sqlalchemy.exc import IntegrityError
from werkzeug.exceptions import HTTPException
from dataclasses import dataclass
import logging

from config import Config
from extensions import db, cors, socketio
from logging_config import configure_logging
from services.broadcast import Broadcaster, SocketIOBroadcaster
from services.conversation_state import ConversationStateMachine
from services.errors import HandoffError
from services.knowledge_store import KnowledgeStore
from services.message_router import MessageRouter
from services.responder import ResponderClient, ResponderOrchestrator

logger = logging.getLogger(__name__)


@dataclass
class HandoffServices:
    broadcaster: Broadcaster
    state_machine: ConversationStateMachine
    orchestrator: ResponderOrchestrator
    knowledge_store: KnowledgeStore
    router: MessageRouter


def build_services(app, broadcaster=None, responder_client=None, knowledge_store=None):
    config = app.config
    broadcaster = broadcaster or SocketIOBroadcaster(socketio)
    knowledge_store = knowledge_store or KnowledgeStore(
        limit=config["KNOWLEDGE_MATCH_LIMIT"],
        keyword_expansion=config["KNOWLEDGE_KEYWORD_EXPANSION"]
    )
    state_machine = ConversationStateMachine(broadcaster)
    orchestrator = ResponderOrchestrator(responder_client or ResponderClient.from_config(config))
    router = MessageRouter(
        state_machine,
        orchestrator,
        knowledge_store,
        broadcaster,
        history_limit=config["HISTORY_LIMIT"],
        max_workers=config["ROUTER_WORKERS"]
    )
    return HandoffServices(broadcaster, state_machine, orchestrator, knowledge_store, router)


def register_error_handlers(app):

    @app.errorhandler(HandoffError)
    def handle_handoff_error(e):
        db.session.rollback()
        return jsonify(e.to_dict()), e.status_code

    @app.errorhandler(IntegrityError)
    def handle_integrity_error(e):
        db.session.rollback()
        logger.error("[FAIL] Database Integrity Error: %s", e.orig)
        return jsonify({"error": "Database integrity error", "message": str(e.orig)}), 400

    @app.errorhandler(404)
    def handle_not_found(e):
        return jsonify({"message": "Resource not found"}), 404

    @app.errorhandler(405)
    def handle_method_not_allowed(e):
        return jsonify({"error": "Method not allowed", "message": "The method is not allowed for the requested URL."}), 405

    @app.errorhandler(Exception)
    def handle_unexpected_error(e):
        if isinstance(e, HTTPException):
            return jsonify({"message": e.description}), e.code
        db.session.rollback()
        logger.exception("[FAIL] Unhandled error")
        return jsonify({"message": str(e)}), 500


def create_app(config_class=Config, broadcaster=None, responder_client=None, knowledge_store=None):
    app = Flask(__name__)
    app.config.from_object(config_class)
    configure_logging(app.config.get("LOG_LEVEL", "INFO"))

    import sockets  # noqa: F401  registers the Socket.IO handlers
    from routes import auth_bp, chat_bp, admin_bp

    origins = app.config["FRONTEND_URL"]
    db.init_app(app)
    cors.init_app(app, origins=origins, supports_credentials=True)
    socketio.init_app(app, cors_allowed_origins=origins, async_mode="threading")

    app.register_blueprint(auth_bp, url_prefix="/auth")
    app.register_blueprint(chat_bp, url_prefix="/api/chat")
    app.register_blueprint(admin_bp, url_prefix="/api/admin")

    @app.route("/")
    def index():
        return "API is running..."

    register_error_handlers(app)
    app.extensions["handoff"] = build_services(
        app,
        broadcaster=broadcaster,
        responder_client=responder_client,
        knowledge_store=knowledge_store
    )

    with app.app_context():
        import models  # noqa: F401
        db.create_all()
        logger.info("[OK] Database URI: %s", db.engine.url.render_as_string(hide_password=True))

    return app


if __name__ == "__main__":
    import os
    app = create_app()
    socketio.run(app, host="0.0.0.0", port=int(os.environ.get("PORT", 5000)))
