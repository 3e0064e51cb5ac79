from flask import Blueprint, jsonify
from extensions import db
from models.conversation import Conversation, STATUS_FLAGGED
from models.message import Message
from models.user import User
from routes.auth_routes import token_required, admin_required
from sqlalchemy import func

admin_bp = Blueprint("admin", __name__)


@admin_bp.route("/users", methods=["GET"])
@token_required
@admin_required
def get_all_users(current_user):
    users = User.query.order_by(User.created_at.desc()).all()
    return jsonify([u.to_dict() for u in users]), 200


@admin_bp.route("/stats", methods=["GET"])
@token_required
@admin_required
def get_stats(current_user):
    waiting = db.session.query(func.count(Conversation.id)).filter(
        Conversation.status == STATUS_FLAGGED,
        Conversation.assigned_operator_id.is_(None)
    ).scalar() or 0

    return jsonify({
        "users": db.session.query(func.count(User.id)).scalar() or 0,
        "conversations": db.session.query(func.count(Conversation.id)).scalar() or 0,
        "messages": db.session.query(func.count(Message.id)).scalar() or 0,
        "waiting": waiting
    }), 200
