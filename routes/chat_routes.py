from flask import Blueprint, request, jsonify
from extensions import db, get_services
from models.conversation import Conversation
from models.message import Message
from routes.auth_routes import token_required, admin_required
from services.conversation_state import get_conversation
from services.errors import InvalidRequest, Unauthorized
from services.queue_service import queue_position
import logging

logger = logging.getLogger(__name__)

chat_bp = Blueprint("chat", __name__)


def _readable_conversation(conversation_id, current_user):
    conversation = get_conversation(conversation_id)
    if not conversation.can_be_read_by(current_user):
        raise Unauthorized("Not authorized")
    return conversation


# LIST CONVERSATIONS
@chat_bp.route("", methods=["GET"])
@token_required
def get_conversations(current_user):
    if current_user.is_admin:
        # Admin sees everything; 'high' sorts before 'low'
        conversations = Conversation.query.order_by(
            Conversation.priority.asc(), Conversation.updated_at.desc()
        ).all()
    else:
        conversations = Conversation.query.filter_by(owner_id=current_user.id) \
            .order_by(Conversation.updated_at.desc()).all()
    return jsonify([c.to_dict() for c in conversations]), 200


# LIST MESSAGES
@chat_bp.route("/<int:conversation_id>", methods=["GET"])
@token_required
def get_messages(current_user, conversation_id):
    _readable_conversation(conversation_id, current_user)
    messages = Message.query.filter_by(conversation_id=conversation_id) \
        .order_by(Message.created_at.asc(), Message.id.asc()).all()
    return jsonify([m.to_dict() for m in messages]), 200


# SEND MESSAGE
@chat_bp.route("", methods=["POST"])
@token_required
def send_message(current_user):
    data = request.get_json(silent=True) or {}
    text = data.get("text")
    if not isinstance(text, str):
        raise InvalidRequest("The 'text' field is required.")

    conversation_id = data.get("conversationId")
    if conversation_id is not None:
        try:
            conversation_id = int(conversation_id)
        except (TypeError, ValueError):
            raise InvalidRequest("Invalid conversationId")

    result = get_services().router.submit(conversation_id, current_user, text)
    return jsonify(result.to_dict()), 200


# DELETE CONVERSATION
@chat_bp.route("/<int:conversation_id>", methods=["DELETE"])
@token_required
def delete_conversation(current_user, conversation_id):
    conversation = _readable_conversation(conversation_id, current_user)
    Message.query.filter_by(conversation_id=conversation.id).delete(synchronize_session=False)
    db.session.delete(conversation)
    db.session.commit()
    logger.info("[OK] Conversation %s deleted by %s %s", conversation_id, current_user.role, current_user.id)
    return jsonify({"message": "Conversation removed"}), 200


# ASSIGN TO OPERATOR
@chat_bp.route("/<int:conversation_id>/assign", methods=["PUT"])
@token_required
@admin_required
def assign_conversation(current_user, conversation_id):
    conversation = get_services().state_machine.assign(conversation_id, current_user)
    return jsonify(conversation.to_dict()), 200


# RELEASE FROM OPERATOR
@chat_bp.route("/<int:conversation_id>/release", methods=["PUT"])
@token_required
@admin_required
def release_conversation(current_user, conversation_id):
    conversation = get_services().state_machine.release(conversation_id)
    return jsonify(conversation.to_dict()), 200


# QUEUE POSITION
@chat_bp.route("/<int:conversation_id>/queue", methods=["GET"])
@token_required
def get_queue_position(current_user, conversation_id):
    _readable_conversation(conversation_id, current_user)
    position = queue_position(conversation_id)
    if position == 0:
        return jsonify({"position": 0, "message": "Not in queue"}), 200
    return jsonify({"position": position}), 200


# END SUPPORT (USER SIDE)
@chat_bp.route("/<int:conversation_id>/end-support", methods=["PUT"])
@token_required
def end_support(current_user, conversation_id):
    conversation = get_services().state_machine.end_support(conversation_id, current_user, as_operator=False)
    return jsonify(conversation.to_dict()), 200


# END SUPPORT (ADMIN SIDE)
@chat_bp.route("/<int:conversation_id>/admin-end-support", methods=["PUT"])
@token_required
@admin_required
def admin_end_support(current_user, conversation_id):
    conversation = get_services().state_machine.end_support(conversation_id, current_user, as_operator=True)
    return jsonify(conversation.to_dict()), 200
