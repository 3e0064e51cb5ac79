from sqlalchemy import func

from extensions import db
from models.conversation import Conversation, STATUS_FLAGGED
from services.conversation_state import get_conversation


def queue_position(conversation_id):
    """
    Position of a waiting conversation among unassigned escalated ones.

    0 means the conversation is not waiting for an operator. Ordering is FIFO
    on ``updated_at``, which escalation bumps. Always computed from the
    current rows since other conversations move concurrently.
    """
    conversation = get_conversation(conversation_id)
    if conversation.status != STATUS_FLAGGED:
        return 0

    ahead = db.session.query(func.count(Conversation.id)).filter(
        Conversation.status == STATUS_FLAGGED,
        Conversation.assigned_operator_id.is_(None),
        Conversation.updated_at < conversation.updated_at
    ).scalar() or 0
    return ahead + 1
