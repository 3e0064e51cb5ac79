"""
Message router: persists inbound chat messages, fans them out to the room and
decides whether the automated responder or a human operator answers.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from flask import current_app

from extensions import db
from models.conversation import Conversation
from models.message import Message, SENDER_ADMIN, SENDER_BOT, SENDER_USER
from services import broadcast
from services.conversation_state import get_conversation, matches_escalation
from services.errors import InvalidRequest, Unauthorized

logger = logging.getLogger(__name__)

SUPPORT_ACK_TEXT = "I have notified our support team. An admin will join this chat shortly to assist you."
TITLE_LENGTH = 30


@dataclass
class SubmitResult:
    conversation_id: int
    user_message: dict
    bot_message: Optional[dict] = None

    def to_dict(self):
        return {
            "conversationId": self.conversation_id,
            "userMessage": self.user_message,
            "botMessage": self.bot_message
        }


def derive_title(text):
    text = text.strip()
    if len(text) <= TITLE_LENGTH:
        return text
    return text[:TITLE_LENGTH] + "..."


def fetch_history(conversation_id, limit):
    """Last ``limit`` messages, oldest first, as plain dicts."""
    recent = Message.query.filter_by(conversation_id=conversation_id) \
        .order_by(Message.created_at.desc(), Message.id.desc()) \
        .limit(limit) \
        .all()
    history = [{"id": m.id, "sender": m.sender, "text": m.text} for m in recent]
    history.reverse()
    return history


class MessageRouter:

    def __init__(self, state_machine, orchestrator, knowledge_store, broadcaster,
                 history_limit=10, max_workers=8):
        self.state_machine = state_machine
        self.orchestrator = orchestrator
        self.knowledge_store = knowledge_store
        self.broadcaster = broadcaster
        self.history_limit = history_limit
        self.executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="router")

    def shutdown(self):
        self.executor.shutdown(wait=True)

    # ---------------- CONCURRENT READS ----------------
    def _in_app_context(self, app, fn, *args):
        with app.app_context():
            return fn(*args)

    def _start_reads(self, conversation_id, text):
        app = current_app._get_current_object()
        history = self.executor.submit(
            self._in_app_context, app, fetch_history, conversation_id, self.history_limit + 1
        )
        records = self.executor.submit(
            self._in_app_context, app, self.knowledge_store.search, text
        )
        return history, records

    # ---------------- PERSISTENCE ----------------
    def _persist(self, conversation_id, sender, text):
        now = datetime.utcnow()
        message = Message(conversation_id=conversation_id, sender=sender, text=text, created_at=now)
        db.session.add(message)
        get_conversation(conversation_id).touch(now)
        db.session.commit()

        payload = message.to_dict()
        self.broadcaster.publish(broadcast.conversation_room(conversation_id), broadcast.RECEIVE_MESSAGE, payload)
        return payload

    def _resolve_conversation(self, conversation_id, sender, text):
        if conversation_id is None:
            conversation = Conversation(owner_id=sender.id, title=derive_title(text))
            db.session.add(conversation)
            db.session.commit()
            logger.info("[OK] Conversation %s created for user %s", conversation.id, sender.id)
            return conversation.id

        conversation = get_conversation(conversation_id)
        if not conversation.can_be_read_by(sender):
            raise Unauthorized("Not authorized")
        return conversation.id

    # ---------------- SUBMIT ----------------
    def submit(self, conversation_id, sender, text):
        """
        Accept a chat message from ``sender``.

        Returns once the inbound message and any bot reply are persisted and
        broadcast, inbound first.
        """
        if not text or not text.strip():
            raise InvalidRequest("Message text is required")

        conversation_id = self._resolve_conversation(conversation_id, sender, text)
        from_admin = sender.is_admin

        support_requested = matches_escalation(text)
        if support_requested:
            self.state_machine.escalate(conversation_id)

        reads = None
        if not from_admin and not support_requested:
            reads = self._start_reads(conversation_id, text)

        user_message = self._persist(conversation_id, SENDER_ADMIN if from_admin else SENDER_USER, text)
        result = SubmitResult(conversation_id=conversation_id, user_message=user_message)

        if from_admin:
            return result

        if support_requested:
            result.bot_message = self._persist(conversation_id, SENDER_BOT, SUPPORT_ACK_TEXT)
            return result

        history_future, records_future = reads
        history = history_future.result()
        records = records_future.result()

        if get_conversation(conversation_id).is_flagged:
            # A human is handling this conversation; the bot stays silent
            return result

        # The history read may or may not have seen the inbound message
        history = [item for item in history if item["id"] != user_message["id"]][-self.history_limit:]

        reply_text = self.orchestrator.reply(text, history, records)
        if reply_text:
            result.bot_message = self._persist(conversation_id, SENDER_BOT, reply_text)
        return result
