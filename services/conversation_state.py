"""
Conversation state machine: escalation, operator assignment, release and
end-of-support transitions.

Every transition is a single-row write committed before anything is
broadcast. Assignment is a compare-and-set on ``assigned_operator_id`` so two
operators racing for the same conversation cannot both win.
"""

import logging
import threading
from datetime import datetime

from sqlalchemy import update

from extensions import db
from models.conversation import (
    Conversation, STATUS_ACTIVE, STATUS_FLAGGED, PRIORITY_HIGH, PRIORITY_LOW
)
from models.message import Message, SENDER_BOT
from services import broadcast
from services.errors import Conflict, NotFound, Unauthorized

logger = logging.getLogger(__name__)

ESCALATION_PHRASES = ("talk to human", "chat with agent", "chat with admin")

SUPPORT_ENDED_BY_USER = "User ended support session"
SUPPORT_ENDED_BY_ADMIN = "Admin ended support session"
SUPPORT_ENDED_SYSTEM_TEXT = (
    "The admin has ended this support session. "
    "You are now connected to the AI assistant."
)


def matches_escalation(text):
    lowered = (text or "").lower()
    return any(phrase in lowered for phrase in ESCALATION_PHRASES)


def operator_joined_text(operator):
    return f"Agent {operator.name} has joined the chat."


def get_conversation(conversation_id):
    conversation = db.session.get(Conversation, conversation_id)
    if conversation is None:
        raise NotFound("Conversation not found")
    return conversation


class ConversationStateMachine:

    def __init__(self, broadcaster, lock_stripes=64):
        self.broadcaster = broadcaster
        # In-process serialization of claims; the conditional UPDATE covers other processes
        self._claim_locks = [threading.Lock() for _ in range(lock_stripes)]

    def _claim_lock(self, conversation_id):
        return self._claim_locks[hash(conversation_id) % len(self._claim_locks)]

    # ---------------- ESCALATE ----------------
    def escalate(self, conversation_id):
        """
        Move a conversation into human handling (flagged, high priority).

        Returns True when the call performed the transition and False when
        the conversation was already flagged.
        """
        now = datetime.utcnow()
        result = db.session.execute(
            update(Conversation)
            .where(Conversation.id == conversation_id)
            .where(Conversation.status != STATUS_FLAGGED)
            .values(status=STATUS_FLAGGED, priority=PRIORITY_HIGH, updated_at=now),
            execution_options={"synchronize_session": False}
        )
        if result.rowcount == 0:
            db.session.rollback()
            # Raises NotFound for a missing row; an existing one is already flagged
            get_conversation(conversation_id)
            return False

        db.session.commit()
        conversation = get_conversation(conversation_id)
        logger.info("[OK] Conversation %s escalated to human support", conversation_id)

        self.broadcaster.publish(
            broadcast.OPERATORS_ROOM,
            broadcast.CONVERSATION_FLAGGED,
            conversation.to_dict()
        )
        return True

    # ---------------- ASSIGN ----------------
    def assign(self, conversation_id, operator):
        """
        Claim a conversation for ``operator``.

        Claiming an unassigned conversation sets the lock, announces the
        operator in the chat and notifies the room. Re-claiming one already
        held by the same operator changes nothing. Raises Conflict when
        another operator holds it.
        """
        with self._claim_lock(conversation_id):
            return self._assign(conversation_id, operator)

    def _assign(self, conversation_id, operator):
        now = datetime.utcnow()
        result = db.session.execute(
            update(Conversation)
            .where(Conversation.id == conversation_id)
            .where(Conversation.assigned_operator_id.is_(None))
            .values(
                assigned_operator_id=operator.id,
                assigned_at=now,
                updated_at=now,
                # An operator taking over an automated conversation escalates it
                status=STATUS_FLAGGED,
                priority=PRIORITY_HIGH
            ),
            execution_options={"synchronize_session": False}
        )

        if result.rowcount == 0:
            db.session.rollback()
            conversation = get_conversation(conversation_id)
            if conversation.assigned_operator_id == operator.id:
                return conversation
            logger.info(
                "Operator %s lost claim on conversation %s to operator %s",
                operator.id, conversation_id, conversation.assigned_operator_id
            )
            raise Conflict("Chat is already assigned to another admin")

        system_message = Message(
            conversation_id=conversation_id,
            sender=SENDER_BOT,
            text=operator_joined_text(operator),
            created_at=now
        )
        db.session.add(system_message)
        db.session.commit()
        logger.info("[OK] Operator %s assigned to conversation %s", operator.id, conversation_id)

        conversation = get_conversation(conversation_id)
        room = broadcast.conversation_room(conversation_id)
        joined = {"agentName": operator.name, "agentId": operator.id}
        self.broadcaster.publish(room, broadcast.AGENT_JOINED, joined)
        self.broadcaster.publish(broadcast.user_room(conversation.owner_id), broadcast.AGENT_JOINED, joined)
        self.broadcaster.publish(room, broadcast.RECEIVE_MESSAGE, system_message.to_dict())
        return conversation

    # ---------------- RELEASE ----------------
    def release(self, conversation_id):
        """Drop the operator lock without ending support."""
        with self._claim_lock(conversation_id):
            return self._release(conversation_id)

    def _release(self, conversation_id):
        conversation = get_conversation(conversation_id)
        operator_id = conversation.assigned_operator_id

        conversation.assigned_operator_id = None
        conversation.assigned_at = None
        db.session.commit()

        if operator_id is not None:
            logger.info("[OK] Operator %s released conversation %s", operator_id, conversation_id)
            self.broadcaster.publish(
                broadcast.conversation_room(conversation_id),
                broadcast.AGENT_LEFT,
                {"agentId": operator_id}
            )
        return conversation

    # ---------------- END SUPPORT ----------------
    def end_support(self, conversation_id, actor, as_operator=None):
        """
        Hand the conversation back to the automated responder.

        The owning user may always end support. An operator may end it only
        when the conversation is unassigned or assigned to them; only that
        path leaves a visible system message in the chat.
        ``as_operator`` picks the variant and defaults to the actor's role.
        """
        with self._claim_lock(conversation_id):
            return self._end_support(conversation_id, actor, as_operator)

    def _end_support(self, conversation_id, actor, as_operator):
        conversation = get_conversation(conversation_id)
        if as_operator is None:
            as_operator = actor.is_admin

        if as_operator:
            if conversation.assigned_operator_id not in (None, actor.id):
                raise Conflict("Not authorized. Chat is locked by another admin.")
        elif not conversation.is_owned_by(actor):
            raise Unauthorized("Not authorized")

        now = datetime.utcnow()
        conversation.status = STATUS_ACTIVE
        conversation.priority = PRIORITY_LOW
        conversation.assigned_operator_id = None
        conversation.assigned_at = None
        conversation.touch(now)

        system_message = None
        if as_operator:
            system_message = Message(
                conversation_id=conversation.id,
                sender=SENDER_BOT,
                text=SUPPORT_ENDED_SYSTEM_TEXT,
                created_at=now
            )
            db.session.add(system_message)
        db.session.commit()

        room = broadcast.conversation_room(conversation.id)
        if system_message is not None:
            self.broadcaster.publish(room, broadcast.RECEIVE_MESSAGE, system_message.to_dict())

        ended = {"message": SUPPORT_ENDED_BY_ADMIN if as_operator else SUPPORT_ENDED_BY_USER}
        self.broadcaster.publish(room, broadcast.SUPPORT_ENDED, ended)
        self.broadcaster.publish(broadcast.user_room(conversation.owner_id), broadcast.SUPPORT_ENDED, ended)
        logger.info("[OK] Support ended on conversation %s by %s %s", conversation.id, actor.role, actor.id)
        return conversation
