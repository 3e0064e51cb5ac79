"""
Room-scoped publish/subscribe used to notify conversation participants.

Delivery is best-effort and at-most-once to currently connected clients; the
persisted message log is what clients reload on (re)connect.
"""

import logging

logger = logging.getLogger(__name__)

# Event names on the wire
RECEIVE_MESSAGE = 'receive_message'
AGENT_JOINED = 'agent_joined'
AGENT_LEFT = 'agent_left'
SUPPORT_ENDED = 'support_ended'
CONVERSATION_FLAGGED = 'conversation_flagged'
TYPING = 'typing'
STOP_TYPING = 'stop_typing'

OPERATORS_ROOM = 'operators'


def conversation_room(conversation_id):
    return str(conversation_id)


def user_room(user_id):
    return f"user:{user_id}"


class Broadcaster:
    """Interface: publish an event with a JSON payload to everyone in a room."""

    def publish(self, room, event, payload):
        raise NotImplementedError


class SocketIOBroadcaster(Broadcaster):

    def __init__(self, socketio):
        self.socketio = socketio

    def publish(self, room, event, payload):
        try:
            self.socketio.emit(event, payload, to=room)
        except Exception as e:
            # Delivery is best-effort; the write is already committed
            logger.warning("[WARN] Broadcast of '%s' to room %s failed: %s", event, room, e)


class RecordingBroadcaster(Broadcaster):
    """Keeps published events in memory; lets tests assert on broadcast side effects."""

    def __init__(self):
        self.events = []

    def publish(self, room, event, payload):
        self.events.append((room, event, payload))

    def for_event(self, event):
        return [(room, payload) for room, e, payload in self.events if e == event]

    def clear(self):
        self.events = []
