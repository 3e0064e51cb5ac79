"""
Socket.IO handlers: connection auth, room membership and typing presence.

Persisted chat traffic goes through the REST endpoints; the socket carries
server pushes plus the ephemeral typing signals relayed here.
"""

import logging

import jwt
from flask import request, session
from flask_socketio import emit, join_room, rooms

from extensions import db, socketio
from models.conversation import Conversation
from models.user import User
from routes.auth_routes import extract_token, load_principal
from services import broadcast

logger = logging.getLogger(__name__)


def _current_user():
    user_id = session.get('user_id')
    if user_id is None:
        return None
    return db.session.get(User, user_id)


def _can_join(user, room):
    if room == broadcast.user_room(user.id):
        return True
    if room == broadcast.OPERATORS_ROOM:
        return user.is_admin
    try:
        conversation_id = int(room)
    except (TypeError, ValueError):
        return False
    conversation = db.session.get(Conversation, conversation_id)
    return conversation is not None and conversation.can_be_read_by(user)


@socketio.on('connect')
def on_connect(auth=None):
    token = None
    if isinstance(auth, dict):
        token = extract_token(auth.get('token'))
    token = token or request.args.get('token') or extract_token(request.headers.get('Authorization'))
    if not token:
        raise ConnectionRefusedError('Token is missing!')

    try:
        user = load_principal(token)
    except (jwt.InvalidTokenError, LookupError) as e:
        logger.info("Socket connection refused: %s", e)
        raise ConnectionRefusedError('Token is invalid!')

    session['user_id'] = user.id
    join_room(broadcast.user_room(user.id))
    if user.is_admin:
        join_room(broadcast.OPERATORS_ROOM)
    logger.debug("User %s connected on %s", user.id, request.sid)


@socketio.on('join_chat')
def on_join_chat(room):
    user = _current_user()
    room = str(room)
    if user is None or not _can_join(user, room):
        return False
    join_room(room)
    logger.debug("User %s joined room %s", user.id, room)
    return True


def _relay_presence(event, data):
    room = str((data or {}).get('room', ''))
    if not room or room not in rooms():
        return
    emit(event, {'room': room, 'userId': session.get('user_id')}, to=room, include_self=False)


@socketio.on('typing')
def on_typing(data):
    _relay_presence(broadcast.TYPING, data)


@socketio.on('stop_typing')
def on_stop_typing(data):
    _relay_presence(broadcast.STOP_TYPING, data)


@socketio.on('disconnect')
def on_disconnect(reason=None):
    logger.debug("User %s disconnected", session.get('user_id'))
