from flask import current_app
from flask_cors import CORS
from flask_socketio import SocketIO
from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()
cors = CORS()
socketio = SocketIO()


def get_services():
    """Return the handoff services wired up by the app factory."""
    return current_app.extensions["handoff"]
