from .auth_routes import auth_bp
from .chat_routes import chat_bp
from .admin_routes import admin_bp
