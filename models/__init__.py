from .user import User
from .conversation import Conversation
from .message import Message
from .scheme import Scheme

# Ensure all models are imported here so SQLAlchemy knows about them
