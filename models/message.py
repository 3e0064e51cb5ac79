from extensions import db
from datetime import datetime

SENDER_USER = 'user'
SENDER_BOT = 'bot'
SENDER_ADMIN = 'admin'


class Message(db.Model):
    __tablename__ = "messages"

    id = db.Column(db.Integer, primary_key=True)

    conversation_id = db.Column(
        db.Integer,
        db.ForeignKey("conversations.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    sender = db.Column(db.String(20), nullable=False)
    # user / bot / admin

    text = db.Column(db.Text, nullable=False)

    created_at = db.Column(
        db.DateTime,
        default=datetime.utcnow,
        index=True
    )

    def to_dict(self):
        return {
            "id": self.id,
            "conversation_id": self.conversation_id,
            "sender": self.sender,
            "text": self.text,
            "created_at": self.created_at.isoformat() if self.created_at else None
        }
