from extensions import db
from datetime import datetime

STATUS_ACTIVE = 'active'    # automated responder handles messages
STATUS_FLAGGED = 'flagged'  # escalated to a human operator

PRIORITY_LOW = 'low'
PRIORITY_HIGH = 'high'


class Conversation(db.Model):
    __tablename__ = 'conversations'

    id = db.Column(db.Integer, primary_key=True)
    owner_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    title = db.Column(db.String(100))
    status = db.Column(db.String(20), default=STATUS_ACTIVE, nullable=False, index=True)
    priority = db.Column(db.String(20), default=PRIORITY_LOW, nullable=False)
    assigned_operator_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
    assigned_at = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    # Bumped explicitly on status/priority changes and new messages; doubles as the queue key
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)

    owner = db.relationship('User', foreign_keys=[owner_id])
    assigned_operator = db.relationship('User', foreign_keys=[assigned_operator_id])
    messages = db.relationship(
        'Message',
        backref='conversation',
        lazy=True,
        cascade='all, delete-orphan',
        order_by="Message.created_at"
    )

    @property
    def is_flagged(self):
        return self.status == STATUS_FLAGGED

    def is_owned_by(self, user):
        return self.owner_id == user.id

    def can_be_read_by(self, user):
        return user.is_admin or self.is_owned_by(user)

    def touch(self, now=None):
        self.updated_at = now or datetime.utcnow()

    def to_dict(self):
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "owner": {"name": self.owner.name, "email": self.owner.email} if self.owner else None,
            "title": self.title,
            "status": self.status,
            "priority": self.priority,
            "assigned_operator_id": self.assigned_operator_id,
            "assigned_to": {
                "name": self.assigned_operator.name,
                "email": self.assigned_operator.email
            } if self.assigned_operator else None,
            "assigned_at": self.assigned_at.isoformat() if self.assigned_at else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None
        }
