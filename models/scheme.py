from extensions import db


class Scheme(db.Model):
    """Knowledge record the automated responder may cite."""
    __tablename__ = 'schemes'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text)
    ministry = db.Column(db.String(200))
    category = db.Column(db.String(100))
    benefits = db.Column(db.JSON, default=list)
    link = db.Column(db.String(500))

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "ministry": self.ministry,
            "category": self.category,
            "benefits": list(self.benefits or []),
            "link": self.link
        }
