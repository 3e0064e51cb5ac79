"""
Read-only keyword lookup over the knowledge records (schemes) that ground
automated replies.
"""

from dataclasses import dataclass, field
from typing import List, Optional

from sqlalchemy import or_

from extensions import db
from models.scheme import Scheme

# Narrow, hand-picked broadenings: a trigger word in the message also matches
# records whose *name* contains the target. Not a general synonym table.
KEYWORD_EXPANSIONS = {
    "farmer": "Kisan",
}


@dataclass(frozen=True)
class KnowledgeRecord:
    name: str
    description: str = ""
    benefits: List[str] = field(default_factory=list)
    link: str = ""

    @classmethod
    def from_scheme(cls, scheme):
        return cls(
            name=scheme.name,
            description=scheme.description or "",
            benefits=list(scheme.benefits or []),
            link=scheme.link or ""
        )


def _like_pattern(text):
    escaped = text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def expanded_terms(text, expansions=None):
    """Name terms triggered by keyword expansion for ``text``."""
    expansions = KEYWORD_EXPANSIONS if expansions is None else expansions
    lowered = text.lower()
    return [target for keyword, target in expansions.items() if keyword in lowered]


class KnowledgeStore:

    def __init__(self, limit=2, keyword_expansion=True, expansions=None):
        self.limit = limit
        self.keyword_expansion = keyword_expansion
        self.expansions = expansions

    def search(self, text, limit: Optional[int] = None) -> List[KnowledgeRecord]:
        """
        Records whose name, description, ministry or category contains the
        raw message text (case-insensitive), plus any keyword expansions.
        """
        text = (text or "").strip()
        if not text:
            return []

        pattern = _like_pattern(text)
        conditions = [
            Scheme.name.ilike(pattern, escape="\\"),
            Scheme.description.ilike(pattern, escape="\\"),
            Scheme.ministry.ilike(pattern, escape="\\"),
            Scheme.category.ilike(pattern, escape="\\"),
        ]
        if self.keyword_expansion:
            for term in expanded_terms(text, self.expansions):
                conditions.append(Scheme.name.ilike(_like_pattern(term), escape="\\"))

        schemes = db.session.query(Scheme).filter(or_(*conditions)) \
            .order_by(Scheme.id.asc()) \
            .limit(limit or self.limit) \
            .all()
        return [KnowledgeRecord.from_scheme(s) for s in schemes]
