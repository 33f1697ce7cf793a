"""
CampusConnect — ORM model registry.

Importing every model here ensures that Alembic (and any other tool that
inspects ``Base.metadata``) discovers all tables automatically.
"""

from app.models.user import User
from app.models.match import Match, Message
from app.models.event import Event
from app.models.compliment import Compliment

__all__ = [
    "User",
    "Match",
    "Message",
    "Event",
    "Compliment",
]
