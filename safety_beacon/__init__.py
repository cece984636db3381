"""Session and bookmark-navigation core for the Safety Beacon client."""

from .context import BeaconContext
from .domain import Annotation, Bookmark, Coordinate, Credentials, PostalAddress
from .session import Role, Session
from .session_manager import SessionManager
from .bookmarks import BookmarkNavigator

__all__ = [
    "Annotation",
    "BeaconContext",
    "Bookmark",
    "BookmarkNavigator",
    "Coordinate",
    "Credentials",
    "PostalAddress",
    "Role",
    "Session",
    "SessionManager",
]
