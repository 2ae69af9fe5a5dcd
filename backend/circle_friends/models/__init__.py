from .friendship import Friendship
from .notification import Notification
from .user import User

__all__ = [
    "User",
    "Friendship",
    "Notification",
]
