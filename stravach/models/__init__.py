from stravach.models.activity import UserActivity
from stravach.models.user import User

__all__ = [
    "User",
    "UserActivity",
]
