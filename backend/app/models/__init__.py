from app.models.user import User
from app.models.auth_event import AuthEvent

__all__ = [
    "User",
    "AuthEvent",
]
