from .base import Base
from .user import User
from .user_record import UserRecord

__all__ = ["Base", "User", "UserRecord"]
