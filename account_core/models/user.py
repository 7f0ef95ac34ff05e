"""
User record owned by the user store.
"""
from datetime import datetime, timezone
from typing import Any, Dict

from pydantic import BaseModel, ConfigDict, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(BaseModel):
    """
    A principal known to the account service.

    ``password_hash`` is excluded from every serialization; use
    ``to_public`` for anything that leaves the process.
    """

    model_config = ConfigDict(validate_assignment=True)

    username: str
    email: str
    full_name: str
    password_hash: str = Field(exclude=True, repr=False)
    verified: bool = False
    created_at: datetime = Field(default_factory=utcnow)

    def mark_verified(self) -> None:
        self.verified = True

    def set_password_hash(self, password_hash: str) -> None:
        self.password_hash = password_hash

    def to_public(self) -> Dict[str, Any]:
        """All fields except the password hash, JSON-ready"""
        return self.model_dump(mode="json")
