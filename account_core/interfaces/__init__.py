"""
Capability contracts the account core depends on.
These Protocol classes let the core run against any user store, mailer or
code store, and let tests substitute fakes.
"""

from .code_store_interface import IOneTimeCodeStore
from .mailer_interface import IMailer
from .repository_interface import IUserRepository

__all__ = [
    "IOneTimeCodeStore",
    "IMailer",
    "IUserRepository",
]
