from .auth_service import AuthService
from .mailers import LoggingMailer, SMTPMailer

__all__ = ["AuthService", "LoggingMailer", "SMTPMailer"]
