"""
Input checks shared by the authentication services.
"""

from typing import Optional

from ...core.config import Settings
from ...core.exceptions import MissingParametersError, ValidationError
from ...core.security import validate_password_strength


def require_parameters(**params: Optional[str]) -> None:
    """Raise MissingParametersError naming every absent or blank parameter."""
    missing = [name for name, value in params.items() if value is None or value == ""]
    if missing:
        raise MissingParametersError(details={"missing": missing})


def ensure_password_policy(password: str, settings: Settings, field: str = "password") -> None:
    is_valid, errors = validate_password_strength(password, settings)
    if not is_valid:
        raise ValidationError({field: errors})
