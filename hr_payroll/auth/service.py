"""Access token issuing.

Tokens are issued by the HR portal's login flow; this service only needs to
mint them for operators and tests.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from jose import jwt

from hr_payroll.common.constants import UserRole
from hr_payroll.config import settings


def create_access_token(employee_code: str, role: UserRole) -> tuple[str, int]:
    """Return (encoded_jwt, expires_in_seconds)."""
    expires_in = settings.JWT_EXPIRY_HOURS * 3600
    payload = {
        "sub": employee_code,
        "role": role.value,
        "type": "access",
        "exp": datetime.now(timezone.utc) + timedelta(hours=settings.JWT_EXPIRY_HOURS),
    }
    token = jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)
    return token, expires_in
