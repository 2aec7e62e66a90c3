"""Rate limiting configuration using slowapi.

The self-service payslip endpoint is the only public-facing read that
employees hit repeatedly; it carries its own per-route limit.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

limiter = Limiter(
    key_func=get_remote_address,
    default_limits=["120/minute"],
)
