"""Local development access without a token.

With ``AUTH_DEV_BYPASS=true`` a request that carries no Authorization
header runs as a synthetic ADMIN, so the field and option admin endpoints
can be driven from a browser. ``ENVIRONMENT=production`` always wins over
the flag, and a request that does carry a token is verified as usual.
"""

from __future__ import annotations

import logging
import os

logger = logging.getLogger(__name__)

DEV_BYPASS_CLAIMS: dict[str, object] = {
    "sub": "dev-bypass",
    "role": "ADMIN",
    "email": "dev-bypass@localhost",
}


def resolve_dev_bypass(requested: bool) -> bool:
    """Whether the bypass is in effect for this process.

    Args:
        requested: Value of the ``AUTH_DEV_BYPASS`` setting.

    Returns:
        ``requested``, unless ``ENVIRONMENT`` is ``production``.
    """
    if not requested:
        return False

    environment = os.environ.get("ENVIRONMENT", "development")
    if environment == "production":
        logger.error("auth_dev_bypass_blocked", extra={"environment": environment})
        return False

    logger.warning("auth_dev_bypass_active", extra={"environment": environment})
    return True
