import secrets

import structlog
from fastapi import Header, HTTPException

from skinwatch.core.config import settings
from skinwatch.core.exceptions import ConfigurationError

logger = structlog.get_logger(__name__)


def verify_cron_secret(authorization: str | None = Header(None)) -> None:
    """
    Guard for the scheduled sweep trigger.
    Expects `Authorization: Bearer <CRON_SECRET>`.
    """
    expected = settings.CRON_SECRET
    if not expected:
        logger.error("cron.secret_not_configured")
        raise ConfigurationError("CRON_SECRET not configured")

    if not authorization:
        raise HTTPException(status_code=401, detail="Unauthorized")

    if not secrets.compare_digest(authorization, f"Bearer {expected}"):
        logger.warning("cron.unauthorized")
        raise HTTPException(status_code=401, detail="Unauthorized")
