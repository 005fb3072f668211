"""
Downstream page-cache purge.

After post order changes, a front end that caches the post listing is asked
to refetch by hitting settings.REVALIDATE_URL. The call is best-effort: the
caller wraps it in error_boundary so a slow or failing front end never fails
the request that triggered it.
"""

import httpx

from app.core.config import settings
from app.core.logging_config import get_logger

logger = get_logger(__name__)

REVALIDATE_TIMEOUT_SECONDS = 5.0


def purge_post_cache() -> bool:
    """Returns False when no purge URL is configured."""
    if not settings.REVALIDATE_URL:
        return False

    response = httpx.get(
        settings.REVALIDATE_URL,
        params={"clearCache": "true"},
        timeout=REVALIDATE_TIMEOUT_SECONDS,
    )
    response.raise_for_status()
    logger.info("Post cache purged", status_code=response.status_code)
    return True
