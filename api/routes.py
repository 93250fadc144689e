"""
Status route.
"""
import logging
from fastapi import APIRouter
from fastapi.responses import PlainTextResponse

from facetrust.config import Settings

router = APIRouter()
settings = Settings()
logger = logging.getLogger(__name__)


@router.get("/", response_class=PlainTextResponse)
def status() -> str:
    """
    Liveness check for the face-recognition server.

    Returns:
        str: Fixed status message, whatever the request carried.
    """
    logger.debug("[api] GET /")
    return settings.STATUS_MESSAGE
