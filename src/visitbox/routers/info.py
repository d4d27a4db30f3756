from fastapi import APIRouter
from fastapi.responses import PlainTextResponse

from visitbox.shared import Logger

logger = Logger(__name__).get_logger()

router = APIRouter()

LIVENESS_MESSAGE = "Visit counter is up and running...."


@router.get("/info", response_class=PlainTextResponse)
async def info():
    """Liveness probe. Never touches the store."""
    return LIVENESS_MESSAGE
