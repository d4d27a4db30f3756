from typing import Annotated

from fastapi import APIRouter, Depends, Request
from fastapi.responses import PlainTextResponse

from visitbox.core.counter import VisitCounter
from visitbox.shared import Logger
from visitbox.shared.http import server_error_handler

logger = Logger(__name__).get_logger()

router = APIRouter()


def get_counter(request: Request) -> VisitCounter:
    return request.app.state.counter


@router.get("/visits", response_class=PlainTextResponse)
async def visits(counter: Annotated[VisitCounter, Depends(get_counter)]):
    """
    Record a visit and report how many came before it.

    Store failures become a 500, never a made-up count.
    """
    with server_error_handler():
        previous = await counter.record_visit()

    logger.info("Visit recorded, %s before this one", previous)
    return f"Number of Visits {previous}"
