import logging
from contextlib import contextmanager

from fastapi import HTTPException

from visitbox.core.errors import StoreUnavailable
from visitbox.shared import Logger

__all__ = ["server_error_handler"]

logger = Logger(__name__, level=logging.DEBUG).get_logger()


@contextmanager
def server_error_handler(stacklevel=1):
    # Go 3 levels up to escape @contextmanager methods and current function
    stack_level = 2 + stacklevel
    kw = {"stacklevel": stack_level}
    try:
        yield

    except HTTPException:
        raise

    except StoreUnavailable as e:
        # Outage of a collaborator, the counter already logged the details
        logger.warning("Store unavailable while processing request: %s", e, **kw)
        raise HTTPException(status_code=500, detail=str(e)) from e

    except Exception as e:
        logger.exception("Failed to process request: %s", e, **kw)
        raise HTTPException(status_code=500, detail=str(e)) from e
