import logging
import sys
from contextlib import asynccontextmanager

from fastapi import (
    FastAPI,
)
from fastapi.middleware.cors import CORSMiddleware

from visitbox.core.counter import VisitCounter
from visitbox.core.store import KeyValueStore, create_store
from visitbox.routers import get_routers
from visitbox.shared import Logger, load_config

logger = Logger(__name__, level=logging.DEBUG).get_logger()

config = load_config()


# ================================================================================
#       FastAPI Setup
# ================================================================================
def create_app(store: KeyValueStore | None = None) -> FastAPI:
    """
    Build the application.

    Without ``store`` a Redis client is created from the configuration at
    startup and closed at shutdown. A store passed in is used as is and left
    open.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = store is None
        kv = create_store(config.store) if owned else store

        counter = VisitCounter.from_settings(kv, config.store)
        # A store that is down at startup aborts the server
        await counter.initialize()
        app.state.counter = counter

        try:
            yield
        finally:
            if owned:
                await kv.aclose()
                logger.debug("Redis client closed")

    app = FastAPI(lifespan=lifespan)

    for router in get_routers():
        app.include_router(router)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    return app


app = create_app()


# ================================================================================
#       Command Line
# ================================================================================
def welcome():
    # Log server banner
    for line in config.general.title.split("\n"):
        logger.info(line)

    logger.info(
        "Counting visits under '%s' on %s:%s (%s mode)",
        config.store.key,
        config.store.host,
        config.store.port,
        config.store.mode,
    )


def main():
    welcome()

    import uvicorn

    # uvicorn exits non-zero by itself when the port cannot be bound
    uvicorn.run(
        "visitbox.main:app",
        host=config.network.host,
        port=config.network.port,
        reload=config.network.reload,
    )
    logger.info("Server on port %s stopped", config.network.port)
    return 0


if __name__ == "__main__":
    sys.exit(main())
