from .info import router as info_router
from .visits import router as visits_router

_routers = [info_router, visits_router]

__all__ = ["get_routers"]


def get_routers():
    return _routers
