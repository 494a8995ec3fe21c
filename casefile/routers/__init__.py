"""API routers."""

from casefile.routers.intakes import router as intakes_router
