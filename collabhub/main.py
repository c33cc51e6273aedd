"""
collabhub API entry point.

On startup configures logging, creates missing tables and provisions the
first admin account.
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from collabhub.config import settings, setup_logging
from collabhub.api.v1.router import api_router
from collabhub.api.v1.helpers.authentication import JWTAuthenticationProvider
from collabhub.api.v1.helpers.responses import register_exception_handlers
from collabhub.db.session import create_tables, get_session_factory
from collabhub.bootstrap import ensure_default_admin
from logging import getLogger, Filter
import logging

logger = getLogger(__name__)
logger.setLevel(logging.INFO)


class HealthCheckFilter(Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        return record.getMessage().find("/health") == -1


logging.getLogger("uvicorn.access").addFilter(HealthCheckFilter())


app = FastAPI(title=settings.app_name, debug=settings.debug, redirect_slashes=False)
register_exception_handlers(app)


@app.on_event("startup")
async def startup_event():
    setup_logging()
    logger.info("--- Starting collabhub startup ---")

    app.state.authentication_provider = JWTAuthenticationProvider()

    if settings.create_tables_on_startup:
        await create_tables()

    session_factory = get_session_factory()
    async with session_factory() as db:
        try:
            await ensure_default_admin(db)
        except Exception as e:
            await db.rollback()
            logger.error(f"Warning: Error during bootstrap: {e}")

    logger.info("--- collabhub startup completed ---")


@app.on_event("shutdown")
async def shutdown_event():
    logger.info("--- Server shutting down! ---")

    from collabhub.db.session import dispose_engine

    await dispose_engine()
    logger.info("--- Database connections closed. ---")


app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router, prefix="/api/v1")


@app.get("/health")
def health_check():
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
