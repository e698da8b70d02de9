import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from src.case_ledger.api.case_router import case_router
from src.case_ledger.config.settings import LedgerSettings


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage FastAPI application lifecycle - startup and shutdown."""
    logger = logging.getLogger(__name__)
    logger.info("Starting case ledger API...")
    yield
    logger.info("Case ledger API shutdown complete")


def create_app(settings: LedgerSettings | None = None) -> FastAPI:
    settings = settings or LedgerSettings.from_env()

    logging.basicConfig(level=getattr(logging, settings.log_level, logging.INFO))
    # Quiet chatty HTTP client loggers unless debugging.
    if settings.log_level != "DEBUG":
        logging.getLogger("httpx").setLevel(logging.WARNING)
        logging.getLogger("urllib3").setLevel(logging.WARNING)

    app = FastAPI(title="Case Ledger", lifespan=lifespan)
    app.include_router(case_router, prefix="/api/v1")

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    return app


app = create_app()


# Run the app
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "src.case_ledger.app:app",
        host="127.0.0.1",
        port=8000,
        reload=True,
        log_level="info",
        access_log=False,
    )
