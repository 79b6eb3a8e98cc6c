from fastapi import FastAPI
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from qrraffle.app.core.config import settings
from qrraffle.app.core.logging import setup_logging
from qrraffle.app.web.routes import limiter, router as api_router

DESCRIPTION = (
    "QR-code raffles: self-registration, draws, winner confirmation "
    "and talk attendance lists."
)


def create_app() -> FastAPI:
    """Build the qrraffle API. Run with ``uvicorn qrraffle.app.main:app``."""
    setup_logging()
    app = FastAPI(title=settings.project_name, description=DESCRIPTION)
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok", "environment": settings.environment}

    app.include_router(api_router)
    return app


app = create_app()
