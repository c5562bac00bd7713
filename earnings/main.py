import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from earnings.core.config import settings
from earnings.core.errors import LedgerError
from earnings.core.log_config import configure_logging
import earnings.models  # noqa: F401  # force model registration

from earnings.api.v1.events import router as events_router
from earnings.api.v1.partners import router as partners_router
from earnings.api.v1.commissions import router as commissions_router
from earnings.api.v1.payouts import router as payouts_router
from earnings.api.v1.ledger import router as ledger_router
from earnings.api.v1.platform_partners import router as platform_partners_router
from earnings.api.v1.platform_campaigns import router as platform_campaigns_router
from earnings.api.v1.platform_jobs import router as platform_jobs_router

logger = logging.getLogger(__name__)


def create_application() -> FastAPI:
    configure_logging(settings.LOG_LEVEL)

    app = FastAPI(title="Earnings Ledger API")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[
            # Local development (dashboard frontend)
            "http://localhost:5173",
            "http://127.0.0.1:5173",
            "http://localhost:3000",
        ],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(LedgerError)
    async def ledger_error_handler(request: Request, exc: LedgerError):
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s (%s)", request.method, request.url.path, exc.message, exc.code)
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.to_detail()})

    @app.get("/")
    def root():
        return {"status": "ok", "service": "earnings-ledger"}

    # Routers
    app.include_router(events_router, prefix="/api/v1")
    app.include_router(partners_router, prefix="/api/v1")
    app.include_router(commissions_router, prefix="/api/v1")
    app.include_router(payouts_router, prefix="/api/v1")
    app.include_router(ledger_router, prefix="/api/v1")
    app.include_router(platform_partners_router, prefix="/api/v1")
    app.include_router(platform_campaigns_router, prefix="/api/v1")
    app.include_router(platform_jobs_router, prefix="/api/v1")

    return app


app = create_application()
