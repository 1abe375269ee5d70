from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
import uvicorn

from config import get_settings
from database import check_connection
from logging_config import get_logger, setup_logging
from routers import metrics_router, orders_router, payments_router
from services.errors import (
    ConcurrencyConflict,
    LedgerError,
    NotFoundError,
    OverpaymentPolicyViolation,
    ValidationError,
)

settings = get_settings()
setup_logging(settings)
logger = get_logger(__name__)

# HTTP status per error family
ERROR_STATUS = {
    ValidationError: 400,
    NotFoundError: 404,
    ConcurrencyConflict: 409,
    OverpaymentPolicyViolation: 422,
}

# App instance
app = FastAPI(title="Order Payment Ledger")

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def status_for(exc: LedgerError) -> int:
    for error_type, status_code in ERROR_STATUS.items():
        if isinstance(exc, error_type):
            return status_code
    return 400


@app.exception_handler(LedgerError)
async def ledger_error_handler(request: Request, exc: LedgerError):
    status_code = status_for(exc)
    logger.info(
        "ledger_error",
        path=request.url.path,
        error=exc.kind,
        code=exc.code,
        status=status_code,
    )
    return JSONResponse(status_code=status_code, content=exc.to_dict())


@app.get("/health")
def health():
    database_ok = check_connection()
    return JSONResponse(
        status_code=200 if database_ok else 503,
        content={"status": "ok" if database_ok else "degraded", "database": database_ok},
    )


app.include_router(payments_router)
app.include_router(orders_router)
app.include_router(metrics_router)

# 404 Fallback Middleware
@app.middleware("http")
async def not_found_middleware(request: Request, call_next):
    try:
        response = await call_next(request)
        # Only unmatched routes; ledger 404s keep their own body
        if response.status_code == 404 and "endpoint" not in request.scope:
            return JSONResponse(status_code=404, content={"error": "Route not found"})
        return response
    except Exception:
        logger.exception("unhandled_error", path=request.url.path)
        return JSONResponse(status_code=500, content={"error": "Internal server error"})

if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=settings.port, reload=True)
