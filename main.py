from fastapi import FastAPI, HTTPException, Request, Depends
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
import structlog
import io
import time
from contextlib import asynccontextmanager

from models import ReplayRequest, ReplayResponse, ErrorResponse, HealthResponse
from services import TransactionEngine, get_transaction_engine
from records import read_records, write_accounts
from config import get_settings
from logging_config import configure_logging

settings = get_settings()

# Configure structured logging
configure_logging(settings)

logger = structlog.get_logger()

# Rate limiting
limiter = Limiter(key_func=get_remote_address, enabled=settings.enable_rate_limit)
RATE_LIMIT = f"{settings.rate_limit_per_minute}/minute"

# Application lifespan
@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info("Starting Payment Engine API", version=settings.app_version)
    yield
    # Shutdown
    logger.info("Shutting down Payment Engine API")

# Create FastAPI app
app = FastAPI(
    title=settings.app_name,
    description="Replays batches of deposits, withdrawals and disputes and returns the resulting client accounts",
    version=settings.app_version,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# Add rate limiting
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=settings.allowed_methods,
    allow_headers=settings.allowed_headers,
)

# Request logging middleware
@app.middleware("http")
async def log_requests(request: Request, call_next):
    start_time = time.time()

    # Log request
    logger.info(
        "Request started",
        method=request.method,
        url=str(request.url),
        client_ip=request.client.host if request.client else None
    )

    response = await call_next(request)

    # Log response
    process_time = time.time() - start_time
    logger.info(
        "Request completed",
        method=request.method,
        url=str(request.url),
        status_code=response.status_code,
        process_time=round(process_time, 4)
    )

    return response

# Health check endpoint
@app.get(
    "/health",
    response_model=HealthResponse,
    summary="Health Check",
    description="Check API health"
)
async def health_check():
    return HealthResponse(status="healthy", version=settings.app_version)

# Replay a JSON batch
@app.post(
    "/replay",
    response_model=ReplayResponse,
    summary="Replay Transactions",
    description="Apply a batch of transaction records to a fresh set of accounts",
    responses={
        200: {"description": "Batch replayed; rejected records are listed in errors"},
        422: {"description": "Validation error"},
        429: {"description": "Rate limit exceeded"},
        500: {"description": "Internal server error"}
    }
)
@limiter.limit(RATE_LIMIT)
def replay_transactions(
    request: Request,
    replay_request: ReplayRequest,
    engine: TransactionEngine = Depends(get_transaction_engine)
):
    logger.info("Replay request received", records=len(replay_request.records))

    summary = engine.replay(replay_request.records)
    accounts = list(engine.snapshots(
        sort=settings.sort_output, places=settings.output_precision
    ))

    return ReplayResponse(**summary.model_dump(), accounts=accounts)

# Raw request body for the CSV endpoint
async def read_body(request: Request) -> bytes:
    return await request.body()

# Replay a CSV batch
@app.post(
    "/replay/csv",
    summary="Replay Transactions CSV",
    description="Apply a CSV of transaction records and return the accounts as CSV",
    response_class=Response,
    responses={
        200: {"content": {"text/csv": {}}, "description": "Accounts CSV"},
        400: {"description": "Unreadable CSV"},
        429: {"description": "Rate limit exceeded"}
    }
)
@limiter.limit(RATE_LIMIT)
def replay_transactions_csv(
    request: Request,
    body: bytes = Depends(read_body),
    engine: TransactionEngine = Depends(get_transaction_engine)
):
    try:
        summary = engine.replay(read_records(io.StringIO(body.decode("utf-8-sig"))))
    except ValueError as e:
        logger.warning("Replay CSV rejected", error=str(e))
        raise HTTPException(status_code=400, detail=str(e))

    output = io.StringIO()
    write_accounts(output, engine.snapshots(
        sort=settings.sort_output, places=settings.output_precision
    ))

    return Response(
        content=output.getvalue(),
        media_type="text/csv",
        headers={
            "X-Records-Processed": str(summary.processed),
            "X-Records-Rejected": str(summary.rejected),
        }
    )

# Global exception handler
@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            detail=exc.detail,
            error_code=f"HTTP_{exc.status_code}"
        ).model_dump(mode="json")
    )

@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    logger.error(
        "Unhandled exception",
        error=str(exc),
        url=str(request.url),
        method=request.method,
        exc_info=True
    )

    return JSONResponse(
        status_code=500,
        content=ErrorResponse(
            detail="Internal server error",
            error_code="INTERNAL_ERROR"
        ).model_dump(mode="json")
    )

# Root endpoint
@app.get("/", include_in_schema=False)
async def root():
    return {"message": settings.app_name, "docs": "/docs"}

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower()
    )
