"""REST API module for the art marketplace.

This module provides HTTP endpoints for:
- Registration, login and the current user
- Artworks, likes and comments
- Artist profiles, statistics and the follow graph
- Carts, orders and reviews
- The notification inbox and its realtime stream
- Newsletter subscriptions, exhibitions and artist verification
- Page view analytics
- Admin moderation
- System health monitoring

Every response uses the {success, data?, message?} envelope; errors raised
by the managers are rendered by the exception handlers registered here.
"""

import logging
import asyncio
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from config import settings_conf
from database import close as db_close
from errors import MarketError
from notifications import wait_pending
from workers.reconcile_counters import run_worker as run_reconcile_worker
from .responses import ok, error

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Seconds to wait for queued notifications on shutdown
NOTIFICATION_DRAIN_TIMEOUT = 5

# Lifecycle management
@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle startup and shutdown events."""
    # Startup
    logger.info("Initializing API...")
    # The database is initialized in __main__.py before the server starts
    
    reconcile_task = None
    interval = settings_conf['reconcile_interval']
    if interval > 0:
        reconcile_task = asyncio.create_task(run_reconcile_worker(interval))
        logger.info(f"Started counter reconciliation task (every {interval} seconds)")
    
    yield
    
    # Shutdown
    logger.info("Shutting down API...")
    if reconcile_task:
        reconcile_task.cancel()
        try:
            await reconcile_task
        except asyncio.CancelledError:
            pass
    
    remaining = await wait_pending(NOTIFICATION_DRAIN_TIMEOUT)
    if remaining:
        logger.warning(f"{remaining} notifications still pending at shutdown")
    
    await db_close()

# Create FastAPI app
app = FastAPI(
    title="Art Marketplace API",
    description="REST API for the art marketplace",
    version="1.0.0",
    lifespan=lifespan
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings_conf['cors_origins'],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.exception_handler(MarketError)
async def market_error_handler(request: Request, exc: MarketError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=error(exc.message))

@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content=error(str(exc.detail)),
        headers=getattr(exc, 'headers', None)
    )

@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = '.'.join(str(part) for part in first.get('loc', ())[1:])
        message = f"{field}: {first.get('msg')}" if field else first.get('msg', 'Invalid request')
    else:
        message = 'Invalid request'
    return JSONResponse(status_code=400, content=error(message))

@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content=error("Internal server error"))

@app.get("/")
async def root():
    """Root endpoint."""
    return ok({'name': app.title, 'version': app.version})

# Import and include all routers
from .auth import router as auth_router
from .artworks import router as artworks_router
from .comments import router as comments_router
from .artists import router as artists_router
from .cart import router as cart_router
from .orders import router as orders_router
from .reviews import router as reviews_router
from .notifications import router as notifications_router
from .newsletter import router as newsletter_router
from .exhibitions import router as exhibitions_router
from .verification import router as verification_router
from .analytics import router as analytics_router
from .admin import router as admin_router
from .websockets import router as websocket_router
from .system import router as system_router

# Include all routers
app.include_router(auth_router)
app.include_router(artworks_router)
app.include_router(comments_router)
app.include_router(artists_router)
app.include_router(cart_router)
app.include_router(orders_router)
app.include_router(reviews_router)
app.include_router(notifications_router)
app.include_router(newsletter_router)
app.include_router(exhibitions_router)
app.include_router(verification_router)
app.include_router(analytics_router)
app.include_router(admin_router)
app.include_router(websocket_router)
app.include_router(system_router)
