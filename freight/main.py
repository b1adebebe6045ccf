from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from contextlib import asynccontextmanager
from freight.config import settings
from freight.database import init_db, close_db, init_redis
from freight.exceptions import FreightError
from freight.services.notification_service import ConnectionManager, NotificationService
from freight.utils.response import error_response
from freight.api.v1 import admin, auth, bidding, load_assignments, loads, vehicles, websocket
import asyncio
import logging

# Configure logging
logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

async def stop_relay(task: asyncio.Task):
    """Cancel the notification relay; a relay that already died is logged"""
    task.cancel()
    try:
        await task
    except asyncio.CancelledError:
        pass
    except Exception:
        logger.error("Notification relay stopped with an error", exc_info=True)

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifecycle events"""
    # Startup
    logger.info("Starting up...")
    await init_db()

    relay_task = None
    redis_client = await init_redis()
    if redis_client is not None:
        app.state.notifier.redis = redis_client
        relay_task = asyncio.create_task(app.state.notifier.relay_redis_events())

    yield

    # Shutdown
    logger.info("Shutting down...")
    if relay_task is not None:
        await stop_relay(relay_task)
    await close_db()

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    lifespan=lifespan
)

# Built once per process and injected into handlers
app.state.connections = ConnectionManager()
app.state.notifier = NotificationService(app.state.connections)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Exception handlers
@app.exception_handler(FreightError)
async def freight_exception_handler(request: Request, exc: FreightError):
    return JSONResponse(status_code=exc.status_code, content=error_response(exc.message))

@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content=error_response(str(exc.detail)),
        headers=getattr(exc, "headers", None)
    )

@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=422,
        content=error_response("Validation failed", jsonable_encoder(exc.errors()))
    )

@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Global exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content=error_response("Internal server error")
    )

# Health check
@app.get("/health")
async def health_check():
    return {
        "status": "healthy",
        "app": settings.APP_NAME,
        "version": settings.APP_VERSION
    }

# Include routers
app.include_router(auth.router, prefix=settings.API_V1_PREFIX)
app.include_router(loads.router, prefix=settings.API_V1_PREFIX)
app.include_router(vehicles.router, prefix=settings.API_V1_PREFIX)
app.include_router(bidding.router, prefix=settings.API_V1_PREFIX)
app.include_router(load_assignments.router, prefix=settings.API_V1_PREFIX)
app.include_router(admin.router, prefix=settings.API_V1_PREFIX)
app.include_router(websocket.router)

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("freight.main:app", host="0.0.0.0", port=8000, reload=settings.DEBUG)
