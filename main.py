from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from contextlib import asynccontextmanager
from controllers import home_controller, auth_controller, event_controller, subscription_controller, \
    notification_controller, user_controller, admin_user_controller, admin_event_controller, upload_controller
from fastapi.middleware.cors import CORSMiddleware
from config.settings import CORS_ORIGINS, LOG_LEVEL, LOG_FILE
from database import create_indexes
from middleware.rate_limiter import limiter
from slowapi.errors import RateLimitExceeded as SlowAPIRateLimitExceeded
from utils.logger import setup_logging
from utils.exceptions import (
    APIException,
    api_exception_handler,
    validation_exception_handler,
    http_exception_handler,
    general_exception_handler,
    invalid_id_handler,
)
from bson.errors import InvalidId

# Setup logging
logger = setup_logging(log_level=LOG_LEVEL, log_file=LOG_FILE)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize database indexes on application startup"""
    logger.info("Starting application...")
    await create_indexes()
    logger.info("Application started successfully")
    yield
    logger.info("Shutting down application...")


app = FastAPI(
    lifespan=lifespan,
    title="Event Hub API",
    description="API for event publishing, subscriptions, notifications and moderation",
    version="1.0.0"
)

app.state.limiter = limiter

# Register exception handlers
app.add_exception_handler(APIException, api_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(InvalidId, invalid_id_handler)
app.add_exception_handler(Exception, general_exception_handler)


@app.exception_handler(SlowAPIRateLimitExceeded)
async def rate_limit_handler(request: Request, exc: SlowAPIRateLimitExceeded):
    logger.warning(f"Rate limit exceeded for IP: {request.client.host}")
    response = JSONResponse(
        status_code=429,
        content={
            "success": False,
            "message": f"Rate limit exceeded: {exc.detail}. Please try again later.",
            "error_code": "RATE_LIMIT_EXCEEDED",
        }
    )
    response = request.app.state.limiter._inject_headers(
        response, request.state.view_rate_limit
    )
    return response

prefix = "/api"

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,  # session cookie
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(home_controller.router, prefix=prefix)
app.include_router(auth_controller.router, prefix=prefix)
app.include_router(event_controller.router, prefix=prefix)
app.include_router(subscription_controller.router, prefix=prefix)
app.include_router(notification_controller.router, prefix=prefix)
app.include_router(user_controller.router, prefix=prefix)
app.include_router(admin_user_controller.router, prefix=prefix)
app.include_router(admin_event_controller.router, prefix=prefix)
app.include_router(upload_controller.router, prefix=prefix)
