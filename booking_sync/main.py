# booking_sync/main.py

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from booking_sync.config import ALLOWED_ORIGINS
from booking_sync.logging_config import setup_logging
from booking_sync.middleware import RequestIDMiddleware
from booking_sync.routes.bookings import router as bookings_router
from booking_sync.routes.health import router as health_router
from booking_sync.routes.integrations import router as integrations_router
from booking_sync.routes.metrics import router as metrics_router
from booking_sync.routes.rooms import router as rooms_router

# Initialize structured logging
setup_logging()
logger = structlog.get_logger(__name__)

app = FastAPI(
    title="Booking Sync API",
    description="Room availability, pricing and channel calendar synchronization",
    version="1.0.0",
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS if "*" not in ALLOWED_ORIGINS else ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestIDMiddleware)

# Register routers
app.include_router(health_router, tags=["Health"])
app.include_router(metrics_router, tags=["Metrics"])
app.include_router(rooms_router, tags=["Rooms"])
app.include_router(bookings_router, tags=["Bookings"])
app.include_router(integrations_router, tags=["Integrations"])
