import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, status
from marketplace.core.db import init_db, close_db
from marketplace.api.v1.orders import router as orders_router
from marketplace.api.v1.pickups import router as pickups_router
from marketplace.api.v1.locations import router as locations_router
from marketplace.api.v1.notifications import router as notifications_router
from marketplace.core.config import PROJECT_NAME, VERSION
from marketplace.core.exception_handlers import setup_exception_handlers
from marketplace.realtime.gateway import router as gateway_router
from marketplace.realtime.hub import TopicHub

logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
log = logging.getLogger("marketplace")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handles startup and shutdown events."""
    log.info(f"Starting {PROJECT_NAME} v{VERSION}...")
    await init_db() # Connect to DB and generate schemas
    yield
    await close_db()
    log.info(f"{PROJECT_NAME} stopped.")

app = FastAPI(
    title=PROJECT_NAME,
    version=VERSION,
    lifespan=lifespan,
    # Configure API documentation and paths
    docs_url="/docs",
    redoc_url="/redoc"
)

# One in-process registry of live sockets, shared by routes and the gateway
app.state.hub = TopicHub()

# Include routers for modular API structure
app.include_router(orders_router, prefix="/api/v1/orders", tags=["Order Management"])
app.include_router(pickups_router, prefix="/api/v1/pickups", tags=["Pickup & Drop"])
app.include_router(locations_router, prefix="/api/v1/me", tags=["Delivery Partner"])
app.include_router(notifications_router, prefix="/api/v1/me", tags=["Notifications"])
app.include_router(gateway_router, tags=["Real-time"])


setup_exception_handlers(app)

@app.get("/health", status_code=status.HTTP_200_OK)
async def health_check():
    """Simple health check endpoint."""
    return {"status": "ok", "app_name": PROJECT_NAME}
