from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import logging

from .config import settings
from .routers import quantity

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("quantity_backend")

app = FastAPI(
    title=settings.APP_NAME,
    description="Quantity table calculation, field validation and suggestion services",
    version="1.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ALLOW_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# API routes
app.include_router(quantity.router, prefix="/api")


@app.get("/health")
def health():
    return {"status": "ok", "app": "quantity-backend"}


@app.on_event("startup")
def log_startup():
    logger.info("%s started (log level %s)", settings.APP_NAME, settings.LOG_LEVEL)
