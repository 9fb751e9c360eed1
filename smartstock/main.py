import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from smartstock.api.routes.auth import router as auth_router
from smartstock.api.routes.inventory import router as inventory_router
from smartstock.api.routes.reject import router as reject_router
from smartstock.api.routes.reports import router as reports_router
from smartstock.api.routes.transactions import router as transactions_router
from smartstock.core.config import settings
from smartstock.db.database import SessionLocal, init_db
from smartstock.services.seed import bootstrap_admin, seed_demo_data

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI):
    if settings.auto_create_tables:
        init_db()
    db = SessionLocal()
    try:
        bootstrap_admin(db)
        if settings.seed_demo_data:
            seed_demo_data(db)
    finally:
        db.close()
    logger.info("%s started", settings.app_name)
    yield


app = FastAPI(title=settings.app_name, lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=list(settings.cors_origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(auth_router)
app.include_router(inventory_router)
app.include_router(transactions_router)
app.include_router(reject_router)
app.include_router(reports_router)


@app.get("/health", tags=["System"])
def health_check():
    return {"status": "ok"}
