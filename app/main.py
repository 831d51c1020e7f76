import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.auth import router as auth_router
from app.api.invoices import router as invoices_router
from app.api.jobs import router as jobs_router
from app.api.tracking import router as tracking_router
from app.config import settings
from app.db.engine import get_engine, init_db, seed_admin
from app.exceptions import register_exception_handlers

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s [%(levelname)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    engine = get_engine()
    init_db(engine)
    seed_admin(engine, settings.ADMIN_USERNAME, settings.ADMIN_PASSWORD)
    logger.info("Database ready at %s", engine.url.render_as_string(hide_password=True))
    yield


app = FastAPI(
    title="Well Reach Logistics Operations API",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)


@app.get("/health")
def health_check():
    return {"status": "ok"}

app.include_router(auth_router)
app.include_router(jobs_router)
app.include_router(invoices_router)
app.include_router(tracking_router)
