import logging
import time

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import OperationalError

from infraflow import __version__
from infraflow.api.routes import router
from infraflow.config import CORS_ORIGINS, KNOWLEDGE_DATA_PATH
from infraflow.db.models import Base
from infraflow.db.session import engine
from infraflow.knowledge.store import load_knowledge_store
from infraflow.logging_config import configure_logging

logger = logging.getLogger(__name__)

app = FastAPI(
    title="InfraFlow",
    version=__version__,
)

# Middleware before routes
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(router)


@app.get("/health")
def health():
    return {"status": "ok", "version": __version__}


@app.on_event("startup")
def startup():
    configure_logging()

    # no knowledge corpus, no service: KnowledgeLoadError propagates
    store = load_knowledge_store(KNOWLEDGE_DATA_PATH or None)
    logger.info("Knowledge store ready: %s", store.stats())

    retries = 5
    delay = 2

    for attempt in range(retries):
        try:
            Base.metadata.create_all(bind=engine)
            logger.info("Database connected")
            return
        except OperationalError:
            logger.warning("Waiting for database... (%d/%d)", attempt + 1, retries)
            time.sleep(delay)

    # the core does not need persistence to serve parse/risk requests
    logger.warning("Database not ready, running without persistence")
