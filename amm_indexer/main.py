# amm_indexer/main.py
from dotenv import load_dotenv
from fastapi import FastAPI
from sqlalchemy import text
import logging

load_dotenv()

from amm_indexer.api import api
from amm_indexer.config.settings import DATABASE_URL
from amm_indexer.storage.db import make_engine, make_session_factory
from amm_indexer.utils.log_utils import configure_logging

log = logging.getLogger(__name__)


def create_app(session_factory=None) -> FastAPI:
    if session_factory is None:
        session_factory = make_session_factory(make_engine(DATABASE_URL))

    app = FastAPI(title="AMM indexer")
    app.state.session_factory = session_factory
    app.include_router(api.router, prefix="/api")

    @app.on_event("startup")
    def check_db_connection():
        try:
            with session_factory() as db:
                db.execute(text("SELECT 1"))
            log.info("Database connected.")
        except Exception as e:
            log.error(f"DB connection failed: {e}")

    return app


configure_logging()
app = create_app()
