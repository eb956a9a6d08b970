import logging
from typing import Optional

from fastapi import FastAPI

# Imports de l'application
from app.core.config import settings
from app.core.errors import register_exception_handlers
from app.api.v1.api import api_router
from app.db.session import Database, build_database

# --- Configuration du logging ---
logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


def create_app(database: Optional[Database] = None) -> FastAPI:
    """Construit l'application FastAPI.

    ``database`` permet d'injecter une base déjà prête (tests); sinon elle est
    construite au démarrage à partir de ``settings.DATABASE_URL``.
    """
    app = FastAPI(
        title="Math Learning API",
        openapi_url="/api/openapi.json",
    )
    app.state.database = database

    register_exception_handlers(app)
    app.include_router(api_router, prefix="/api")

    # --- Événements de cycle de vie ---
    @app.on_event("startup")
    def startup():
        if app.state.database is None:
            app.state.database = build_database()
        logger.info("Vérification et création des tables de la base de données...")
        app.state.database.create_all()
        logger.info("✅ Les tables de la base de données sont prêtes (%s).", app.state.database.dialect)

    @app.on_event("shutdown")
    def shutdown():
        if app.state.database is not None:
            app.state.database.dispose()
            logger.info("Pool de connexions fermé.")

    # --- Route Racine ---
    @app.get("/")
    def read_root():
        return {"message": "Welcome to the Math Learning API!"}

    return app


app = create_app()
