# storefront/main.py
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from storefront.api import include_routers
from storefront.data.database import Database
from storefront.utils.settings import DATABASE_URL, DB_ECHO, DB_ISOLATION_LEVEL
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


def create_app(database: Database | None = None) -> FastAPI:
    """
    Handle na baze otwierany przy starcie, zamykany przy shutdown.
    Testy wstrzykuja wlasny (sqlite).
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        db = database or Database(DATABASE_URL, echo=DB_ECHO, isolation_level=DB_ISOLATION_LEVEL)
        db.create_all()
        app.state.database = db
        logger.info("Storefront cart service started")
        try:
            yield
        finally:
            db.dispose()

    app = FastAPI(
        title="Storefront Cart Service",
        version="1.0.0",
        lifespan=lifespan,
    )
    return include_routers(app)


app = create_app()

if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)
