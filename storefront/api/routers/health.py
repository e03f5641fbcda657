from fastapi import APIRouter, Depends
from sqlalchemy import text

from storefront.data.database import Database, get_database

router = APIRouter(tags=["health"])


@router.get("/health")
def health(database: Database = Depends(get_database)):
    with database.session() as db:
        db.execute(text("SELECT 1"))
    return {"status": "ok"}
