# storefront/data/database.py
import time
from contextlib import contextmanager
from typing import Callable, Iterator, TypeVar

from fastapi import Request
from sqlalchemy import create_engine, event, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from storefront.domain.errors import TransactionTimeout
from storefront.utils.logging import get_logger
from storefront.utils.settings import ITEM_TX_TIMEOUT_SECONDS

logger = get_logger(__name__)

Base = declarative_base()

T = TypeVar("T")


class Database:
    """
    Handle na relacyjny store (engine + fabryka sesji).

    Tworzony raz przy starcie procesu (lifespan FastAPI / worker celery),
    zamykany przez dispose() przy zamknieciu.
    """

    def __init__(
        self,
        url: str,
        *,
        echo: bool = False,
        isolation_level: str | None = None,
        busy_timeout: float = ITEM_TX_TIMEOUT_SECONDS,
    ):
        self.url = url
        self.is_sqlite = url.startswith("sqlite")
        self.busy_timeout = busy_timeout

        if self.is_sqlite:
            # czekanie na blokade zapisu nie dluzsze niz limit transakcji
            self.engine = create_engine(
                url,
                echo=echo,
                connect_args={"check_same_thread": False, "timeout": busy_timeout},
            )
            self._serialize_sqlite_writers()
        else:
            self.engine = create_engine(
                url,
                echo=echo,
                pool_pre_ping=True,
                isolation_level=isolation_level,
            )

        self.SessionLocal = sessionmaker(
            bind=self.engine,
            autoflush=True,
            expire_on_commit=False,
        )
        logger.info(f"Database handle opened ({self.engine.dialect.name})")

    def _serialize_sqlite_writers(self) -> None:
        # pysqlite otwiera transakcje dopiero przy pierwszym DML, wiec SELECT
        # przed UPDATE czytalby poza transakcja. BEGIN IMMEDIATE bierze
        # blokade zapisu od razu.
        @event.listens_for(self.engine, "connect")
        def _on_connect(dbapi_connection, connection_record):
            dbapi_connection.isolation_level = None

        @event.listens_for(self.engine, "begin")
        def _on_begin(conn):
            conn.exec_driver_sql("BEGIN IMMEDIATE")

    def create_all(self) -> None:
        # rejestracja modeli w Base.metadata
        import storefront.data.models  # noqa: F401

        Base.metadata.create_all(bind=self.engine)
        logger.info(f"Tables ready: {sorted(Base.metadata.tables.keys())}")

    def dispose(self) -> None:
        self.engine.dispose()
        logger.info("Database handle closed")

    @contextmanager
    def session(self) -> Iterator[Session]:
        """Sesja tylko do odczytu (query po stronie fasady)."""
        db = self.SessionLocal()
        try:
            yield db
        finally:
            db.close()

    def run_in_transaction(self, fn: Callable[[Session], T], timeout: float) -> T:
        """
        Wykonuje fn(session) w jednej transakcji: commit przy sukcesie,
        rollback przy dowolnym wyjatku.

        Limit czasu: na PostgreSQL statement_timeout po stronie bazy, dla
        kazdego store'a kontrola czasu przed commitem.
        """
        started = time.monotonic()
        with self.SessionLocal() as session:
            try:
                with session.begin():
                    if self.engine.dialect.name == "postgresql":
                        session.execute(
                            text(f"SET LOCAL statement_timeout = {int(timeout * 1000)}")
                        )

                    result = fn(session)
                    session.flush()

                    elapsed = time.monotonic() - started
                    if elapsed > timeout:
                        raise TransactionTimeout(timeout, elapsed)

                return result

            except SQLAlchemyError as e:
                logger.error(f"Transaction rolled back after store error: {e}")
                raise


def get_database(request: Request) -> Database:
    return request.app.state.database
