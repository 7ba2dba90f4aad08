"""Select the booking store implementation from configuration."""

from rentpay.common.config import Settings
from rentpay.common.db import Base, make_engine, make_session_factory
from rentpay.common.logging import logger
from rentpay.storage.base import BookingStore
from rentpay.storage.memory import InMemoryBookingStore
from rentpay.storage.sql import SqlBookingStore


def build_store(config: Settings) -> BookingStore:
    """Return the durable SQL store or the in-memory double per `STORAGE_BACKEND`."""

    if config.storage_backend == "memory":
        logger.warning("using in-memory booking store; state is lost on restart")
        return InMemoryBookingStore()

    engine = make_engine(config.database_url)
    if config.auto_create_schema:
        # Local/dev convenience; production schemas come from Alembic.
        Base.metadata.create_all(engine)
    return SqlBookingStore(make_session_factory(engine))
