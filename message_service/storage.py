import logging
from abc import ABC, abstractmethod
from typing import Generator, List, Optional

from fastapi import Depends
from sqlalchemy import create_engine, inspect, text
from sqlalchemy.orm import sessionmaker, Session, declarative_base

from message_service.config import settings
from message_service.schemas import MessageCreate, MessageResponse
from message_service.utils import resolve_message_id

logger = logging.getLogger(__name__)

# SQLite connections are shared across FastAPI's threadpool workers
connect_args = {"check_same_thread": False} if settings.DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(
    settings.DATABASE_URL,
    connect_args=connect_args,
    echo=False,
)

# Create SessionLocal class for creating database sessions
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Base class for SQLAlchemy models
Base = declarative_base()


def init_db() -> None:
    """
    Initialize the database by creating all tables.
    Called during application startup.
    """
    logger.debug(f"Initializing database with URL: {engine.url!r}")
    try:
        # Import models to register them with Base.metadata
        from message_service.models import Message  # noqa: F401

        Base.metadata.create_all(bind=engine)
        logger.info("Database initialized successfully")
    except Exception as e:
        logger.error(f"Failed to initialize database: {e}")
        raise


def get_db() -> Generator[Session, None, None]:
    """
    Dependency to get database session.
    Yields a session and ensures it's closed after use.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def check_db_health() -> bool:
    """
    Check if the database is reachable and schema is applied.

    Returns:
        True if DB is healthy and the messages table exists, False otherwise.
    """
    try:
        with SessionLocal() as db:
            db.execute(text("SELECT 1"))
        if not inspect(engine).has_table("messages"):
            logger.error("Database schema not applied: 'messages' table not found")
            return False
        return True
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return False


# =============================================================================
# Message Stores
# =============================================================================

class MessageStore(ABC):
    """
    Persistence of {id, text} messages in the messages table.

    Storage errors are not caught here beyond rolling back the session;
    they propagate to the caller.
    """

    def __init__(self, db: Session):
        self.db = db

    @abstractmethod
    def insert(self, message: MessageCreate) -> MessageResponse:
        """Persist a message, assigning a random id when none is given."""

    @abstractmethod
    def list_all(self) -> List[MessageResponse]:
        """Return every stored message, unordered."""

    @abstractmethod
    def find_by_id(self, message_id: str) -> Optional[MessageResponse]:
        """Return the message with exactly this id, or None."""


class SqlMessageStore(MessageStore):
    """
    MessageStore issuing parameterized SQL statements.

    Inserting an id that already exists violates the primary key and
    raises IntegrityError.
    """

    def insert(self, message: MessageCreate) -> MessageResponse:
        message_id = resolve_message_id(message.id)
        logger.info(f"Inserting message: id={message_id}")
        try:
            self.db.execute(
                text("INSERT INTO messages (id, text) VALUES (:id, :text)"),
                {"id": message_id, "text": message.text},
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return MessageResponse(id=message_id, text=message.text)

    def list_all(self) -> List[MessageResponse]:
        rows = self.db.execute(text("SELECT id, text FROM messages")).all()
        logger.debug(f"Retrieved {len(rows)} messages")
        return [MessageResponse.model_validate(row) for row in rows]

    def find_by_id(self, message_id: str) -> Optional[MessageResponse]:
        row = self.db.execute(
            text("SELECT id, text FROM messages WHERE id = :id"),
            {"id": message_id},
        ).first()
        logger.debug(f"Message lookup {message_id}: {'found' if row else 'not found'}")
        return MessageResponse.model_validate(row) if row is not None else None


class OrmMessageStore(MessageStore):
    """
    MessageStore backed by the mapped Message entity.

    Inserting an id that already exists replaces that row's text.
    """

    def insert(self, message: MessageCreate) -> MessageResponse:
        from message_service.models import Message

        message_id = resolve_message_id(message.id)
        logger.info(f"Saving message: id={message_id}")
        try:
            self.db.merge(Message(id=message_id, text=message.text))
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return MessageResponse(id=message_id, text=message.text)

    def list_all(self) -> List[MessageResponse]:
        from message_service.models import Message

        messages = self.db.query(Message).all()
        logger.debug(f"Retrieved {len(messages)} messages")
        return [MessageResponse.model_validate(msg) for msg in messages]

    def find_by_id(self, message_id: str) -> Optional[MessageResponse]:
        from message_service.models import Message

        result = self.db.get(Message, message_id)
        logger.debug(f"Message lookup {message_id}: {'found' if result else 'not found'}")
        return MessageResponse.model_validate(result) if result is not None else None


STORE_BACKENDS = {
    "sql": SqlMessageStore,
    "orm": OrmMessageStore,
}


def get_store(db: Session = Depends(get_db)) -> MessageStore:
    """
    Dependency returning the MessageStore selected by STORE_BACKEND.
    """
    return STORE_BACKENDS[settings.STORE_BACKEND](db)
