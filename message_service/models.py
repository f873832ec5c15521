"""
SQLAlchemy ORM models for database tables.

For Pydantic request/response schemas, see schemas.py.
"""

from sqlalchemy import Column, String, Text

from message_service.storage import Base


class Message(Base):
    """
    SQLAlchemy model for stored messages.

    Table: messages
    Primary Key: id
    """
    __tablename__ = "messages"

    id = Column(String, primary_key=True)
    text = Column(Text, nullable=False)
