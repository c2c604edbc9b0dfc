"""User model definitions."""

from sqlalchemy import Column, Integer, String
from medibook.database import Base


class User(Base):
    """Represents a principal known to the identity directory."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True)
    name = Column(String)
    role = Column(String)  # provider/requester
    specialty = Column(String)
