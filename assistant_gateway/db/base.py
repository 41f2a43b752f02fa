"""
Declarative base - every ORM model inherits from Base.
Tables are registered on Base.metadata when assistant_gateway.models is imported.
"""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """SQLAlchemy 2.0 declarative base class."""
    pass
