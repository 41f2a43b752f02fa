"""
Site content model - key/value content managed from the admin panel.
"""

import uuid
from typing import Any
from datetime import datetime, timezone

from sqlalchemy import DateTime, JSON, String
from sqlalchemy.orm import Mapped, mapped_column

from assistant_gateway.db.base import Base


class SiteContent(Base):
    """
    SQLAlchemy ORM model for the 'site_content' table.

    Values are arbitrary JSON: strings, lists of skills, project objects.
    """

    __tablename__ = "site_content"

    id: Mapped[str] = mapped_column(
        String(64), primary_key=True, default=lambda: uuid.uuid4().hex
    )
    key: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    value: Mapped[Any] = mapped_column(JSON, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
