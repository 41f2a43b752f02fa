"""
AI provider config model - one upstream AI endpoint configured by the site owner.
Rows are ordered by priority to form the fallback chain.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from assistant_gateway.db.base import Base


class AIProviderConfig(Base):
    """
    SQLAlchemy ORM model for the 'ai_provider_configs' table.

    Example: an OpenRouter key with model "meta-llama/llama-3.3-70b-instruct"
    at priority 0, then an Anthropic key at priority 1.
    """

    __tablename__ = "ai_provider_configs"

    id: Mapped[str] = mapped_column(
        String(64), primary_key=True, default=lambda: uuid.uuid4().hex
    )

    # label: Display name shown in the admin panel and in logs
    label: Mapped[str] = mapped_column(String(100), nullable=False, default="")

    # provider: Vendor name ("openai", "anthropic", "google", ...) or a
    # provider-kind value ("chat_completions", "messages", "generate_content")
    provider: Mapped[str] = mapped_column(String(50), nullable=False, default="custom")

    base_url: Mapped[str] = mapped_column(String(500), nullable=False, default="")
    model: Mapped[str] = mapped_column(String(200), nullable=False, default="")

    # api_key: Secret credential for the upstream; never logged
    api_key: Mapped[str] = mapped_column(Text, nullable=False, default="")

    enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    # priority: Lower values are tried first
    priority: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    def __repr__(self) -> str:
        return f"<AIProviderConfig {self.label!r} provider={self.provider} priority={self.priority}>"
