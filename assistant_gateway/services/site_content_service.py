"""
Site Content Service - assembles the chat system prompt from site content.
"""

import logging
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from assistant_gateway.ai.prompts.assistant_prompts import build_system_prompt
from assistant_gateway.models.site_content import SiteContent

logger = logging.getLogger(__name__)


class SiteContentService:
    """Read access to the site_content key/value table."""

    def load_content(self, db: Session) -> Dict[str, Any]:
        rows = db.query(SiteContent).all()
        return {row.key: row.value for row in rows}

    def build_system_prompt(self, db: Session, language: Optional[str] = "en") -> str:
        """Persona + site content sections + language rule."""
        content = self.load_content(db)
        logger.debug(f"Building system prompt from {len(content)} site content entries")
        return build_system_prompt(content, language=language)


site_content_service = SiteContentService()
