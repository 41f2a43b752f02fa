"""
Provider Config Service - loads the fallback chain from storage.

Rows in ai_provider_configs are turned into immutable ProviderConfig values
at request time. Disabled or incomplete rows are still returned; the router
decides eligibility and skips them silently.
"""

import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from assistant_gateway.ai.providers import ProviderConfig, ProviderKind
from assistant_gateway.models.provider_config import AIProviderConfig
from assistant_gateway.schemas.chat import ProviderConfigPayload

logger = logging.getLogger(__name__)


def _to_provider_config(row: AIProviderConfig) -> ProviderConfig:
    return ProviderConfig(
        id=row.id,
        label=row.label or row.provider,
        kind=ProviderKind.from_vendor(row.provider),
        base_url=(row.base_url or "").strip(),
        model=(row.model or "").strip(),
        credential=(row.api_key or "").strip(),
        enabled=bool(row.enabled),
    )


class ProviderConfigService:
    """
    Read access to the site owner's provider configs.

    Usage:
        configs = provider_config_service.list_configs(db)
        probe_target = provider_config_service.resolve_test_config(db, payload)
    """

    def list_configs(self, db: Session) -> List[ProviderConfig]:
        """All configs in fallback order: priority, then creation time."""
        rows = (
            db.query(AIProviderConfig)
            .order_by(AIProviderConfig.priority.asc(), AIProviderConfig.created_at.asc())
            .all()
        )
        return [_to_provider_config(row) for row in rows]

    def resolve_test_config(self, db: Session, payload: ProviderConfigPayload) -> ProviderConfig:
        """
        Build the config for a connectivity test.

        When the admin panel omits the API key (it never echoes saved secrets
        back), the credential of the matching saved config is reused. The
        match is by id first, then by base URL + model.
        """
        credential = (payload.api_key or "").strip()
        stored: Optional[AIProviderConfig] = None

        if not credential:
            stored = self._find_stored(db, payload)
            if stored is not None:
                credential = (stored.api_key or "").strip()
                logger.info(f"Connectivity test reuses stored credential of config {stored.id}")

        label = payload.label or (stored.label if stored is not None else "") or payload.provider
        return ProviderConfig(
            id=payload.id or (stored.id if stored is not None else "test"),
            label=label,
            kind=ProviderKind.from_vendor(payload.provider),
            base_url=payload.base_url.strip(),
            model=payload.model.strip(),
            credential=credential,
            enabled=True,
        )

    def _find_stored(self, db: Session, payload: ProviderConfigPayload) -> Optional[AIProviderConfig]:
        if payload.id:
            row = db.get(AIProviderConfig, payload.id)
            if row is not None:
                return row
        if payload.base_url and payload.model:
            return (
                db.query(AIProviderConfig)
                .filter(
                    AIProviderConfig.base_url == payload.base_url.strip(),
                    AIProviderConfig.model == payload.model.strip(),
                )
                .order_by(AIProviderConfig.priority.asc())
                .first()
            )
        return None


# ---------------------------------------------------------------------------
# SINGLETON INSTANCE
# ---------------------------------------------------------------------------
provider_config_service = ProviderConfigService()
