"""
ORM models read by the assistant gateway.

- AIProviderConfig: one entry of the user-configurable fallback chain
- SiteContent: key/value site content used to build the system prompt
"""

from assistant_gateway.models.provider_config import AIProviderConfig
from assistant_gateway.models.site_content import SiteContent

__all__ = ["AIProviderConfig", "SiteContent"]
