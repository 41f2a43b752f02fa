"""
Monitoring Module - structured logging for upstream AI traffic.

Usage:
    from assistant_gateway.ai.monitoring import gateway_logger

    gateway_logger.log_attempt(request_id, provider, model, kind)
"""

from assistant_gateway.ai.monitoring.logger import GatewayLogger, gateway_logger

__all__ = ["GatewayLogger", "gateway_logger"]
