"""
Service Layer Module Initialization
"""

from ollama_gateway.services.api_key_service import ApiKeyService
from ollama_gateway.services.gateway_service import GatewayService, RequestContext
from ollama_gateway.services.log_service import LogService, UsageRecorder
from ollama_gateway.services.model_service import ModelService, ResolvedModel

__all__ = [
    "ApiKeyService",
    "GatewayService",
    "RequestContext",
    "LogService",
    "UsageRecorder",
    "ModelService",
    "ResolvedModel",
]
