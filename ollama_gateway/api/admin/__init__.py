"""
Admin API Module Initialization
"""

from ollama_gateway.api.admin.api_keys import router as api_keys_router
from ollama_gateway.api.admin.models import router as models_router
from ollama_gateway.api.admin.logs import router as logs_router
from ollama_gateway.api.admin.stats import router as stats_router

__all__ = [
    "api_keys_router",
    "models_router",
    "logs_router",
    "stats_router",
]
