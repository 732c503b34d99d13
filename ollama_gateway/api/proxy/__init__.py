"""
Proxy API Module Initialization
"""

from ollama_gateway.api.proxy.openai import router as openai_router
from ollama_gateway.api.proxy.anthropic import router as anthropic_router

__all__ = [
    "openai_router",
    "anthropic_router",
]
