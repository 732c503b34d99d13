"""
API Router Module Initialization
"""

from ollama_gateway.api.deps import get_current_api_key, get_db

__all__ = [
    "get_db",
    "get_current_api_key",
]
