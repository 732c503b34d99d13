"""
Backend Client Module
"""

from ollama_gateway.providers.ollama_client import BackendHTTPError, OllamaClient

__all__ = ["BackendHTTPError", "OllamaClient"]
