"""
Protocol Translation Module

Converts OpenAI and Anthropic requests into Ollama /api/chat calls and Ollama
responses (buffered JSON or NDJSON streams) back into the caller's dialect.
"""
