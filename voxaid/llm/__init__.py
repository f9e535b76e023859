"""Language model integration for VoxAid.

Provides the :class:`~voxaid.llm.ollama_client.OllamaClient` used to
interpret unrecognised utterances and to summarise pages through a local
Ollama server.
"""

from .ollama_client import OllamaClient  # noqa: F401

__all__ = ["OllamaClient"]
