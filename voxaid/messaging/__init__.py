"""Message channel between a VoxAid session and its host.

``LocalMessageChannel`` answers in-process (LLM interpretation, summaries,
tabs); ``HttpMessageChannel`` forwards messages to a remote endpoint.
"""

from .channel import (  # noqa: F401
    BrowserState,
    HttpMessageChannel,
    LocalMessageChannel,
    Message,
    MessageChannel,
    MessageType,
    build_local_channel,
)

__all__ = [
    "BrowserState",
    "HttpMessageChannel",
    "LocalMessageChannel",
    "Message",
    "MessageChannel",
    "MessageType",
    "build_local_channel",
]
