"""
reactloop Provider Adapters

Four wire protocols (Anthropic, OpenAI, Ollama, Gemini) behind one
``generate`` capability. Every catalog vendor maps to exactly one of them.
``ActiveProvider`` tracks the current settings and rebuilds the adapter
when they change.

Usage:
    from reactloop.providers import create_adapter, ActiveProvider

    # Single adapter
    adapter = create_adapter(ProviderSettings(vendor="anthropic", model="claude-sonnet-4-20250514"))
    result = await adapter.generate(system_prompt, conversation, tools)

    # Hot reconfiguration
    active = ActiveProvider(holder, EnvCredentials())
    adapter = active.current()
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from reactloop.config import ProviderSettings
from reactloop.providers.anthropic import AnthropicAdapter
from reactloop.providers.base import ProviderAdapter
from reactloop.providers.catalog import VENDORS, VendorSpec, WireProtocol, get_vendor, protocol_for
from reactloop.providers.gemini import GeminiAdapter
from reactloop.providers.ollama import OllamaAdapter
from reactloop.providers.openai import OpenAIAdapter
from reactloop.providers.router import ActiveProvider

if TYPE_CHECKING:
    from reactloop.credentials import CredentialSource

__all__ = [
    "ActiveProvider",
    "AnthropicAdapter",
    "GeminiAdapter",
    "OllamaAdapter",
    "OpenAIAdapter",
    "ProviderAdapter",
    "VENDORS",
    "VendorSpec",
    "WireProtocol",
    "create_adapter",
    "get_vendor",
    "protocol_for",
]


def create_adapter(
    settings: ProviderSettings | None = None,
    credentials: CredentialSource | None = None,
) -> ProviderAdapter:
    """Factory function to create the adapter for a vendor's wire protocol.

    Args:
        settings: Vendor, model and request parameters.
        credentials: Where to look up the API key when settings carry none.

    Returns:
        Configured ProviderAdapter instance.

    Raises:
        UnknownProviderError: The vendor is not in the catalog.
    """
    settings = settings or ProviderSettings()
    protocol = get_vendor(settings.vendor).protocol

    if protocol == WireProtocol.ANTHROPIC:
        return AnthropicAdapter(settings, credentials)
    elif protocol == WireProtocol.OPENAI:
        return OpenAIAdapter(settings, credentials)
    elif protocol == WireProtocol.OLLAMA:
        return OllamaAdapter(settings, credentials)
    elif protocol == WireProtocol.GEMINI:
        return GeminiAdapter(settings, credentials)
    raise ValueError(f"Unsupported wire protocol: {protocol}")
