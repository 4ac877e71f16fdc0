"""
reactloop Provider Catalog

Known model vendors and the wire protocol each one speaks. Many vendors
are OpenAI-compatible (DeepSeek, xAI, Mistral, Groq, Together, Perplexity)
and one is Anthropic-compatible (MiniMax); they reuse those adapters with
a different endpoint.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel

from reactloop.exceptions import UnknownProviderError


class WireProtocol(str, Enum):
    """The four structurally different request/response shapes."""
    ANTHROPIC = "anthropic"
    OPENAI = "openai"
    OLLAMA = "ollama"
    GEMINI = "gemini"


class VendorSpec(BaseModel):
    name: str
    label: str
    protocol: WireProtocol
    endpoint: str
    requires_key: bool = True
    env_var: str | None = None
    default_model: str = ""


VENDORS: dict[str, VendorSpec] = {
    spec.name: spec
    for spec in [
        VendorSpec(
            name="ollama",
            label="Ollama (Local)",
            protocol=WireProtocol.OLLAMA,
            endpoint="http://127.0.0.1:11434",
            requires_key=False,
            default_model="llama3.2",
        ),
        VendorSpec(
            name="openai",
            label="OpenAI",
            protocol=WireProtocol.OPENAI,
            endpoint="https://api.openai.com/v1",
            env_var="OPENAI_API_KEY",
            default_model="gpt-4o",
        ),
        VendorSpec(
            name="anthropic",
            label="Anthropic (Claude)",
            protocol=WireProtocol.ANTHROPIC,
            endpoint="https://api.anthropic.com",
            env_var="ANTHROPIC_API_KEY",
            default_model="claude-sonnet-4-20250514",
        ),
        VendorSpec(
            name="google",
            label="Google (Gemini)",
            protocol=WireProtocol.GEMINI,
            endpoint="https://generativelanguage.googleapis.com",
            env_var="GEMINI_API_KEY",
            default_model="gemini-2.5-flash",
        ),
        VendorSpec(
            name="deepseek",
            label="DeepSeek",
            protocol=WireProtocol.OPENAI,
            endpoint="https://api.deepseek.com/v1",
            env_var="DEEPSEEK_API_KEY",
            default_model="deepseek-chat",
        ),
        VendorSpec(
            name="xai",
            label="xAI (Grok)",
            protocol=WireProtocol.OPENAI,
            endpoint="https://api.x.ai/v1",
            env_var="XAI_API_KEY",
            default_model="grok-3",
        ),
        VendorSpec(
            name="mistral",
            label="Mistral AI",
            protocol=WireProtocol.OPENAI,
            endpoint="https://api.mistral.ai/v1",
            env_var="MISTRAL_API_KEY",
            default_model="mistral-large-latest",
        ),
        VendorSpec(
            name="groq",
            label="Groq",
            protocol=WireProtocol.OPENAI,
            endpoint="https://api.groq.com/openai/v1",
            env_var="GROQ_API_KEY",
            default_model="llama-3.3-70b-versatile",
        ),
        VendorSpec(
            name="together",
            label="Together AI",
            protocol=WireProtocol.OPENAI,
            endpoint="https://api.together.xyz/v1",
            env_var="TOGETHER_API_KEY",
            default_model="meta-llama/Llama-3.3-70B-Instruct-Turbo",
        ),
        VendorSpec(
            name="perplexity",
            label="Perplexity",
            protocol=WireProtocol.OPENAI,
            endpoint="https://api.perplexity.ai",
            env_var="PERPLEXITY_API_KEY",
            default_model="sonar",
        ),
        VendorSpec(
            name="minimax",
            label="MiniMax",
            protocol=WireProtocol.ANTHROPIC,
            endpoint="https://api.minimax.io/anthropic",
            env_var="MINIMAX_API_KEY",
            default_model="MiniMax-M2",
        ),
    ]
}


def get_vendor(name: str) -> VendorSpec:
    """Look up a vendor by name (case-insensitive)."""
    spec = VENDORS.get(name.lower())
    if spec is None:
        raise UnknownProviderError(name, sorted(VENDORS))
    return spec


def protocol_for(target: str | WireProtocol) -> WireProtocol:
    """Resolve a vendor name or protocol name to its WireProtocol."""
    if isinstance(target, WireProtocol):
        return target
    try:
        return WireProtocol(target.lower())
    except ValueError:
        return get_vendor(target).protocol
