"""
reactloop Provider Adapter Base

Abstract interface for model vendors. Every adapter implements two pure
mappings plus one transport call:

- build_request:  canonical conversation + projected tools -> wire request
- _send:          wire request -> vendor response payload (dict)
- parse_response: vendor payload -> canonical GenerateResult

``generate`` strings them together, failing fast when a required
credential is missing and folding every transport, HTTP or payload error
into a single ProviderError. The turn loop treats that as fatal.
"""

from __future__ import annotations

import uuid
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, ClassVar

import httpx

from reactloop.config import ProviderSettings
from reactloop.core.models import (
    GenerateResult,
    StopReason,
    TextBlock,
    ToolCall,
    ToolResult,
    ToolUseBlock,
    UserTurn,
)
from reactloop.exceptions import (
    MissingCredentialError,
    ProviderError,
    ProviderResponseError,
    ProviderTimeoutError,
)
from reactloop.logging import get_logger
from reactloop.providers.catalog import VendorSpec, WireProtocol, get_vendor
from reactloop.tools.models import ToolDeclaration
from reactloop.tools.projection import project

if TYPE_CHECKING:
    from reactloop.credentials import CredentialSource

logger = get_logger("reactloop.providers")

ERROR_BODY_LIMIT = 500


class ProviderAdapter(ABC):
    """One vendor protocol behind the shared ``generate`` capability."""

    protocol: ClassVar[WireProtocol]
    default_vendor: ClassVar[str]

    def __init__(
        self,
        settings: ProviderSettings | None = None,
        credentials: CredentialSource | None = None,
    ):
        if settings is None:
            spec = get_vendor(self.default_vendor)
            settings = ProviderSettings(vendor=spec.name, model=spec.default_model)
        self._settings = settings
        self._vendor: VendorSpec = get_vendor(settings.vendor)
        self._credentials = credentials

    @property
    def name(self) -> str:
        return self._vendor.name

    @property
    def vendor(self) -> VendorSpec:
        return self._vendor

    @property
    def settings(self) -> ProviderSettings:
        return self._settings

    @property
    def model(self) -> str:
        return self._settings.model or self._vendor.default_model

    @property
    def endpoint(self) -> str:
        return (self._settings.endpoint or self._vendor.endpoint).rstrip("/")

    def resolve_api_key(self) -> str | None:
        """Explicit key first, then the credential source."""
        if self._settings.api_key:
            return self._settings.api_key
        if self._credentials is not None and self._vendor.requires_key:
            return self._credentials.get_credential(self._vendor.name)
        return None

    def tool_declarations(self, declarations: list[ToolDeclaration]) -> list[dict]:
        return project(declarations, self.protocol)

    async def generate(
        self,
        system_prompt: str,
        conversation: list[Any],
        tools: list[dict] | None = None,
    ) -> GenerateResult:
        """Run one request/response round trip.

        Args:
            system_prompt: System instruction for the model.
            conversation: Canonical turns.
            tools: Declarations already projected for this protocol.
        """
        api_key = self.resolve_api_key()
        if self._vendor.requires_key and not api_key:
            raise MissingCredentialError(self.name, self._vendor.label)

        request = self.build_request(system_prompt, conversation, tools or [])
        logger.debug(
            "Sending %d turns to %s", len(conversation), self.model,
            extra={"provider": self.name},
        )
        data = await self._send(request, api_key)

        if isinstance(data, dict) and data.get("error"):
            raise ProviderResponseError(self.name, _error_message(data["error"]))
        try:
            return self.parse_response(data)
        except (KeyError, IndexError, TypeError, ValueError, AttributeError) as e:
            raise ProviderResponseError(self.name, f"Malformed response: {e}") from e

    async def complete(self, system_prompt: str, message: str) -> str:
        """Plain text in, text out. No tools."""
        result = await self.generate(system_prompt, [UserTurn(content=message)], [])
        return result.text

    @abstractmethod
    def build_request(self, system_prompt: str, conversation: list[Any], tools: list[dict]) -> dict[str, Any]:
        """Canonical conversation -> vendor request body. Pure."""
        ...

    @abstractmethod
    def parse_response(self, data: dict[str, Any]) -> GenerateResult:
        """Vendor response body -> GenerateResult. Pure."""
        ...

    @abstractmethod
    async def _send(self, request: dict[str, Any], api_key: str | None) -> dict[str, Any]:
        """Transport. Must raise ProviderError subclasses on failure."""
        ...

    def _fail(self, message: str, status_code: int | None = None) -> ProviderError:
        return ProviderResponseError(self.name, message[:ERROR_BODY_LIMIT], status_code=status_code)


# ─── Shared helpers ──────────────────────────────────────────


def result_text(result: ToolResult) -> str:
    if result.content:
        return result.content
    return f"Error: {result.error}" if result.error else ""


def synthetic_call_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


def canonical_result(
    text: str,
    calls: list[ToolCall],
    stop_reason: str,
    native: Any = None,
    model: str = "",
    input_tokens: int = 0,
    output_tokens: int = 0,
) -> GenerateResult:
    """Build a GenerateResult whose raw_content is Anthropic-style blocks."""
    blocks: list[Any] = []
    if text:
        blocks.append(TextBlock(text=text))
    for call in calls:
        call_input = call.input if isinstance(call.input, dict) else {}
        blocks.append(ToolUseBlock(id=call.id, name=call.name, input=call_input))

    return GenerateResult(
        text=text,
        tool_calls=calls,
        raw_content=blocks if blocks else text,
        stop_reason=stop_reason,
        native=native,
        model=model,
        input_tokens=input_tokens,
        output_tokens=output_tokens,
    )


def map_stop_reason(raw: str | None, mapping: dict[str, StopReason], has_calls: bool) -> str:
    if has_calls:
        return StopReason.TOOL_USE.value
    if not raw:
        return StopReason.END_TURN.value
    mapped = mapping.get(raw) or mapping.get(raw.lower())
    return mapped.value if mapped else raw.lower()


def _error_message(error: Any) -> str:
    if isinstance(error, dict):
        return str(error.get("message") or error)
    return str(error)


class HttpAdapter(ProviderAdapter):
    """Adapter whose transport is a plain JSON POST over httpx."""

    def __init__(
        self,
        settings: ProviderSettings | None = None,
        credentials: CredentialSource | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        super().__init__(settings, credentials)
        self._http = client

    async def _post_json(
        self,
        url: str,
        body: dict[str, Any],
        params: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        try:
            if self._http is not None:
                response = await self._http.post(url, json=body, params=params)
            else:
                async with httpx.AsyncClient(timeout=self._settings.timeout_seconds) as http:
                    response = await http.post(url, json=body, params=params)
            response.raise_for_status()
        except httpx.TimeoutException as e:
            raise ProviderTimeoutError(self.name, f"Request timed out: {e}") from e
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            raise self._fail(f"HTTP {status}: {e.response.text}", status_code=status) from e
        except httpx.HTTPError as e:
            raise ProviderError(self.name, f"Request failed: {e}") from e

        try:
            return response.json()
        except ValueError as e:
            raise self._fail(f"Invalid JSON response: {response.text}") from e
