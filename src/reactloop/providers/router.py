"""
reactloop Active Provider

Resolves "the adapter to use for the next turn". The turn loop asks for
``current()`` before every model call, so a settings update (new vendor,
model or key) takes effect on the next turn of a running task without
restarting it.
"""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING

from reactloop.config import SettingsHolder
from reactloop.logging import get_logger
from reactloop.providers.base import ProviderAdapter

if TYPE_CHECKING:
    from reactloop.credentials import CredentialSource

logger = get_logger("reactloop.providers.router")


class ActiveProvider:
    """Caches one adapter per settings revision."""

    def __init__(
        self,
        holder: SettingsHolder | None = None,
        credentials: CredentialSource | None = None,
    ):
        self._holder = holder or SettingsHolder()
        self._credentials = credentials
        self._adapter: ProviderAdapter | None = None
        self._revision = -1
        self._pinned = False
        self._lock = threading.Lock()

    @classmethod
    def fixed(cls, adapter: ProviderAdapter) -> ActiveProvider:
        """Pin a single adapter, ignoring settings updates.

        Useful for tests and for wiring where the adapter already exists.
        """
        active = cls(SettingsHolder(getattr(adapter, "settings", None)))
        active._adapter = adapter
        active._revision = active._holder.revision
        active._pinned = True
        return active

    @property
    def holder(self) -> SettingsHolder:
        return self._holder

    def current(self) -> ProviderAdapter:
        if self._pinned and self._adapter is not None:
            return self._adapter

        revision, settings = self._holder.snapshot()
        with self._lock:
            if self._adapter is None or revision != self._revision:
                from reactloop.providers import create_adapter

                self._adapter = create_adapter(settings, self._credentials)
                self._revision = revision
                logger.info(
                    "Using %s model %s", settings.vendor, settings.model,
                    extra={"provider": settings.vendor},
                )
            return self._adapter
