"""
reactloop Credential Lookup

``get_credential(vendor) -> str | None`` is the only contract the provider
adapters rely on. Encrypted storage lives outside this package; these
sources cover environment variables and in-memory keys.
"""

from __future__ import annotations

import os
from typing import Protocol, runtime_checkable

from reactloop.providers.catalog import VENDORS


@runtime_checkable
class CredentialSource(Protocol):
    def get_credential(self, vendor: str) -> str | None: ...


class EnvCredentials:
    """Reads API keys from each vendor's conventional environment variable."""

    EXTRA_VARS: dict[str, tuple[str, ...]] = {
        "google": ("GOOGLE_API_KEY",),
    }

    def get_credential(self, vendor: str) -> str | None:
        spec = VENDORS.get(vendor.lower())
        names: list[str] = []
        if spec and spec.env_var:
            names.append(spec.env_var)
        names.extend(self.EXTRA_VARS.get(vendor.lower(), ()))
        for name in names:
            value = os.environ.get(name)
            if value:
                return value
        return None


class StaticCredentials:
    """Keys held in memory, e.g. handed over by a keystore at startup."""

    def __init__(self, keys: dict[str, str] | None = None):
        self._keys = {k.lower(): v for k, v in (keys or {}).items()}

    def set(self, vendor: str, key: str) -> None:
        self._keys[vendor.lower()] = key

    def get_credential(self, vendor: str) -> str | None:
        return self._keys.get(vendor.lower()) or None


class ChainedCredentials:
    """First source that returns a key wins."""

    def __init__(self, *sources: CredentialSource):
        self._sources = sources

    def get_credential(self, vendor: str) -> str | None:
        for source in self._sources:
            key = source.get_credential(vendor)
            if key:
                return key
        return None
