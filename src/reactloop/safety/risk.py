"""
reactloop Risk Classifier

Assigns each tool invocation a risk tier:

    safe       read-only, no side effects
    sensitive  writes, launches apps, runs commands
    dangerous  destructive or irreversible; requires approval

Resolution order:
    1. Explicit override for the tool name (operator pinned)
    2. Static per-tool table, else the tool's declared default, else sensitive
    3. Escalation to dangerous when any pattern for the tool matches the
       serialized arguments (patterns only ever raise the level)

Every classification is appended to the audit trail with sensitive
argument values redacted.
"""

from __future__ import annotations

import json
import re
from typing import Any

from reactloop.core.models import AuditEntry, RiskLevel
from reactloop.logging import get_logger
from reactloop.safety.audit import AuditTrail

logger = get_logger("reactloop.safety.risk")

SAFE = RiskLevel.SAFE
SENSITIVE = RiskLevel.SENSITIVE
DANGEROUS = RiskLevel.DANGEROUS

DEFAULT_RISK_LEVELS: dict[str, RiskLevel] = {
    # Read-only inspection
    "fs_read": SAFE,
    "fs_list": SAFE,
    "fs_search": SAFE,
    "fs_tree": SAFE,
    "fs_info": SAFE,
    "web_search": SAFE,
    "web_fetch": SAFE,
    "web_fetch_json": SAFE,
    "context_active": SAFE,
    "llm_query": SAFE,
    "llm_summarize": SAFE,
    "llm_extract": SAFE,
    "llm_code": SAFE,
    "system_info": SAFE,
    "system_processes": SAFE,
    "system_clipboard_read": SAFE,
    "system_notify": SAFE,
    "app_list": SAFE,
    "app_screenshot": SAFE,
    # Mutating / launching
    "fs_write": SENSITIVE,
    "fs_edit": SENSITIVE,
    "fs_mkdir": SENSITIVE,
    "app_open": SENSITIVE,
    "system_exec": SENSITIVE,
    "browser_navigate": SENSITIVE,
    "browser_click": SENSITIVE,
    "browser_type": SENSITIVE,
    # Destructive / irreversible
    "fs_delete": DANGEROUS,
    "fs_move": DANGEROUS,
    "system_exec_sudo": DANGEROUS,
    "browser_submit_form": DANGEROUS,
}

_SYSTEM_PATHS = [
    r"/etc/",
    r"/usr/",
    r"/system/",
    r"\.ssh/",
    r"\.env",
    r"\.bashrc",
    r"\.zshrc",
    r"\.profile",
]

DANGEROUS_PATTERNS: dict[str, list[str]] = {
    "system_exec": [
        r"\brm\s+(-rf?|--recursive)",
        r"\bsudo\b",
        r"\bmkfs\b",
        r"\bdd\b.*of=",
        r"\bformat\b",
        r"\bshutdown\b",
        r"\breboot\b",
        r"\bkill\s+-9",
        r">\s*/dev/",
        r"\bcurl\b.*\|\s*(bash|sh)",
        r"\bchmod\s+777",
        r"\bpasswd\b",
    ],
    "fs_write": list(_SYSTEM_PATHS),
    "fs_edit": list(_SYSTEM_PATHS),
    "fs_delete": [
        # the filesystem root, a home directory or a drive root
        r'"path":\s*"(/|~/?|[a-z]:\\\\?)"',
        r'"path":\s*"/(home|users)/[^/"]+/?"',
        *_SYSTEM_PATHS,
    ],
    "browser_type": [
        r"password",
        r"credit.?card",
        r"\bssn\b",
        r"social.?security",
        r"\bcvv\b",
    ],
}

REDACTED_KEYS = ("password", "apiKey", "api_key", "token", "secret", "credential")
REDACTED = "***REDACTED***"


def sanitize_arguments(arguments: Any) -> Any:
    """Copy of ``arguments`` with known-sensitive keys redacted."""
    if not isinstance(arguments, dict):
        return arguments if arguments is not None else {}
    sanitized = dict(arguments)
    for key in REDACTED_KEYS:
        if sanitized.get(key):
            sanitized[key] = REDACTED
    return sanitized


class RiskClassifier:
    """Static defaults + one-directional pattern escalation + overrides."""

    def __init__(
        self,
        base_levels: dict[str, RiskLevel] | None = None,
        patterns: dict[str, list[str]] | None = None,
        audit: AuditTrail | None = None,
    ):
        self._base = dict(DEFAULT_RISK_LEVELS if base_levels is None else base_levels)
        source = DANGEROUS_PATTERNS if patterns is None else patterns
        self._patterns: dict[str, list[re.Pattern[str]]] = {
            name: [re.compile(p, re.IGNORECASE) for p in pats]
            for name, pats in source.items()
        }
        self._overrides: dict[str, RiskLevel] = {}
        self.audit = audit if audit is not None else AuditTrail()

    def classify(
        self,
        tool_name: str,
        arguments: Any = None,
        default: RiskLevel | None = None,
    ) -> RiskLevel:
        if tool_name in self._overrides:
            level = self._overrides[tool_name]
        else:
            level = self._base.get(tool_name) or default or SENSITIVE
            if self._matches(tool_name, arguments):
                level = level.escalate(DANGEROUS)

        self.audit.append(AuditEntry(
            tool_name=tool_name,
            arguments=sanitize_arguments(arguments),
            risk_level=level,
        ))
        logger.debug(
            "Classified %s as %s", tool_name, level.value,
            extra={"tool_name": tool_name, "risk_level": level.value},
        )
        return level

    def _matches(self, tool_name: str, arguments: Any) -> bool:
        patterns = self._patterns.get(tool_name)
        if not patterns or not arguments:
            return False
        serialized = json.dumps(arguments, default=str, ensure_ascii=False)
        return any(p.search(serialized) for p in patterns)

    def set_override(self, tool_name: str, level: RiskLevel | str) -> None:
        self._overrides[tool_name] = RiskLevel(level)

    def remove_override(self, tool_name: str) -> None:
        self._overrides.pop(tool_name, None)

    @property
    def overrides(self) -> dict[str, RiskLevel]:
        return dict(self._overrides)

    def audit_log(self, limit: int = 100) -> list[AuditEntry]:
        return self.audit.recent(limit)
