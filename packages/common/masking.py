"""Display masking for integration configs."""

from __future__ import annotations

from typing import Any

SENSITIVE_KEYS = frozenset({"client_secret", "access_token", "refresh_token", "api_token"})
MASK = "••••••••"
VISIBLE_PREFIX = 4


def mask_secret(value: str) -> str:
    # Always hide at least the last character, so short secrets never show in full.
    visible = min(VISIBLE_PREFIX, len(value) - 1)
    return value[:visible] + MASK


def mask_config(config: dict[str, Any]) -> dict[str, Any]:
    """Hide secrets for listings. Lossy: the original value cannot be recovered."""
    masked: dict[str, Any] = {}
    for key, value in config.items():
        if key in SENSITIVE_KEYS and isinstance(value, str) and value:
            masked[key] = mask_secret(value)
        else:
            masked[key] = value
    return masked
