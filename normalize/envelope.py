"""
Envelope unwrapping for API payloads.

The backend answers the same resource in several shapes: a bare list, {"data": [...]},
or a resource-named wrapper such as {"bugs": [...]}. The helpers here pick the meaningful
value out of whichever shape arrived, in a fixed order of precedence, and never raise.
"""

import logging
from typing import Any, Optional

logger = logging.getLogger(__name__)

RULE_BARE = 'bare'
RULE_DATA = 'data'
RULE_RESOURCE = 'resource'
RULE_SCAN = 'scan'

ID_KEYS = ('_id', 'id')


class NormalizationFailure:
    """
    Soft failure: the payload did not match any known envelope.
    Callers treat it as an empty result and may show ``reason`` inline.
    """

    def __init__(self, reason: str, payload_type: str):
        self.reason = reason
        self.payload_type = payload_type

    def __str__(self):
        return self.reason

    def __repr__(self):
        return f"NormalizationFailure(reason={self.reason!r}, payload_type={self.payload_type!r})"


class Unwrapped:
    """Result of unwrapping: the extracted value, the rule that matched, or a failure."""

    def __init__(self, value: Any, rule: Optional[str] = None, failure: Optional[NormalizationFailure] = None):
        self.value = value
        self.rule = rule
        self.failure = failure

    @property
    def ok(self) -> bool:
        return self.failure is None

    def __repr__(self):
        return f"Unwrapped(rule={self.rule!r}, ok={self.ok})"


def _is_resource(value: Any) -> bool:
    return isinstance(value, dict) and any(k in value for k in ID_KEYS)


def unwrap_collection(payload: Any, resource: Optional[str] = None, scan_fallback: bool = True) -> Unwrapped:
    """Extract a list from a collection envelope.

    Precedence: bare list, ``data``, ``payload[resource]``, then (if enabled) the first
    list-valued property in insertion order. Anything else yields an empty list plus a failure.
    """
    if isinstance(payload, list):
        return Unwrapped(payload, RULE_BARE)
    if isinstance(payload, dict):
        if isinstance(payload.get('data'), list):
            return Unwrapped(payload['data'], RULE_DATA)
        if resource and isinstance(payload.get(resource), list):
            return Unwrapped(payload[resource], RULE_RESOURCE)
        if scan_fallback:
            for key, val in payload.items():
                if isinstance(val, list):
                    logger.warning("Collection envelope matched by scanning property %r (resource=%s)", key, resource)
                    return Unwrapped(val, RULE_SCAN)
        reason = "no list found under 'data'" + (f" or '{resource}'" if resource else '')
    else:
        reason = f"expected a list or an object, got {type(payload).__name__}"
    failure = NormalizationFailure(reason, type(payload).__name__)
    logger.warning("Unrecognized collection envelope (resource=%s): %s", resource, reason)
    return Unwrapped([], None, failure)


def unwrap_resource(payload: Any, resource: Optional[str] = None) -> Unwrapped:
    """Extract a single resource (a dict carrying ``_id`` or ``id``) from its envelope."""
    if _is_resource(payload):
        return Unwrapped(payload, RULE_BARE)
    if isinstance(payload, dict):
        if _is_resource(payload.get('data')):
            return Unwrapped(payload['data'], RULE_DATA)
        if resource and _is_resource(payload.get(resource)):
            return Unwrapped(payload[resource], RULE_RESOURCE)
        reason = "no object with an id found under 'data'" + (f" or '{resource}'" if resource else '')
    else:
        reason = f"expected an object, got {type(payload).__name__}"
    failure = NormalizationFailure(reason, type(payload).__name__)
    logger.warning("Unrecognized resource envelope (resource=%s): %s", resource, reason)
    return Unwrapped(None, None, failure)


def normalize_collection(payload: Any, resource: Optional[str] = None, scan_fallback: bool = True) -> list:
    """Decode-or-default: the unwrapped list, or [] when the envelope is unrecognized."""
    return unwrap_collection(payload, resource, scan_fallback).value


def normalize_resource(payload: Any, resource: Optional[str] = None) -> Optional[dict]:
    """Decode-or-default: the unwrapped object, or None when the envelope is unrecognized."""
    return unwrap_resource(payload, resource).value


__all__ = [
    "NormalizationFailure",
    "Unwrapped",
    "unwrap_collection",
    "unwrap_resource",
    "normalize_collection",
    "normalize_resource",
]
