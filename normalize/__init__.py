"""
Normalize package: envelope unwrapping and record-level normalization of API payloads.
"""

from .envelope import NormalizationFailure, Unwrapped, normalize_collection, normalize_resource, unwrap_collection, unwrap_resource

__all__ = [
    "NormalizationFailure",
    "Unwrapped",
    "normalize_collection",
    "normalize_resource",
    "unwrap_collection",
    "unwrap_resource",
]
