"""
Hashing and normalisation helpers shared by the flag providers.

The bucketing hash must match the server's assignment bit for bit.
"""

import json
from typing import Any, Dict

EXPOSURE_EVENT = "$experiment_started"
"""Event name used for exposure tracking."""

LIB_NAME = "python"

FNV_PRIME_64 = 0x100000001B3
FNV_OFFSET_BASIS_64 = 0xCBF29CE484222325
MASK_64 = 0xFFFFFFFFFFFFFFFF


def fnv1a_64(data: bytes) -> int:
    """
    FNV-1a 64-bit hash.

    Args:
        data: Bytes to hash

    Returns:
        Unsigned 64-bit hash value
    """
    hash_value = FNV_OFFSET_BASIS_64
    for byte in data:
        hash_value ^= byte
        hash_value = (hash_value * FNV_PRIME_64) & MASK_64
    return hash_value


def normalized_hash(key: str, salt: str) -> float:
    """
    Map a key and salt to a stable bucket in [0.0, 1.0).

    Args:
        key: Value to bucket (typically the context value, e.g. distinct_id)
        salt: Flag specific salt

    Returns:
        A value with two decimal places of resolution, 0.0 <= v < 1.0
    """
    combined = f"{key}{salt}".encode("utf-8")
    return (fnv1a_64(combined) % 100) / 100.0


def context_value_to_string(value: Any) -> str:
    """
    Text form of a context value for hashing and test-user lookup.

    Strings are used as is; other JSON values use their JSON text, so True
    hashes as "true". A missing value is the empty string.
    """
    if isinstance(value, str):
        return value
    if value is None:
        return ""
    return json.dumps(value, separators=(",", ":"), sort_keys=True)


def prepare_common_query_params(token: str, lib_version: str) -> Dict[str, str]:
    """Query parameters sent with every flags request."""
    return {
        "mp_lib": LIB_NAME,
        "$lib_version": lib_version,
        "token": token,
    }


def lowercase_keys_and_values(value: Any) -> Any:
    """
    Lowercase every string in a structure, including mapping keys.

    Used on caller supplied properties so runtime rules match case-insensitively.
    """
    if isinstance(value, str):
        return value.lower()
    if isinstance(value, list):
        return [lowercase_keys_and_values(item) for item in value]
    if isinstance(value, dict):
        return {
            (k.lower() if isinstance(k, str) else k): lowercase_keys_and_values(v)
            for k, v in value.items()
        }
    return value


def lowercase_leaf_values(value: Any) -> Any:
    """
    Lowercase string leaves of a structure, leaving mapping keys untouched.

    Rule documents are keyed by operator names, which must keep their case.
    """
    if isinstance(value, str):
        return value.lower()
    if isinstance(value, list):
        return [lowercase_leaf_values(item) for item in value]
    if isinstance(value, dict):
        return {k: lowercase_leaf_values(v) for k, v in value.items()}
    return value


def keys_match(left: str, right: str) -> bool:
    """Case-insensitive comparison of two variant keys."""
    return left.lower() == right.lower()
