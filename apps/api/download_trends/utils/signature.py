"""
Stable request signatures for response cache keys.
Payloads are normalized into canonical JSON so logically equal requests share a key.
"""
import hashlib
import json
import math
from typing import Any

# Bump when the analysis output contract changes (invalidates cached responses).
ANALYSIS_VERSION = "v1"


def short_hash(value: str, length: int = 12) -> str:
    return hashlib.sha256(value.encode("utf-8")).hexdigest()[:length]


def _normalize(value: Any) -> Any:
    """Floats that are whole numbers collapse to int so [1, 2.0] and [1.0, 2] sign the same."""
    if isinstance(value, bool) or value is None:
        return value
    if isinstance(value, float):
        if math.isfinite(value) and value.is_integer():
            return int(value)
        return value
    if isinstance(value, dict):
        return {str(k): _normalize(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_normalize(v) for v in value]
    return value


def request_signature(
    *,
    endpoint_name: str,
    payload: dict[str, Any],
    analysis_version: str = ANALYSIS_VERSION,
) -> str:
    """Deterministic string: endpoint, version and the canonical JSON of the payload."""
    body = json.dumps(_normalize(payload), sort_keys=True, separators=(",", ":"), default=str)
    return "|".join([f"ep={endpoint_name}", f"av={analysis_version}", f"body={body}"])
