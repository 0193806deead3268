import hashlib
import json
from typing import Any

QUOTE_CACHE_NAMESPACE = "quote"


def cache_key(namespace: str, payload: Any) -> str:
    params_str = json.dumps(payload, sort_keys=True, default=str)
    return f"{namespace}:{hashlib.sha256(params_str.encode()).hexdigest()}"


def token_fingerprint(token: str | None) -> str:
    return hashlib.sha256((token or "").encode()).hexdigest()[:16]
