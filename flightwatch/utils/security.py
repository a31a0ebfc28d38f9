import hashlib
import hmac
from typing import Optional


def timing_safe_secret_match(received: Optional[str], expected: Optional[str], hmac_key: str) -> bool:
    """
    Compare two secrets in constant time.

    Both values are HMAC'd first so the comparison length never depends on the
    secret's length.
    """
    if not received or not expected:
        return False

    key = hmac_key.encode("utf-8")
    received_hash = hmac.new(key, received.encode("utf-8"), hashlib.sha256).digest()
    expected_hash = hmac.new(key, expected.encode("utf-8"), hashlib.sha256).digest()
    return hmac.compare_digest(received_hash, expected_hash)
