import hashlib
import hmac
import os

SIGNING_SECRET = os.environ.get("SHOPSYNC_AUTOFLOW_SIGNING_SECRET", "")

SIGNATURE_HEADERS = ("x-autoflow-signature", "x-signature")


def verify_signature(secret: str, raw_body: bytes, signature_hex: str | None) -> bool:
    """Constant-time check of a hex HMAC-SHA256 of the raw request body."""
    if not signature_hex:
        return False
    expected = hmac.new(secret.encode(), raw_body, hashlib.sha256).hexdigest()
    return hmac.compare_digest(expected.encode(), signature_hex.strip().lower().encode())
