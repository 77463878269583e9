"""
HMAC request signing shared with the chat platform adapter.

The adapter signs `"{timestamp}\\n{METHOD}\\n{path?query}\\n" + body`
with INTERACTION_SECRET and sends the hex digest (optionally prefixed
with `sha256=`) in X-Signature, the unix timestamp in
X-Signature-Timestamp.
"""
import hashlib
import hmac

SIGNATURE_HEADER = "X-Signature"
TIMESTAMP_HEADER = "X-Signature-Timestamp"
SIGNATURE_PREFIX = "sha256="


def sign_request(secret: str, timestamp: str, method: str, target: str, body: bytes = b"") -> str:
    message = f"{timestamp}\n{method.upper()}\n{target}\n".encode("utf-8") + body
    digest = hmac.new(secret.encode("utf-8"), message, hashlib.sha256).hexdigest()
    return SIGNATURE_PREFIX + digest


def verify_signature(
    secret: str,
    signature: str,
    timestamp: str,
    method: str,
    target: str,
    body: bytes = b"",
) -> bool:
    if not signature.startswith(SIGNATURE_PREFIX):
        signature = SIGNATURE_PREFIX + signature
    expected = sign_request(secret, timestamp, method, target, body)
    return hmac.compare_digest(expected, signature)
