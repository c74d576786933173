# pkce.py
"""PKCE (RFC 7636) helpers. Only the S256 transform is supported."""
import base64
import hashlib
import hmac
import secrets


def _b64url_unpadded(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def generate_code_verifier(n_bytes: int = 32) -> str:
    # 32 random bytes encode to 43 characters, the RFC minimum
    if not (32 <= n_bytes <= 96):
        raise ValueError("n_bytes must be in [32, 96] to keep the verifier within 43..128 characters")
    return _b64url_unpadded(secrets.token_bytes(n_bytes))


def compute_code_challenge(code_verifier: str) -> str:
    return _b64url_unpadded(hashlib.sha256(code_verifier.encode("utf-8")).digest())


def verify_pkce(code_verifier: str, stored_challenge: str) -> bool:
    """True if ``code_verifier`` derives exactly to ``stored_challenge``."""
    if not isinstance(code_verifier, str) or not isinstance(stored_challenge, str):
        return False
    computed = compute_code_challenge(code_verifier).encode("ascii")
    try:
        expected = stored_challenge.encode("ascii")
    except UnicodeEncodeError:
        return False
    return hmac.compare_digest(computed, expected)
