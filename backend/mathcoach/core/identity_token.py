"""Identity Token — sign and verify `<user_id>.<signature>` access tokens, pure.

Invariants:
    - verify_token returns the user id only for tokens signed with the same secret
    - Comparison is constant-time (hmac.compare_digest)
    - derive_user_id is deterministic: same credential + secret -> same id
"""

import base64
import hashlib
import hmac

from mathcoach.core.domain_types import UserId

_SEPARATOR = "."


def _signature(user_id: str, secret: str) -> str:
    digest = hmac.new(secret.encode(), user_id.encode(), hashlib.sha256).digest()
    return base64.urlsafe_b64encode(digest).rstrip(b"=").decode()


def sign_token(user_id: str, secret: str) -> str:
    return f"{user_id}{_SEPARATOR}{_signature(user_id, secret)}"


def verify_token(token: str, secret: str) -> UserId | None:
    user_id, sep, signature = token.rpartition(_SEPARATOR)
    if not sep or not user_id or not signature:
        return None
    if not hmac.compare_digest(signature, _signature(user_id, secret)):
        return None
    return UserId(user_id)


def derive_user_id(credential: str, secret: str) -> UserId:
    """Stable opaque id for the development identity provider."""
    digest = hmac.new(secret.encode(), credential.encode(), hashlib.sha256).hexdigest()
    return UserId(f"u_{digest[:32]}")
