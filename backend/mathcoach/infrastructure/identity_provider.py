"""Identity Providers — exchange a client login credential for a stable user id.

Invariants:
    - Same credential (or same WeChat account) always yields the same id
    - Any provider failure raises CollaboratorError (collaborator="identity")
    - Empty credentials are rejected before any network call

Design Decisions:
    - WeChat: jscode2session over httpx, the platform's documented login exchange
    - HMAC provider for development and tests: deterministic, no network
"""

import logging

import httpx

from mathcoach.core.domain_types import UserId
from mathcoach.core.errors import CollaboratorError
from mathcoach.core.identity_token import derive_user_id

logger = logging.getLogger(__name__)

_COLLABORATOR = "identity"


class HmacIdentityProvider:
    def __init__(self, secret: str):
        self._secret = secret

    async def resolve(self, credential: str) -> UserId:
        if not credential.strip():
            raise CollaboratorError("empty credential", _COLLABORATOR, "invalid_credential")
        return derive_user_id(credential.strip(), self._secret)


class WeChatIdentityProvider:
    """Resolves a mini-program login code to the user's openid."""

    def __init__(
        self,
        app_id: str,
        app_secret: str,
        api_base: str = "https://api.weixin.qq.com",
        timeout_seconds: float = 10.0,
        http_client: httpx.AsyncClient | None = None,
    ):
        self._app_id = app_id
        self._app_secret = app_secret
        self._api_base = api_base.rstrip("/")
        self._timeout = timeout_seconds
        self._http_client = http_client

    async def resolve(self, credential: str) -> UserId:
        if not credential.strip():
            raise CollaboratorError("empty credential", _COLLABORATOR, "invalid_credential")
        params = {
            "appid": self._app_id,
            "secret": self._app_secret,
            "js_code": credential.strip(),
            "grant_type": "authorization_code",
        }
        url = f"{self._api_base}/sns/jscode2session"
        try:
            if self._http_client is not None:
                response = await self._http_client.get(url, params=params)
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    response = await client.get(url, params=params)
            response.raise_for_status()
            body = response.json()
        except httpx.TimeoutException as e:
            raise CollaboratorError(str(e), _COLLABORATOR, "timeout")
        except (httpx.HTTPError, ValueError) as e:
            raise CollaboratorError(str(e), _COLLABORATOR, "connection_error")

        openid = body.get("openid") if isinstance(body, dict) else None
        if not openid:
            errcode = body.get("errcode") if isinstance(body, dict) else None
            logger.warning(f"jscode2session rejected credential (errcode={errcode})")
            raise CollaboratorError(
                f"no openid in response (errcode={errcode})",
                _COLLABORATOR, "invalid_credential",
            )
        return UserId(openid)
