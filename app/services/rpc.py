import logging
from typing import Any, Dict, Optional

import httpx

from app.core.config import RPC_API_KEY, RPC_BASE_URL, RPC_TIMEOUT_SECONDS
from app.core.errors import ConflictError, UpstreamError, ValidationError

logger = logging.getLogger("akshayapatra.rpc")


class RpcClient:
    """
    Calls named remote procedures (Cloud Functions) that own the platform's
    business rules: profile creation, referral attachment, draws, overview.

    POST {base_url}/{name} with the params as JSON; the procedure answers
    {"data": ...} or {"error": {...}}.
    """

    def __init__(self, base_url: str = RPC_BASE_URL, api_key: str = RPC_API_KEY,
                 timeout: float = RPC_TIMEOUT_SECONDS, transport: Optional[httpx.BaseTransport] = None):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = httpx.Timeout(timeout, connect=min(timeout, 5.0))
        self._transport = transport

    def call(self, name: str, params: Optional[Dict[str, Any]] = None, user_token: Optional[str] = None) -> Any:
        if not self.base_url:
            # No endpoint configured: fail closed
            raise UpstreamError(f"RPC endpoint not configured (calling {name})")

        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["X-Api-Key"] = self.api_key
        if user_token:
            headers["Authorization"] = f"Bearer {user_token}"

        try:
            with httpx.Client(timeout=self.timeout, transport=self._transport) as client:
                response = client.post(f"{self.base_url}/{name}", json=params or {}, headers=headers)
        except httpx.TimeoutException:
            logger.error(f"RPC {name} timed out")
            raise UpstreamError(f"RPC {name} timed out")
        except httpx.HTTPError as e:
            logger.error(f"RPC {name} transport error: {e}")
            raise UpstreamError(f"RPC {name} failed")

        try:
            body = response.json()
        except ValueError:
            body = {}

        if response.status_code >= 400 or (isinstance(body, dict) and body.get("error")):
            error = body.get("error") if isinstance(body, dict) else None
            message = error.get("message") if isinstance(error, dict) else error
            # Business rule rejections (bad referral code, self referral...) go back to the caller
            if response.status_code in (400, 422) and message:
                logger.info(f"RPC {name} rejected: {message}")
                raise ValidationError(str(message))
            if response.status_code == 409 and message:
                raise ConflictError(str(message))
            logger.error(f"RPC {name} returned {response.status_code}: {message}")
            raise UpstreamError(f"RPC {name} failed")

        return body.get("data") if isinstance(body, dict) else body


def get_rpc_client() -> RpcClient:
    return RpcClient()
