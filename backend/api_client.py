import logging
from typing import Any, Dict, Optional

import httpx

from config import settings

logger = logging.getLogger(__name__)


class ApiClient:
    """Async REST client for the upstream menu API.

    Mirrors the front-end client: fixed base URL, timeout, JSON headers and
    the viewer's session cookie sent with every request.
    """

    def __init__(
        self,
        *,
        base_url: str = None,
        timeout: float = None,
        cookies: Optional[Dict[str, str]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url or settings.MENU_API_BASE_URL
        self.timeout = settings.MENU_API_TIMEOUT if timeout is None else timeout
        cookies = cookies if cookies is not None else settings.menu_api_cookies
        self.default_cookie = "; ".join(f"{name}={value}" for name, value in cookies.items())
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            headers={"Content-Type": "application/json"},
            transport=transport,
        )

    async def get_json(
        self,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        credential: Optional[str] = None,
    ) -> Any:
        """GET ``path`` and decode the JSON body; raises on transport or HTTP errors.

        ``credential`` is the viewer's session cookie value; when given it
        replaces the default cookies for this request.
        """
        cookie = f"{settings.SESSION_COOKIE_NAME}={credential}" if credential else self.default_cookie
        headers = {"Cookie": cookie} if cookie else None
        try:
            resp = await self._client.get(path, params=params, headers=headers)
            resp.raise_for_status()
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            if status == 401:
                logger.warning(f"Unauthorized response from {path}")
            elif status == 403:
                logger.warning(f"Access denied for {path}")
            elif status == 404:
                logger.warning(f"Resource not found: {path}")
            else:
                logger.error(f"API error {status} for {path}")
            raise
        except httpx.RequestError as exc:
            logger.error(f"Network error calling {path}: {exc}")
            raise
        return resp.json()

    async def aclose(self) -> None:
        await self._client.aclose()
