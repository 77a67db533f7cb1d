"""
HTTP transport for the migration services.
Performs single authenticated calls against the e-signature REST API.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import aiohttp

from core.config import settings
from .exceptions import NetworkError

logger = logging.getLogger(__name__)


def bearer(token: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@dataclass
class RequestConfig:
    """A single REST call"""
    method: str
    url: str
    headers: Dict[str, str] = field(default_factory=dict)
    json: Optional[Any] = None
    form: Optional[Dict[str, str]] = None
    params: Optional[Dict[str, Any]] = None


class HttpTransport:
    """aiohttp-backed transport sharing one client session"""

    def __init__(self, timeout: float = None, verify_ssl: bool = None):
        self.timeout = timeout if timeout is not None else settings.HTTP_TIMEOUT_SECONDS
        self.verify_ssl = settings.VERIFY_SSL if verify_ssl is None else verify_ssl
        self._session: Optional[aiohttp.ClientSession] = None

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout),
                connector=aiohttp.TCPConnector(ssl=self.verify_ssl),
            )
        return self._session

    async def request(self, config: RequestConfig) -> Any:
        """Perform the call and return the decoded response body"""
        session = await self._get_session()
        method = config.method.upper()

        kwargs = {"headers": config.headers}
        if config.params:
            kwargs["params"] = config.params
        if config.json is not None:
            kwargs["json"] = config.json
        elif config.form is not None:
            kwargs["data"] = config.form

        try:
            async with session.request(method, config.url, **kwargs) as resp:
                await self._raise_for_status(method, config.url, resp)
                if resp.status == 204:
                    return None
                if resp.content_type == "application/json":
                    return await resp.json()
                return await resp.text() or None
        except aiohttp.ClientError as e:
            raise NetworkError(f"{method} {config.url} failed: {e}") from e
        except asyncio.TimeoutError as e:
            raise NetworkError(f"{method} {config.url} timed out") from e
        except ValueError as e:
            raise NetworkError(f"{method} {config.url} returned a malformed body") from e

    async def download(self, url: str, headers: Dict[str, str] = None) -> bytes:
        """Fetch raw bytes (e.g. a combined document PDF)"""
        session = await self._get_session()
        try:
            async with session.get(url, headers=headers or {}) as resp:
                await self._raise_for_status("GET", url, resp)
                return await resp.read()
        except aiohttp.ClientError as e:
            raise NetworkError(f"Download of {url} failed: {e}") from e
        except asyncio.TimeoutError as e:
            raise NetworkError(f"Download of {url} timed out") from e

    async def upload(
        self,
        url: str,
        headers: Dict[str, str],
        file_name: str,
        content: bytes,
        content_type: str = "application/pdf"
    ) -> Any:
        """Multipart upload with the File-Name/File fields the API expects"""
        session = await self._get_session()
        form = aiohttp.FormData()
        form.add_field("File-Name", file_name)
        form.add_field("File", content, filename=file_name, content_type=content_type)

        try:
            async with session.post(url, data=form, headers=headers) as resp:
                await self._raise_for_status("POST", url, resp)
                return await resp.json()
        except aiohttp.ClientError as e:
            raise NetworkError(f"Upload to {url} failed: {e}") from e
        except asyncio.TimeoutError as e:
            raise NetworkError(f"Upload to {url} timed out") from e
        except ValueError as e:
            raise NetworkError(f"Upload to {url} returned a malformed body") from e

    async def _raise_for_status(self, method: str, url: str, resp: aiohttp.ClientResponse):
        if resp.status < 400:
            return
        body = await resp.text()
        logger.warning(f"{method} {url} returned {resp.status}", extra={"status_code": resp.status})
        raise NetworkError(f"{method} {url} returned {resp.status}", status=resp.status, body=body[:500])

    async def close(self):
        """Close HTTP session"""
        if self._session and not self._session.closed:
            await self._session.close()
