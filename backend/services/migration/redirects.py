"""
OAuth redirect capture and attribution.

Both logins redirect to the same URI and the two redirect URLs are
structurally identical, so a redirect is attributed to a tenant purely by the
order in which the logins were started.
"""

import asyncio
import inspect
import logging
from typing import Awaitable, Callable, Dict, List, Optional, Sequence, Union

from .exceptions import LoginSequenceError, RedirectsIncomplete
from .session import TenantRole

logger = logging.getLogger(__name__)

ROLES = (TenantRole.SOURCE, TenantRole.DEST)


def attribute_redirects(
    redirect_urls: Sequence[str],
    login_order: Sequence[TenantRole]
) -> Dict[TenantRole, str]:
    """Map each role to the redirect captured at its position in the login order"""
    if len(redirect_urls) < len(ROLES):
        raise RedirectsIncomplete(
            f"Captured {len(redirect_urls)} of {len(ROLES)} login redirects"
        )

    attribution = {}
    for role in ROLES:
        if list(login_order).count(role) != 1:
            raise RedirectsIncomplete(f"Login for the {role.value} account was not started exactly once")
        attribution[role] = redirect_urls[list(login_order).index(role)]
    return attribution


class RedirectCapture:
    """
    Shell-side record of the redirects the authorization server issues.

    Cookies for the authentication domain are cleared right after each
    redirect is recorded; otherwise the second login silently reuses the
    first account's session and the same tenant is redirected twice.

    The API process never captures redirects itself. This class is the
    reference implementation for the shell-side hook: a shell embeds it,
    wires its browser cookie store into ``clear_cookies``, and posts
    ``console_init_started()`` to ``POST /api/v1/console/redirects``.
    """

    def __init__(self, clear_cookies: Callable[[], Union[None, Awaitable[None]]]):
        self._clear_cookies = clear_cookies
        self._redirect_urls: List[str] = []

    @property
    def redirect_urls(self) -> List[str]:
        return list(self._redirect_urls)

    @property
    def redirected(self) -> bool:
        return bool(self._redirect_urls)

    async def capture(self, url: str):
        self._redirect_urls.append(url)
        logger.info(f"Captured login redirect {len(self._redirect_urls)}", extra={"action": "redirect_captured"})

        result = self._clear_cookies()
        if inspect.isawaitable(result):
            await result

    def console_init_started(self) -> List[str]:
        """Answer the console's init notification with everything captured so far"""
        return self.redirect_urls


class RedirectDelivery:
    """One-shot channel carrying the captured redirects to the console"""

    def __init__(self):
        self._future: Optional[asyncio.Future] = None
        self.init_started = False

    def _get_future(self) -> asyncio.Future:
        if self._future is None:
            self._future = asyncio.get_running_loop().create_future()
        return self._future

    def notify_init_started(self):
        self.init_started = True
        self._get_future()

    @property
    def delivered(self) -> bool:
        return self._future is not None and self._future.done()

    def deliver(self, redirect_urls: Sequence[str]):
        future = self._get_future()
        if future.done():
            raise LoginSequenceError("Login redirects have already been delivered")
        future.set_result(list(redirect_urls))

    async def wait(self) -> List[str]:
        return await self._get_future()
