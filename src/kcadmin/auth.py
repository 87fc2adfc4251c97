"""Authentication manager: the single source of a usable bearer token."""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable

import aiohttp

from kcadmin.config import ConnectionConfig
from kcadmin.credentials import get_strategy
from kcadmin.exceptions import KeycloakAuthError
from kcadmin.token_cache import Clock, TokenCache, TokenState

logger = logging.getLogger(__name__)

# A cached token is only handed out if it stays valid at least this long.
# Applied on top of the issuance margin in kcadmin.token_cache.
DEFAULT_REFRESH_MARGIN_SECONDS = 5

SessionProvider = Callable[[], Awaitable[aiohttp.ClientSession]]


class AuthenticationManager:
    """
    Caches the access token of one client and acquires a new one when needed.

    At most one acquisition or refresh is in flight at any time. Concurrent
    callers that need a token while one is being fetched await the same
    pending task and all receive the same token, or the same exception.

    Usage:
        manager = AuthenticationManager(config, session_provider)
        token = await manager.get_valid_token()
        headers = {"Authorization": f"Bearer {token}"}
    """

    def __init__(
        self,
        config: ConnectionConfig,
        session_provider: SessionProvider,
        refresh_margin_seconds: float = DEFAULT_REFRESH_MARGIN_SECONDS,
        clock: Clock = time.time,
    ):
        """
        Initialize the manager.

        Args:
            config: Connection configuration (selects the credential strategy)
            session_provider: Coroutine function returning the HTTP session
            refresh_margin_seconds: Treat tokens expiring within this many
                seconds as already expired
            clock: Source of the current Unix time
        """
        self._config = config
        self._session_provider = session_provider
        self._strategy = get_strategy(config.auth_method)
        self._clock = clock
        self._cache = TokenCache(clock=clock)
        self._pending: asyncio.Task[str] | None = None
        self.refresh_margin_seconds = refresh_margin_seconds

    @property
    def has_pending_refresh(self) -> bool:
        return self._pending is not None

    async def get_valid_token(self, force_refresh: bool = False, rejected_token: str | None = None) -> str:
        """
        Return a bearer token that is valid right now.

        A cached token is returned without suspending. Otherwise the caller
        joins the pending acquisition, or starts one if none is running.

        Args:
            force_refresh: Skip the cached token and obtain a new one
            rejected_token: A token the server just rejected (401/403). The
                cache is bypassed only while it still holds this token; if a
                newer one was stored meanwhile, that one is returned

        Returns:
            Access token string

        Raises:
            KeycloakAuthError: If the token could not be acquired
        """
        cached = self._cache.get()
        stale = force_refresh or (
            rejected_token is not None and cached is not None and cached.access_token == rejected_token
        )
        if not stale and self._cache.is_valid(self.refresh_margin_seconds):
            return cached.access_token

        if self._pending is None:
            reason = "forced refresh" if stale else self._describe_cache()
            logger.debug(f"Starting token acquisition for realm '{self._config.token_realm}' ({reason})")
            self._pending = asyncio.get_running_loop().create_task(self._obtain_token())
        else:
            logger.debug("Joining pending token acquisition")

        # shield: a cancelled caller must not cancel the acquisition others await
        return await asyncio.shield(self._pending)

    def _describe_cache(self) -> str:
        if self._cache.get() is None:
            return "no cached token"
        return "cached token expired or expiring"

    async def _obtain_token(self) -> str:
        try:
            previous = self._cache.get()
            session = await self._session_provider()
            state = await self._refresh_or_acquire(session, previous)
            self._cache.set(state)

            if state.expires_at is None:
                logger.info(f"Using non-expiring token for realm '{self._config.token_realm}'")
            else:
                logger.info(
                    f"Token for realm '{self._config.token_realm}' valid for "
                    f"{state.expires_at - self._clock():.0f}s"
                )
            return state.access_token

        except KeycloakAuthError as e:
            logger.error(f"Failed to get token for realm '{self._config.token_realm}': {e}")
            raise
        finally:
            self._pending = None

    async def _refresh_or_acquire(
        self, session: aiohttp.ClientSession, previous: TokenState | None
    ) -> TokenState:
        refresh = self._strategy.refresh
        if refresh is not None and previous is not None and previous.can_refresh(self._clock()):
            try:
                return await refresh(self._config, session, previous, self._clock)
            except KeycloakAuthError as e:
                logger.warning(f"Token refresh failed, will acquire new token: {e}")

        return await self._strategy.acquire(self._config, session, self._clock)


__all__ = ["AuthenticationManager", "DEFAULT_REFRESH_MARGIN_SECONDS", "SessionProvider"]
