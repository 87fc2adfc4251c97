"""Token state and the in-memory cache that holds it."""

import time
from collections.abc import Callable
from dataclasses import dataclass, field

from kcadmin.models import TokenResponse

# Seconds subtracted from the server-reported lifetime at issuance so a token is
# never used right at the edge of its expiry.
EXPIRY_SAFETY_MARGIN_SECONDS = 10

Clock = Callable[[], float]


def _expiry(issued_at: float, lifetime: int) -> float:
    margin = min(EXPIRY_SAFETY_MARGIN_SECONDS, lifetime / 2)
    return issued_at + lifetime - margin


@dataclass(frozen=True)
class TokenState:
    """
    Access token with expiration tracking.

    Attributes:
        access_token: The bearer token string
        expires_at: Unix timestamp after which the token is treated as expired,
            or None for a token that never expires
        refresh_token: Refresh token, when the grant issued one
        refresh_expires_at: Unix timestamp when the refresh token expires,
            or None if it does not expire
    """

    access_token: str = field(repr=False)
    expires_at: float | None
    refresh_token: str | None = field(default=None, repr=False)
    refresh_expires_at: float | None = None

    @classmethod
    def from_response(cls, response: TokenResponse, issued_at: float) -> "TokenState":
        """
        Create token state from a token endpoint response.

        Args:
            response: Validated token response
            issued_at: Unix timestamp at which the token was requested

        Returns:
            TokenState with safety-adjusted expiry timestamps
        """
        refresh_expires_at = None
        if response.refresh_token and response.refresh_expires_in:
            refresh_expires_at = _expiry(issued_at, response.refresh_expires_in)

        return cls(
            access_token=response.access_token,
            expires_at=_expiry(issued_at, response.expires_in),
            refresh_token=response.refresh_token,
            refresh_expires_at=refresh_expires_at,
        )

    def can_refresh(self, now: float) -> bool:
        """True if a refresh token is present and not yet expired."""
        if not self.refresh_token:
            return False
        return self.refresh_expires_at is None or now < self.refresh_expires_at


class TokenCache:
    """Holds the current token state. No network or locking logic."""

    def __init__(self, clock: Clock = time.time):
        self._clock = clock
        self._state: TokenState | None = None

    def get(self) -> TokenState | None:
        return self._state

    def set(self, state: TokenState) -> None:
        self._state = state

    def clear(self) -> None:
        self._state = None

    def is_valid(self, margin_seconds: float = 0) -> bool:
        """True iff a token is present and ``now + margin_seconds < expires_at``."""
        if self._state is None:
            return False
        if self._state.expires_at is None:
            return True
        return self._clock() + margin_seconds < self._state.expires_at

    def time_to_expiry(self) -> float | None:
        """Seconds until the cached token expires.

        None when the cache is empty or the token never expires. Negative once
        the token has expired.
        """
        if self._state is None or self._state.expires_at is None:
            return None
        return self._state.expires_at - self._clock()


__all__ = ["TokenState", "TokenCache", "EXPIRY_SAFETY_MARGIN_SECONDS"]
