"""
JWT token issuer adapter - Implements TokenIssuer protocol via PyJWT.

Access and refresh tokens are signed with different secrets and carry a
`type` claim, so one can never be presented as the other.
"""

import logging
from datetime import timedelta

import jwt

from src.domain.exceptions import InvalidCredentials
from src.domain.models import AuthTokens, Role
from src.domain.ports import Clock, TokenClaims, system_clock

logger = logging.getLogger(__name__)

ACCESS = "access"
REFRESH = "refresh"


def _describe(delta: timedelta) -> str:
    """Render a lifetime the way clients display it ("1h", "7d", "30m")."""
    seconds = int(delta.total_seconds())
    if seconds % 86400 == 0:
        return f"{seconds // 86400}d"
    if seconds % 3600 == 0:
        return f"{seconds // 3600}h"
    return f"{max(1, seconds // 60)}m"


class JwtTokenIssuer:
    """
    Implements TokenIssuer protocol.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    def __init__(
        self,
        access_secret: str,
        refresh_secret: str,
        algorithm: str = "HS256",
        access_ttl: timedelta = timedelta(hours=1),
        refresh_ttl: timedelta = timedelta(days=7),
        clock: Clock = system_clock,
    ) -> None:
        self._secrets = {ACCESS: access_secret, REFRESH: refresh_secret}
        self._ttls = {ACCESS: access_ttl, REFRESH: refresh_ttl}
        self._algorithm = algorithm
        self._clock = clock

    def issue(self, user_id: str, email: str, role: Role) -> AuthTokens:
        return AuthTokens(
            access_token=self._encode(ACCESS, user_id, email, role),
            refresh_token=self._encode(REFRESH, user_id, email, role),
            expires_in_access=_describe(self._ttls[ACCESS]),
            expires_in_refresh=_describe(self._ttls[REFRESH]),
        )

    def issue_access(self, user_id: str, email: str, role: Role) -> str:
        return self._encode(ACCESS, user_id, email, role)

    def decode_access(self, token: str) -> TokenClaims:
        return self._decode(ACCESS, token)

    def decode_refresh(self, token: str) -> TokenClaims:
        return self._decode(REFRESH, token)

    def _encode(self, kind: str, user_id: str, email: str, role: Role) -> str:
        now = self._clock()
        payload = {
            "sub": user_id,
            "email": email,
            "role": role.value,
            "type": kind,
            "iat": now,
            "exp": now + self._ttls[kind],
        }
        return jwt.encode(payload, self._secrets[kind], algorithm=self._algorithm)

    def _decode(self, kind: str, token: str) -> TokenClaims:
        """
        Verify signature, expiry and token type.

        Raises:
            InvalidCredentials: Token malformed, expired, or of the other type
        """
        try:
            payload = jwt.decode(
                token.strip(),
                self._secrets[kind],
                algorithms=[self._algorithm],
                options={"require": ["sub", "exp"]},
            )
        except jwt.PyJWTError as exc:
            logger.info("Rejected %s token: %s", kind, exc)
            raise InvalidCredentials(f"Invalid {kind} token") from exc

        if payload.get("type") != kind:
            raise InvalidCredentials(f"Invalid {kind} token")
        try:
            role = Role(payload.get("role"))
        except ValueError as exc:
            raise InvalidCredentials(f"Invalid {kind} token") from exc
        return TokenClaims(subject=payload["sub"], email=payload.get("email", ""), role=role)
