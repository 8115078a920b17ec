"""
JWT token adapter - Implements TokenService protocol with PyJWT.

Each namespace signs with its own secret and stamps its name into the
`aud` claim, so a token can only be verified by the namespace that
issued it. All verification failures collapse to InvalidToken; the
reason is logged at DEBUG and never returned to the caller.
"""

import logging
from collections.abc import Mapping
from datetime import timedelta

import jwt

from src.domain.exceptions import InvalidToken
from src.domain.ports import Clock, TokenNamespace, utc_now

logger = logging.getLogger(__name__)


class JwtTokenService:
    """
    Implements TokenService protocol via PyJWT.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    def __init__(
        self,
        secrets: Mapping[TokenNamespace, str],
        algorithm: str = "HS256",
        clock: Clock = utc_now,
    ) -> None:
        missing = [namespace.value for namespace in TokenNamespace if not secrets.get(namespace)]
        if missing:
            raise ValueError(f"missing token secret for namespace(s): {', '.join(missing)}")
        self._secrets = dict(secrets)
        self._algorithm = algorithm
        self._clock = clock

    def sign(self, principal_id: str, namespace: TokenNamespace, expires_in: timedelta) -> str:
        now = self._clock()
        payload = {
            "sub": principal_id,
            "aud": namespace.value,
            "iat": now,
            "exp": now + expires_in,
        }
        return jwt.encode(payload, self._secrets[namespace], algorithm=self._algorithm)

    def verify(self, token: str, namespace: TokenNamespace) -> str:
        try:
            payload = jwt.decode(
                token,
                self._secrets[namespace],
                algorithms=[self._algorithm],
                audience=namespace.value,
                options={"require": ["exp", "sub", "aud"]},
            )
        except jwt.PyJWTError as e:
            logger.debug("Rejected %s token: %s", namespace.value, e)
            raise InvalidToken(namespace.value) from None
        return str(payload["sub"])
