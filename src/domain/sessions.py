"""Session guard - stateless bearer-token authentication per namespace."""

from dataclasses import dataclass

from .exceptions import MissingToken
from .ports import TokenNamespace, TokenService


@dataclass(frozen=True)
class SessionGuard:
    """
    Validates session tokens for one principal namespace.

    Admin and user tokens are checked by separate guards; a token minted
    for one namespace never authenticates against the other.
    """

    token_service: TokenService
    namespace: TokenNamespace

    def authenticate(self, token: str | None) -> str:
        """
        Resolve a token to its principal id.

        Raises:
            MissingToken: Token absent or blank
            InvalidToken: Signature, expiry or namespace check failed
        """
        if token is None or not token.strip():
            raise MissingToken(self.namespace.value)
        return self.token_service.verify(token.strip(), self.namespace)
