"""Token adapters - Signed session token implementations."""

from .jwt_tokens import JwtTokenService

__all__ = ["JwtTokenService"]
