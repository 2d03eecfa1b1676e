"""Token adapters - Signed token issuance."""

from .jwt_issuer import JwtTokenIssuer

__all__ = ["JwtTokenIssuer"]
