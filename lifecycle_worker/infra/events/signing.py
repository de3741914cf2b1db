"""Signed tokens for published account events.

Each event is delivered as an RS256 JWT. The private key is loaded once at
startup; signing itself is a pure function of (payload, key, claims, now), so
two calls with equal inputs produce the same token.

Example:
    signer = TokenSigner.from_file(settings.jwt.secret_key_file)
    claims = TokenClaims(issuer="accounts.example.com", key_id="2024-01",
                         jwk_url="https://accounts.example.com/.well-known/jwks")
    token = signer.sign(event_claims(event), claims)
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any

from jose import jwk, jwt
from jose.exceptions import JOSEError

from lifecycle_worker.core.exceptions import KeyLoadError

if TYPE_CHECKING:
    from lifecycle_worker.core.settings.notifications import JwtSettings
    from lifecycle_worker.infra.events.outbox.models import AccountEvent

logger = logging.getLogger(__name__)

ALGORITHM = "RS256"


@dataclass(frozen=True, slots=True)
class TokenClaims:
    """Issuer identity stamped on every token.

    Attributes:
        issuer: ``iss`` claim
        key_id: ``kid`` header; lets the receiver pick the verification key
        jwk_url: ``jku`` header; where the receiver fetches the public keys
    """

    issuer: str
    key_id: str
    jwk_url: str

    @classmethod
    def from_settings(cls, settings: JwtSettings) -> TokenClaims:
        return cls(issuer=settings.iss, key_id=settings.kid, jwk_url=settings.jku)


class TokenSigner:
    """RS256 signer over a PEM-encoded RSA private key.

    The key is parsed once here; every ``sign`` call reuses the parsed key.
    """

    def __init__(self, private_key_pem: str) -> None:
        """Parse and validate the key.

        Raises:
            KeyLoadError: If the PEM is not a usable RSA private key.
        """
        try:
            key = jwk.construct(private_key_pem, ALGORITHM)
        except (JOSEError, ValueError, TypeError) as e:
            raise KeyLoadError(f"Malformed signing key: {e}") from e
        if key.is_public():
            raise KeyLoadError("Signing key is a public key; a private key is required")
        self._key = key

    @classmethod
    def from_file(cls, path: str | Path) -> TokenSigner:
        """Load the signing key from a PEM file.

        Raises:
            KeyLoadError: If the file is unreadable or the key is malformed.
        """
        key_path = Path(path)
        try:
            pem = key_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise KeyLoadError(
                f"Unable to read signing key file: {e}",
                extra={"secret_key_file": str(key_path)},
            ) from e

        signer = cls(pem)
        logger.info("Signing key loaded", extra={"secret_key_file": str(key_path)})
        return signer

    def sign(
        self,
        payload: dict[str, Any],
        claims: TokenClaims,
        *,
        now: datetime | None = None,
    ) -> str:
        """Sign ``payload`` into a compact JWS.

        ``iss`` and ``iat`` are added to the body; ``kid`` and ``jku`` go in the
        header. ``iat`` is the current time unless ``now`` is given.
        """
        issued_at = now or datetime.now(UTC)
        body = {**payload, "iss": claims.issuer, "iat": int(issued_at.timestamp())}
        return jwt.encode(
            body,
            self._key,
            algorithm=ALGORITHM,
            headers={"kid": claims.key_id, "jku": claims.jwk_url},
        )


def event_claims(event: AccountEvent) -> dict[str, Any]:
    """Token body for one outbox event.

    ``id`` lets the receiver discard redeliveries of the same event.
    """
    created_at = event.created_at
    if created_at.tzinfo is None:
        created_at = created_at.replace(tzinfo=UTC)
    return {
        "id": event.id,
        "uid": event.account_id,
        "event": event.event_type,
        "ts": int(created_at.timestamp()),
        "data": event.payload or {},
    }


__all__ = ["ALGORITHM", "TokenClaims", "TokenSigner", "event_claims"]
