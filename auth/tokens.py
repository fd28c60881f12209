"""
auth/tokens.py -- Opaque bearer token issuance, resolution and revocation.

Security design decisions:
  Secrets: secrets.token_hex(32) gives 256 bits of entropy, formatted as
       "<prefix><64 hex chars>" (prefix "cg_" by default) so leaked tokens are
       easy to grep for in logs and repositories.

  Storage: we store HMAC-SHA256(SECRET_KEY, raw_token) and never the raw
       token. The digest is deterministic, so lookup is O(1) by hash; bcrypt's
       intentional slowness buys nothing against 256-bit random secrets. An
       attacker who obtains the DB cannot present stored digests as tokens.

  Collisions: the UNIQUE index on token_hash is authoritative. A colliding
       insert raises IntegrityError and issue() retries with a fresh secret.
       After _MAX_ATTEMPTS failures something is badly wrong with the random
       source, so we raise TokenGenerationError rather than loop forever.

Layer rule: no imports from api/ or notify/. Import from core/ is allowed.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
import secrets
from collections.abc import Callable

from sqlalchemy.exc import IntegrityError

from auth.errors import TokenGenerationError
from auth.models import Account, AuthContext, BearerToken
from auth.store import AuthStore

logger = logging.getLogger("credgate.auth")

_MAX_ATTEMPTS = 5


def generate_token_secret(prefix: str = "cg_") -> str:
    """Generate a new raw bearer token: prefix + 64 hex chars (256 bits)."""
    return f"{prefix}{secrets.token_hex(32)}"


class TokenIssuer:
    """Issues, resolves and revokes bearer tokens for accounts.

    The raw secret exists only on the BearerToken returned by issue(); every
    other method works from the HMAC digest.
    """

    def __init__(
        self,
        store: AuthStore,
        secret_key: str,
        prefix: str = "cg_",
        generator: Callable[[], str] | None = None,
    ) -> None:
        self._store = store
        self._key = secret_key.encode("utf-8")
        self._generator = generator or (lambda: generate_token_secret(prefix))

    def hash_token(self, raw_token: str) -> str:
        """Return HMAC-SHA256(SECRET_KEY, raw_token) as a hex string."""
        return hmac.new(self._key, raw_token.encode("utf-8"), hashlib.sha256).hexdigest()

    def issue(self, account_id: int, name: str = "auth-token") -> BearerToken:
        """Create and persist a token for account_id. The returned object carries plain_text."""
        for attempt in range(1, _MAX_ATTEMPTS + 1):
            raw = self._generator()
            token = BearerToken(account_id=account_id, name=name, token_hash=self.hash_token(raw))
            try:
                token.id = self._store.create_token(token)
            except IntegrityError:
                logger.warning("Token hash collision for account %s (attempt %d)", account_id, attempt)
                continue
            token.plain_text = raw
            logger.info("Issued token id=%s for account %s", token.id, account_id)
            return token
        raise TokenGenerationError(f"Could not allocate a unique token after {_MAX_ATTEMPTS} attempts.")

    def authenticate(self, raw_token: str) -> AuthContext | None:
        """Resolve a presented token to its account and token record.

        Returns None for unknown tokens and for tokens whose account no longer
        exists. Stamps last_used_at on success.
        """
        if not raw_token:
            return None
        token = self._store.get_token_by_hash(self.hash_token(raw_token))
        if token is None:
            return None
        account = self._store.get_account_by_id(token.account_id)
        if account is None:
            return None
        self._store.touch_token(token.id)
        return AuthContext(account=account, token=token)

    def resolve(self, raw_token: str) -> Account | None:
        """Return the account that owns a presented token, or None."""
        context = self.authenticate(raw_token)
        return context.account if context is not None else None

    def revoke(self, token_id: int) -> None:
        """Delete one token. Revoking an already-revoked token is a no-op."""
        if self._store.delete_token(token_id):
            logger.info("Revoked token id=%s", token_id)

    def revoke_all(self, account_id: int) -> int:
        """Delete every token owned by account_id. Returns how many were removed."""
        removed = self._store.delete_tokens_for_account(account_id)
        logger.info("Revoked %d token(s) for account %s", removed, account_id)
        return removed
