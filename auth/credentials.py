"""
auth/credentials.py -- Account records with hashed passwords.

CredentialStore sits between the flows and the AuthStore repository: it is
the only place a plaintext password is turned into a stored hash. It never
touches tokens; the reset flow composes replace_password() with
TokenIssuer.revoke_all() itself.
"""

from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError

from auth.errors import AlreadyExists, NotFound
from auth.hashing import hash_secret
from auth.models import Account
from auth.store import AuthStore

logger = logging.getLogger("credgate.auth")


class CredentialStore:
    def __init__(self, store: AuthStore) -> None:
        self._store = store

    def find_by_email(self, email: str) -> Account | None:
        return self._store.get_account_by_email(email)

    def get(self, account_id: int) -> Account | None:
        return self._store.get_account_by_id(account_id)

    def create(self, display_name: str, email: str, password: str) -> Account:
        """Hash the password and insert a new account.

        Raises AlreadyExists when the email is taken. The conflict is detected
        by the UNIQUE constraint on insert, not by a prior lookup, so two
        concurrent registrations cannot both win.
        """
        account = Account(display_name=display_name, email=email, password_hash=hash_secret(password))
        try:
            account.id = self._store.create_account(account)
        except IntegrityError as exc:
            raise AlreadyExists() from exc
        created = self._store.get_account_by_id(account.id)
        logger.info("Created account id=%s", account.id)
        return created if created is not None else account

    def replace_password(self, account_id: int, new_password: str) -> None:
        """Hash new_password and overwrite the stored hash. Raises NotFound for unknown ids."""
        if not self._store.update_password_hash(account_id, hash_secret(new_password)):
            raise NotFound()
        logger.info("Replaced password for account id=%s", account_id)
