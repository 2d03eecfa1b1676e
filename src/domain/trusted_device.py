"""
Trusted-device validator.

The trust cache is a read-through accelerator over the authoritative
`trusted_device_id` stored on the account. Correctness never depends on
the cache being populated; a miss falls back to the account record and
backfills the entry.
"""

import logging
from dataclasses import dataclass

from .models import RequestContext, utcnow
from .ports import CredentialStore, TrustCache, trusted_device_key

logger = logging.getLogger(__name__)


@dataclass
class TrustedDeviceValidator:
    """Decides whether a (username, device) pair may skip the passcode step."""

    store: CredentialStore
    cache: TrustCache

    def validate(self, username: str, device_id: str) -> bool:
        """
        Return True if `device_id` is the trusted device for `username`.

        A cache hit grants trust with no further I/O. On a miss the account
        is loaded; if its trusted device matches, the cache entry is written
        (only when absent) and trust is granted.
        """
        if not device_id:
            return False

        key = trusted_device_key(username, device_id)
        if self.cache.get(key):
            return True

        account = self.store.find_by_username(username)
        if account is None or account.trusted_device_id != device_id:
            return False

        if not self.cache.exists(key):
            self.cache.set(key, account.trusted_device_id)
        return True

    def update_device(self, username: str, context: RequestContext) -> None:
        """
        Promote the current request's device to the trusted device.

        Only called after the caller has passed the passcode step. The
        previous device's cache entry is removed before the new one is
        written; the account record is then updated and persisted.
        """
        account = self.store.find_by_username(username)
        if account is None:
            logger.warning("Trusted device update skipped, account missing: %s", username)
            return

        new_device_id = context.device_id
        if account.trusted_device_id:
            self.cache.remove(trusted_device_key(username, account.trusted_device_id))
        self.cache.set(trusted_device_key(username, new_device_id), new_device_id)

        account.trusted_device_id = new_device_id
        account.modified_by = username
        account.modified_date = utcnow()
        self.store.update(account)
        logger.info("Trusted device updated for %s", username)
