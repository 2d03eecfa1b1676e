"""
Handle allocator - unique human-readable account handles.

Candidates are the lower-cased, whitespace-stripped first and last name
followed by a random numeric suffix. Uniqueness is checked against every
live account except the owner, so an account never collides with its
own current handle. The retry loop is bounded; the store's unique index
remains the authoritative guard against concurrent allocations.
"""

import logging
import secrets
from collections.abc import Callable
from dataclasses import dataclass

from .exceptions import HandleAllocationExhausted
from .ports import CredentialStore

logger = logging.getLogger(__name__)


def handle_base(first_name: str, last_name: str) -> str:
    """Concatenate name parts with all whitespace removed, lower-cased."""
    return "".join(f"{first_name}{last_name}".split()).lower()


@dataclass
class HandleAllocator:
    store: CredentialStore
    suffix_max: int = 10000
    max_attempts: int = 20

    def candidate(self, first_name: str, last_name: str) -> str:
        return f"{handle_base(first_name, last_name)}{secrets.randbelow(self.suffix_max)}"

    def allocate(
        self,
        first_name: str,
        last_name: str,
        username: str,
        preferred: str | None = None,
        exists: Callable[[str, str], bool] | None = None,
    ) -> str:
        """
        Return a handle not owned by any account other than `username`.

        `preferred` is tried first (an account's current handle on profile
        update); each collision draws a fresh random suffix. `exists`
        replaces the store's handle check, e.g. with a unit of work's.

        Raises:
            HandleAllocationExhausted: all `max_attempts` candidates collided
        """
        taken = exists or self.store.exists_by_handle_excluding
        handle = preferred or self.candidate(first_name, last_name)
        for _ in range(self.max_attempts):
            if not taken(handle, username):
                return handle
            logger.debug("Handle collision for %s: %s", username, handle)
            handle = self.candidate(first_name, last_name)

        logger.warning("Handle allocation exhausted for %s", username)
        raise HandleAllocationExhausted(username, self.max_attempts)
