"""
Adversarial tests for race condition attack prevention.

Verifies that concurrent operations are resolved by the store's
uniqueness guarantees rather than by the existence pre-checks:
- Concurrent registrations never create duplicate usernames
- Concurrent registrations never hand out the same handle
- A passcode replayed concurrently is consumed exactly once
"""

from concurrent.futures import ThreadPoolExecutor

import bcrypt
import pytest

from src.adapters.repository import InMemoryCredentialStore
from src.domain.auth import AuthService
from src.domain.exceptions import AccountConflict
from src.domain.models import Account
from src.domain.ports import ResultKind

pytestmark = pytest.mark.adversarial


class TestRaceConditionAttacks:
    def test_concurrent_creates_exactly_one_succeeds(self, store: InMemoryCredentialStore) -> None:
        """Many units of work race on one username; exactly one commits."""
        password_hash = bcrypt.hashpw(b"secure123", bcrypt.gensalt(4)).decode()

        def attempt(i: int) -> bool:
            try:
                with store.begin() as uow:
                    account = Account(username="race", email="race@example.com", handle=f"racer{i}")
                    uow.create(account, password_hash)
                    uow.commit()
            except AccountConflict:
                return False
            return True

        with ThreadPoolExecutor(max_workers=10) as executor:
            results = list(executor.map(attempt, range(10)))

        assert results.count(True) == 1
        assert results.count(False) == 9

    def test_concurrent_code_replay_registers_once(
        self,
        auth_service: AuthService,
        store: InMemoryCredentialStore,
        request_code,
        make_registration,
        attacker,
    ) -> None:
        """
        Attacker replays one valid passcode from many threads.

        The code is single use, so at most one request reaches account
        creation; the rest see an invalid code or an existing user.
        """
        code = request_code("victim")

        def attempt(_: int) -> ResultKind:
            return auth_service.register(make_registration("victim", code=code), attacker).kind

        with ThreadPoolExecutor(max_workers=10) as executor:
            kinds = list(executor.map(attempt, range(10)))

        assert kinds.count(ResultKind.USER_REGISTERED_SUCCESSFULLY) == 1
        assert set(kinds) <= {
            ResultKind.USER_REGISTERED_SUCCESSFULLY,
            ResultKind.INVALID_VERIFICATION_CODE,
            ResultKind.USER_ALREADY_EXISTS,
        }
        assert store.get_roles("victim") == ["admin"]

    def test_concurrent_same_name_registrations_get_distinct_handles(
        self,
        auth_service: AuthService,
        store: InMemoryCredentialStore,
        request_code,
        make_registration,
        attacker,
    ) -> None:
        """Twenty users named Alice Smith register at once; no handle is shared."""
        usernames = [f"alice{i}" for i in range(20)]
        codes = {username: request_code(username) for username in usernames}

        def attempt(username: str) -> ResultKind:
            return auth_service.register(make_registration(username, code=codes[username]), attacker).kind

        with ThreadPoolExecutor(max_workers=10) as executor:
            kinds = list(executor.map(attempt, usernames))

        assert kinds == [ResultKind.USER_REGISTERED_SUCCESSFULLY] * 20
        handles = [store.find_by_username(username).handle for username in usernames]
        assert len(set(handles)) == 20
        assert all(handle.startswith("alicesmith") for handle in handles)
