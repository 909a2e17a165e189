"""
security helpers:
- Argon2 password hashing via argon2-cffi
- A bounded worker pool so hashing never runs on the request thread
- Temporary password generation for invited users
"""
from __future__ import annotations

import concurrent.futures
import logging
import secrets
from typing import Any, Callable

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError

logger = logging.getLogger(__name__)

TEMP_PASSWORD_BYTES = 12
TEMP_PASSWORD_LENGTH = 16


class WorkerPool:
    """Thread pool for CPU-bound work (hashing, digesting)."""

    def __init__(self, max_workers: int = 4, timeout: float = 10.0) -> None:
        self.timeout = timeout
        self._executor = concurrent.futures.ThreadPoolExecutor(
            max_workers=max(1, max_workers), thread_name_prefix="cpu-worker"
        )
        self._shutdown = False

    def run(self, fn: Callable[..., Any], *args: Any) -> Any:
        """Run fn on the pool and wait for it, bounded by the pool timeout."""
        future = self._executor.submit(fn, *args)
        return future.result(timeout=self.timeout)

    def shutdown(self, wait: bool = True) -> None:
        if self._shutdown:
            return
        self._shutdown = True
        self._executor.shutdown(wait=wait, cancel_futures=not wait)


class CredentialVerifier:
    """Hash and check passwords with Argon2 on a WorkerPool."""

    def __init__(self, pool: WorkerPool, hasher: PasswordHasher | None = None) -> None:
        self.pool = pool
        self.hasher = hasher or PasswordHasher()
        # Checked when no account matches, so a miss costs the same as a wrong password
        self._dummy_hash = self.hasher.hash(secrets.token_urlsafe(16))

    @classmethod
    def from_config(cls, config, pool: WorkerPool) -> "CredentialVerifier":
        hasher = PasswordHasher(
            time_cost=config["ARGON2_TIME_COST"],
            memory_cost=config["ARGON2_MEMORY_COST"],
            parallelism=config["ARGON2_PARALLELISM"],
        )
        return cls(pool, hasher)

    def hash_password(self, password: str) -> str:
        """Hash a plaintext password using Argon2
        """
        return self.pool.run(self.hasher.hash, password)

    def verify_password(self, password: str, password_hash: str) -> bool:
        """ Verify a plaintext password against a stored Argon2 hash
        """
        return self.pool.run(self._verify, password, password_hash)

    def verify_dummy(self, password: str) -> bool:
        """Run a full verify against a throwaway hash. Always False."""
        self.pool.run(self._verify, password, self._dummy_hash)
        return False

    def _verify(self, password: str, password_hash: str) -> bool:
        try:
            return self.hasher.verify(password_hash, password)
        except VerifyMismatchError:
            return False
        except (InvalidHashError, VerificationError):
            logger.warning("Stored password hash could not be verified")
            return False


def generate_temp_password() -> str:
    return secrets.token_urlsafe(TEMP_PASSWORD_BYTES)[:TEMP_PASSWORD_LENGTH]
