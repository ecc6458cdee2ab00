"""
bcrypt hashing of admin codes.

bcrypt is CPU bound by design; the async variants run it in a worker
thread so the event loop keeps serving other requests.
"""

from functools import partial

from anyio.to_thread import run_sync
import bcrypt

from nextsub.core.config import auth_logger, settings


class CodeHasher:
    """Salted, slow, one-way digests of admin codes."""

    @classmethod
    def hash(cls, plaintext: str, rounds: int | None = None) -> str:
        """
        Hash a code with a fresh random salt.

        Args:
            plaintext: The code to hash.
            rounds: bcrypt work factor. Defaults to ADMIN_CODE_HASH_ROUNDS.

        Returns:
            str: The 60 character bcrypt digest.

        Raises:
            ValueError: If the code is empty.
        """
        if not plaintext:
            raise ValueError("Code cannot be empty")

        salt = bcrypt.gensalt(rounds=rounds or settings.ADMIN_CODE_HASH_ROUNDS)
        return bcrypt.hashpw(plaintext.encode("utf-8"), salt).decode("utf-8")

    @classmethod
    def verify(cls, plaintext: str | None, digest: str | None) -> bool:
        """
        Check a candidate code against a stored digest in constant time.

        Args:
            plaintext: Candidate code. Can be None.
            digest: Stored bcrypt digest. Can be None.

        Returns:
            bool: True on match. False on mismatch and on any malformed input.
        """
        if not plaintext or not digest:
            return False

        try:
            return bcrypt.checkpw(plaintext.encode("utf-8"), digest.encode("utf-8"))
        except (ValueError, TypeError) as e:
            auth_logger.warning(
                f"Admin code verification failed on malformed digest: {type(e).__name__}"
            )
            return False

    @classmethod
    async def ahash(cls, plaintext: str, rounds: int | None = None) -> str:
        return await run_sync(partial(cls.hash, plaintext, rounds))

    @classmethod
    async def averify(cls, plaintext: str | None, digest: str | None) -> bool:
        return await run_sync(partial(cls.verify, plaintext, digest))


__all__ = ["CodeHasher"]
