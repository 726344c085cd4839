"""Consumer-code lookup index and code generation."""

from __future__ import annotations

import asyncio
import secrets
from collections.abc import Callable
from datetime import UTC, date, datetime

from agritrust.core.logging import get_logger
from agritrust.modules.lookup.schemas import LookupIndexEntry
from agritrust.storage.ports import CodeIndexStore, DuplicateKeyError

logger = get_logger(__name__)

DEFAULT_CODE_PREFIX = "AGRITRUST"
DEFAULT_MAX_ATTEMPTS = 100


class CodeGenerationExhaustedError(RuntimeError):
    """Raised when no unused consumer code was found within the attempt budget."""


class CodeCollisionError(ValueError):
    """Raised when a code is already bound to a different record."""


def _random_suffix() -> int:
    return 1000 + secrets.randbelow(9000)


class CodeReservations:
    """Codes handed out to in-flight submissions but not yet in the index.

    Shared by every :class:`LookupIndex` writing the same index, so two
    concurrent submissions never receive the same code.
    """

    def __init__(self) -> None:
        self._codes: set[str] = set()
        self.lock = asyncio.Lock()

    def __contains__(self, code: object) -> bool:
        return code in self._codes

    def __len__(self) -> int:
        return len(self._codes)

    def add(self, code: str) -> None:
        self._codes.add(code)

    def discard(self, code: str) -> None:
        self._codes.discard(code)


class ReservationScope:
    """Codes indexed within one unit of work.

    While the unit of work is uncommitted its index entries are invisible to
    other sessions, so the codes stay reserved until :meth:`release_all` runs
    after the commit or rollback.
    """

    def __init__(self, reservations: CodeReservations) -> None:
        self._reservations = reservations
        self._codes: set[str] = set()

    def hold(self, code: str) -> None:
        self._codes.add(code)

    def release_all(self) -> None:
        for code in self._codes:
            self._reservations.discard(code)
        self._codes.clear()


class LookupIndex:
    """Maps consumer codes to ``{cid, vcDigest, batchId}``."""

    def __init__(
        self,
        store: CodeIndexStore,
        *,
        reservations: CodeReservations | None = None,
        scope: ReservationScope | None = None,
        code_prefix: str = DEFAULT_CODE_PREFIX,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        random_suffix: Callable[[], int] = _random_suffix,
    ) -> None:
        self._store = store
        # An empty CodeReservations is falsy; compare against None.
        self._reservations = reservations if reservations is not None else CodeReservations()
        self._scope = scope
        self._code_prefix = code_prefix
        self._max_attempts = max_attempts
        self._random_suffix = random_suffix

    def format_code(self, day: date, suffix: int) -> str:
        return f"{self._code_prefix}-{day:%y%m%d}-{suffix:04d}"

    async def generate_code(self, today: date | None = None) -> str:
        """Reserve a fresh ``{PREFIX}-{YYMMDD}-{NNNN}`` code.

        The code is unused in the index and not reserved by another in-flight
        submission. Call :meth:`put` or :meth:`release` when done with it.
        """
        day = today or datetime.now(UTC).date()
        async with self._reservations.lock:
            for attempt in range(1, self._max_attempts + 1):
                code = self.format_code(day, self._random_suffix())
                if code in self._reservations or await self._store.get(code) is not None:
                    logger.debug("consumer_code_collision", code=code, attempt=attempt)
                    continue
                self._reservations.add(code)
                return code

        logger.error("consumer_code_generation_exhausted", attempts=self._max_attempts)
        raise CodeGenerationExhaustedError(
            f"Failed to generate a unique consumer code after {self._max_attempts} attempts"
        )

    def release(self, code: str) -> None:
        """Drop a reservation (after an aborted submission)."""
        self._reservations.discard(code)

    async def put(self, code: str, cid: str, vc_digest: str, batch_id: str) -> LookupIndexEntry:
        """Bind ``code`` to its record.

        Re-putting identical values is a no-op; binding a code that already
        maps to different values raises :class:`CodeCollisionError`. With a
        :class:`ReservationScope` the reservation is handed to the scope
        instead of being dropped here.
        """
        entry = LookupIndexEntry(cid=cid, vc_digest=vc_digest, batch_id=batch_id)
        try:
            existing = await self._store.get(code)
            if existing is not None:
                if existing == entry:
                    return existing
                raise CodeCollisionError(f"Consumer code {code} is already bound to another batch")
            try:
                await self._store.insert(code, entry)
            except DuplicateKeyError as exc:
                raise CodeCollisionError(
                    f"Consumer code {code} is already bound to another batch"
                ) from exc
        finally:
            if self._scope is None:
                self.release(code)
            else:
                self._scope.hold(code)

        logger.info("consumer_code_indexed", code=code, batch_id=batch_id, vc_digest=vc_digest)
        return entry

    async def get(self, code: str) -> LookupIndexEntry | None:
        return await self._store.get(code)
