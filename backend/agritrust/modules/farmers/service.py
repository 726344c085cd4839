"""Farmer registration and identifier handling."""

from __future__ import annotations

import re
import secrets
from collections.abc import Callable
from datetime import UTC, date, datetime

from agritrust.core.logging import get_logger
from agritrust.modules.farmers.schemas import (
    FARMER_ID_PATTERN,
    Farmer,
    FarmerCreateRequest,
    FarmerIdentity,
    Location,
)
from agritrust.storage.ports import FarmerStore

logger = get_logger(__name__)

DEFAULT_MAX_ATTEMPTS = 10
UNKNOWN_LOCATION_PART = "Unknown"

_NON_NAME_CHARS = re.compile(r"[^a-z]")
_FARMER_ID_RE = re.compile(FARMER_ID_PATTERN)


class FarmerNotFoundError(LookupError):
    """Raised when a farmer id does not resolve to a registered farmer."""

    def __init__(self, farmer_id: str) -> None:
        super().__init__(f"Farmer {farmer_id} not found")
        self.farmer_id = farmer_id


class FarmerIdGenerationError(RuntimeError):
    """Raised when no unused farmer id was found within the attempt budget."""


def _random_suffix() -> int:
    return 1000 + secrets.randbelow(9000)


def farmer_id_slug(name: str) -> str:
    """Reduce a display name to the lowercase letters used inside farmer ids."""
    return _NON_NAME_CHARS.sub("", name.lower())


def is_farmer_id(value: str) -> bool:
    return _FARMER_ID_RE.match(value) is not None


def derive_farmer_identity(farmer_id: str) -> FarmerIdentity:
    """Recover the joining date and a display name from a farmer id.

    ``20230115-greenacres-1234`` gives ``Greenacres`` joined ``2023-01-15``.
    Malformed ids give blank fields.
    """
    if not is_farmer_id(farmer_id):
        return FarmerIdentity(name="", date_of_joining="")
    date_part, name_part, _ = farmer_id.split("-")
    return FarmerIdentity(
        name=name_part.capitalize(),
        date_of_joining=f"{date_part[:4]}-{date_part[4:6]}-{date_part[6:]}",
    )


class FarmerService:
    """Registers farmers and resolves them by id."""

    def __init__(
        self,
        store: FarmerStore,
        *,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        random_suffix: Callable[[], int] = _random_suffix,
    ) -> None:
        self._store = store
        self._max_attempts = max_attempts
        self._random_suffix = random_suffix

    async def generate_farmer_id(self, name: str, today: date | None = None) -> str:
        slug = farmer_id_slug(name)
        if not slug:
            raise ValueError("Farmer name must contain at least one letter")

        day = today or datetime.now(UTC).date()
        for _ in range(self._max_attempts):
            candidate = f"{day:%Y%m%d}-{slug}-{self._random_suffix():04d}"
            if not await self._store.exists(candidate):
                return candidate

        logger.error("farmer_id_generation_exhausted", slug=slug, attempts=self._max_attempts)
        raise FarmerIdGenerationError(
            f"Could not generate a unique farmer id after {self._max_attempts} attempts"
        )

    async def register(self, request: FarmerCreateRequest, today: date | None = None) -> Farmer:
        """Create a farmer with a freshly generated id."""
        farmer_id = await self.generate_farmer_id(request.name, today=today)
        identity = derive_farmer_identity(farmer_id)
        now = datetime.now(UTC).isoformat()
        farmer = Farmer(
            id=farmer_id,
            name=request.name.strip(),
            date_of_joining=identity.date_of_joining,
            location=request.location
            or Location(
                village=UNKNOWN_LOCATION_PART,
                district=UNKNOWN_LOCATION_PART,
                state=UNKNOWN_LOCATION_PART,
            ),
            created_at=now,
            updated_at=now,
        )
        await self._store.add(farmer)
        logger.info("farmer_registered", farmer_id=farmer_id)
        return farmer

    async def get(self, farmer_id: str) -> Farmer:
        farmer = await self._store.get_by_id(farmer_id)
        if farmer is None:
            raise FarmerNotFoundError(farmer_id)
        return farmer
