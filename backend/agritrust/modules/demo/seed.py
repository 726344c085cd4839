"""
Demonstration ledger loaded from a packaged seed file.

Seeding is opt-in (``SEED_DEMO_DATA``). Seed batches go through the regular
submission pipeline, so their consumer codes, credentials and log entries
verify like any other submission.
"""

from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

from agritrust.core.logging import get_logger
from agritrust.modules.batches.schemas import BatchDraft, ClaimDraft
from agritrust.modules.batches.service import SubmissionService
from agritrust.modules.farmers.schemas import Farmer, Location
from agritrust.storage.ports import Stores

logger = get_logger(__name__)

_DEFAULT_SEED_PATH = Path(__file__).resolve().parent / "data" / "demo.seed.json"


class SeedFarmer(BaseModel):
    id: str
    name: str
    date_of_joining: str = Field(alias="dateOfJoining")
    location: Location = Field(default_factory=Location)

    model_config = ConfigDict(populate_by_name=True)

    def to_farmer(self, now: str) -> Farmer:
        return Farmer(
            id=self.id,
            name=self.name,
            date_of_joining=self.date_of_joining,
            location=self.location,
            created_at=now,
            updated_at=now,
        )


class SeedBatch(BaseModel):
    farmer_id: str = Field(alias="farmerId")
    batch: BatchDraft = Field(default_factory=BatchDraft)
    claims: list[ClaimDraft] = Field(default_factory=list)

    model_config = ConfigDict(populate_by_name=True)


class DemoSeed(BaseModel):
    farmers: list[SeedFarmer] = Field(default_factory=list)
    batches: list[SeedBatch] = Field(default_factory=list)


def load_demo_seed(path: Path = _DEFAULT_SEED_PATH) -> DemoSeed:
    return DemoSeed.model_validate_json(path.read_text(encoding="utf-8"))


async def seed_demo_data(
    stores: Stores,
    submissions: SubmissionService,
    seed: DemoSeed | None = None,
) -> list[str]:
    """Register the demo farmers and submit their batches.

    Does nothing when the first demo farmer is already registered, so
    restarting against a persistent database never seeds twice. Returns the
    consumer codes of the batches submitted.
    """
    seed = seed or load_demo_seed()
    if not seed.farmers or await stores.farmers.exists(seed.farmers[0].id):
        logger.info("demo_seed_skipped")
        return []

    now = datetime.now(UTC).isoformat()
    for farmer in seed.farmers:
        await stores.farmers.add(farmer.to_farmer(now))

    codes: list[str] = []
    for item in seed.batches:
        result = await submissions.submit_batch(item.batch, item.claims, item.farmer_id)
        codes.append(result.consumer_code)

    logger.info("demo_data_seeded", farmers=len(seed.farmers), consumer_codes=codes)
    return codes
