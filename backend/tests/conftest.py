"""
Pytest fixtures for backend testing.
Provides in-memory stores, wired services, and an HTTP test client.
"""

from collections.abc import AsyncGenerator, Iterator
from datetime import UTC, datetime
from typing import Any

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from agritrust.core.config import get_settings
from agritrust.core.crypto.signing import KeyedHashSigner
from agritrust.core.dependencies import get_runtime, reset_runtime
from agritrust.main import create_application
from agritrust.modules.batches.schemas import BatchDraft, ClaimDraft
from agritrust.modules.batches.service import DraftService, SubmissionService
from agritrust.modules.claims.service import ProvenanceService
from agritrust.modules.farmers.schemas import Farmer, Location
from agritrust.modules.feedback.service import FeedbackService
from agritrust.modules.lookup.service import CodeReservations, LookupIndex
from agritrust.modules.transparency.service import TransparencyLog
from agritrust.storage import Stores, build_memory_stores

TEST_CREDENTIAL_SECRET = "test-credential-secret"
SEED_FARMER_ID = "20230115-greenacres-1234"


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Every test starts from default settings and an empty ledger."""
    monkeypatch.setenv("ENVIRONMENT", "development")
    monkeypatch.setenv("STORAGE_BACKEND", "memory")
    monkeypatch.setenv("CREDENTIAL_SECRET", TEST_CREDENTIAL_SECRET)
    get_settings.cache_clear()
    reset_runtime()
    yield
    get_settings.cache_clear()
    reset_runtime()


@pytest.fixture
def stores() -> Stores:
    return build_memory_stores()


@pytest.fixture
def signer() -> KeyedHashSigner:
    return KeyedHashSigner(TEST_CREDENTIAL_SECRET)


@pytest.fixture
def transparency_log(stores: Stores) -> TransparencyLog:
    return TransparencyLog(stores.log)


@pytest.fixture
def reservations() -> CodeReservations:
    return CodeReservations()


@pytest.fixture
def lookup_index(stores: Stores, reservations: CodeReservations) -> LookupIndex:
    return LookupIndex(stores.codes, reservations=reservations)


@pytest.fixture
def submission_service(
    stores: Stores,
    transparency_log: TransparencyLog,
    lookup_index: LookupIndex,
    signer: KeyedHashSigner,
) -> SubmissionService:
    return SubmissionService(stores, log=transparency_log, index=lookup_index, signer=signer)


@pytest.fixture
def provenance_service(
    stores: Stores,
    transparency_log: TransparencyLog,
    lookup_index: LookupIndex,
    signer: KeyedHashSigner,
) -> ProvenanceService:
    return ProvenanceService(stores, log=transparency_log, index=lookup_index, verifier=signer)


@pytest.fixture
def draft_service(stores: Stores) -> DraftService:
    return DraftService(stores)


@pytest.fixture
def feedback_service(stores: Stores, lookup_index: LookupIndex) -> FeedbackService:
    return FeedbackService(stores, index=lookup_index)


def make_seed_farmer(farmer_id: str = SEED_FARMER_ID) -> Farmer:
    now = datetime.now(UTC).isoformat()
    return Farmer(
        id=farmer_id,
        name="Green Acres Farm",
        date_of_joining="2023-01-15",
        location=Location(village="Farmville", district="Rural", state="Karnataka"),
        created_at=now,
        updated_at=now,
    )


@pytest.fixture
def farmer_record() -> Farmer:
    return make_seed_farmer()


@pytest_asyncio.fixture
async def seed_farmer(stores: Stores, farmer_record: Farmer) -> Farmer:
    await stores.farmers.add(farmer_record)
    return farmer_record


@pytest.fixture
def apples_draft() -> BatchDraft:
    return BatchDraft(
        product_name="Apples",
        variety="Fuji",
        harvest_date="2024-09-10",
        soil_type_texture="Loamy Clay",
        nitrogen_level=150,
        phosphorus_level=75,
        potassium_level=200,
        soil_ph=6.8,
        humidity=75,
        temperature=25,
        inputs_used=["Compost", "Rainwater"],
        certifications=["USDA Organic"],
        lot_size="200 kg",
    )


@pytest.fixture
def organic_claim() -> ClaimDraft:
    return ClaimDraft(
        type="Organic",
        description="Certified organic by local authority.",
        evidence=[{"type": "Document", "urlOrPath": "https://example.org/cert.pdf"}],
    )


@pytest_asyncio.fixture
async def test_client() -> AsyncGenerator[AsyncClient, None]:
    """Provide an async HTTP client over the in-memory application."""
    app = create_application()
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client


@pytest_asyncio.fixture
async def api_farmer(test_client: AsyncClient) -> dict[str, Any]:
    """A farmer registered through the API."""
    response = await test_client.post("/api/v1/farmers", json={"name": "Green Acres"})
    assert response.status_code == 201
    return response.json()


@pytest.fixture
def runtime_stores() -> Stores:
    """The in-memory stores behind the application's dependencies."""
    stores = get_runtime().memory_stores
    assert stores is not None
    return stores
