"""Tests for the opt-in demonstration ledger."""

from __future__ import annotations

import pytest
from httpx import AsyncClient

from agritrust.core.config import Settings, get_settings
from agritrust.core.dependencies import get_runtime, seed_demo_ledger
from agritrust.main import create_application, lifespan
from agritrust.modules.batches.schemas import ClaimStatus
from agritrust.modules.batches.service import SubmissionService
from agritrust.modules.claims.schemas import TrustState
from agritrust.modules.claims.service import ProvenanceService
from agritrust.modules.demo.seed import load_demo_seed, seed_demo_data
from agritrust.modules.transparency.service import TransparencyLog
from agritrust.storage import Stores

API = "/api/v1"
GREEN_ACRES = "20230115-greenacres-1234"
SUNSHINE = "20230320-sunshinefarm-5678"


def test_seeding_is_off_by_default() -> None:
    assert Settings().seed_demo_data is False


def test_packaged_seed_loads() -> None:
    seed = load_demo_seed()
    assert [farmer.id for farmer in seed.farmers] == [GREEN_ACRES, SUNSHINE]
    assert [item.batch.product_name for item in seed.batches] == [
        "Organic Apples",
        "Heritage Tomatoes",
    ]
    assert seed.batches[0].claims[2].status is ClaimStatus.PENDING


class TestSeedDemoData:
    @pytest.mark.asyncio
    async def test_seeded_codes_verify(
        self,
        stores: Stores,
        submission_service: SubmissionService,
        provenance_service: ProvenanceService,
    ) -> None:
        codes = await seed_demo_data(stores, submission_service)
        assert len(codes) == 2

        apples = await provenance_service.lookup(codes[0])
        assert apples.trust_state is TrustState.VERIFIED, apples.errors
        assert apples.batch is not None
        assert apples.batch.farmer_id == GREEN_ACRES
        assert [claim.type for claim in apples.claims] == ["Organic", "Residue-Free", "Fair Trade"]

        tomatoes = await provenance_service.lookup(codes[1])
        assert tomatoes.trust_state is TrustState.VERIFIED, tomatoes.errors
        assert tomatoes.batch is not None
        assert tomatoes.batch.farmer_id == SUNSHINE

    @pytest.mark.asyncio
    async def test_second_run_is_a_no_op(
        self,
        stores: Stores,
        submission_service: SubmissionService,
        transparency_log: TransparencyLog,
    ) -> None:
        await seed_demo_data(stores, submission_service)
        assert await seed_demo_data(stores, submission_service) == []
        assert await transparency_log.length() == 2


class TestStartupSeeding:
    @pytest.mark.asyncio
    async def test_seeded_code_verifies_over_http(self, test_client: AsyncClient) -> None:
        codes = await seed_demo_ledger(get_runtime())
        assert len(get_runtime().reservations) == 0

        response = await test_client.get(f"{API}/public/claims/{codes[0]}")
        assert response.status_code == 200
        assert response.json()["trustState"] == "verified"

    @pytest.mark.asyncio
    async def test_lifespan_seeds_when_enabled(
        self, test_client: AsyncClient, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("SEED_DEMO_DATA", "true")
        get_settings.cache_clear()

        async with lifespan(create_application()):
            pass

        page = (await test_client.get(f"{API}/public/transparency-log")).json()
        assert page["total"] == 2
        assert (await test_client.get(f"{API}/farmers/{SUNSHINE}")).status_code == 200

    @pytest.mark.asyncio
    async def test_lifespan_skips_seeding_by_default(self, test_client: AsyncClient) -> None:
        async with lifespan(create_application()):
            pass

        page = (await test_client.get(f"{API}/public/transparency-log")).json()
        assert page["total"] == 0
