"""Tests for farmer registration and farmer ids."""

from __future__ import annotations

import re
from datetime import date

import pytest

from agritrust.modules.farmers.schemas import FarmerCreateRequest, Location
from agritrust.modules.farmers.service import (
    FarmerIdGenerationError,
    FarmerNotFoundError,
    FarmerService,
    derive_farmer_identity,
    farmer_id_slug,
    is_farmer_id,
)
from agritrust.storage import Stores


class TestFarmerIds:
    @pytest.mark.parametrize(
        ("name", "slug"),
        [
            ("Green Acres", "greenacres"),
            ("  Sunshine Organic Farm ", "sunshineorganicfarm"),
            ("O'Neil & Sons 2", "oneilsons"),
        ],
    )
    def test_slug(self, name: str, slug: str) -> None:
        assert farmer_id_slug(name) == slug

    def test_is_farmer_id(self) -> None:
        assert is_farmer_id("20230115-greenacres-1234")
        assert not is_farmer_id("2023-01-15-greenacres-1234")
        assert not is_farmer_id("20230115-GreenAcres-1234")

    def test_derive_identity(self) -> None:
        identity = derive_farmer_identity("20230115-greenacres-1234")
        assert identity.name == "Greenacres"
        assert identity.date_of_joining == "2023-01-15"

    def test_derive_identity_from_malformed_id(self) -> None:
        identity = derive_farmer_identity("not-a-farmer")
        assert (identity.name, identity.date_of_joining) == ("", "")


class TestFarmerService:
    @pytest.mark.asyncio
    async def test_register(self, stores: Stores) -> None:
        service = FarmerService(stores.farmers)
        farmer = await service.register(
            FarmerCreateRequest(name="Green Acres"), today=date(2024, 9, 10)
        )

        assert re.match(r"^20240910-greenacres-\d{4}$", farmer.id)
        assert farmer.name == "Green Acres"
        assert farmer.date_of_joining == "2024-09-10"
        assert farmer.location.village == "Unknown"
        assert await service.get(farmer.id) == farmer

    @pytest.mark.asyncio
    async def test_register_keeps_given_location(self, stores: Stores) -> None:
        service = FarmerService(stores.farmers)
        location = Location(village="Farmville", district="Rural", state="Karnataka")
        farmer = await service.register(FarmerCreateRequest(name="Green Acres", location=location))
        assert farmer.location == location

    @pytest.mark.asyncio
    async def test_retries_taken_ids(self, stores: Stores) -> None:
        suffixes = iter([1234, 1234, 5678])
        service = FarmerService(stores.farmers, random_suffix=lambda: next(suffixes))
        day = date(2024, 9, 10)

        first = await service.register(FarmerCreateRequest(name="Green Acres"), today=day)
        second = await service.register(FarmerCreateRequest(name="Green Acres"), today=day)

        assert first.id == "20240910-greenacres-1234"
        assert second.id == "20240910-greenacres-5678"

    @pytest.mark.asyncio
    async def test_generation_exhausted(self, stores: Stores) -> None:
        service = FarmerService(stores.farmers, max_attempts=3, random_suffix=lambda: 1234)
        day = date(2024, 9, 10)
        await service.register(FarmerCreateRequest(name="Green Acres"), today=day)

        with pytest.raises(FarmerIdGenerationError):
            await service.register(FarmerCreateRequest(name="Green Acres"), today=day)

    @pytest.mark.asyncio
    async def test_name_without_letters_rejected(self, stores: Stores) -> None:
        service = FarmerService(stores.farmers)
        with pytest.raises(ValueError):
            await service.register(FarmerCreateRequest(name="1234"))

    @pytest.mark.asyncio
    async def test_get_unknown(self, stores: Stores) -> None:
        with pytest.raises(FarmerNotFoundError):
            await FarmerService(stores.farmers).get("20230115-nobody-0000")
