"""Tests for dependency admission."""

import pytest

from sandpreview.config import LimitsConfig
from sandpreview.core.schemas import ImportCandidate
from sandpreview.engine.mocks import StaticRegistry
from sandpreview.registry.resolver import (
    REJECT_PACKAGE_CAP,
    REJECT_TOTAL_CAP,
    REJECT_UNRESOLVED,
    PackageSafetyResolver,
    parse_metadata,
)

MIB = 1024 * 1024


def candidates(*names: str) -> list[ImportCandidate]:
    return [ImportCandidate(name=name, specifiers=(name,)) for name in names]


class TestParseMetadata:
    """Tests for the registry document shapes."""

    def test_npm_view_fields(self) -> None:
        meta = parse_metadata({"version": "1.2.3", "dist.unpackedSize": 5000, "dist.size": 2000})
        assert meta.version == "1.2.3"
        assert meta.size_bytes == 5000

    def test_version_document(self) -> None:
        meta = parse_metadata({"version": "2.0.0", "dist": {"unpackedSize": 7000, "size": 10}})
        assert meta.size_bytes == 7000

    def test_packed_size_when_unpacked_missing(self) -> None:
        meta = parse_metadata({"version": "2.0.0", "dist": {"size": 1234}})
        assert meta.size_bytes == 1234

    def test_full_document_uses_latest_tag(self) -> None:
        meta = parse_metadata(
            {
                "name": "pkg",
                "dist-tags": {"latest": "3.1.0"},
                "versions": {
                    "3.0.0": {"dist": {"unpackedSize": 1}},
                    "3.1.0": {"dist": {"unpackedSize": 4096}},
                },
            }
        )
        assert meta.version == "3.1.0"
        assert meta.size_bytes == 4096

    def test_unknown_size_is_zero(self) -> None:
        meta = parse_metadata({"version": "1.0.0", "dist": {"unpackedSize": "big"}})
        assert meta.size_bytes == 0

    def test_missing_version(self) -> None:
        assert parse_metadata({"dist": {"size": 10}}).version is None


class TestResolve:
    """Tests for PackageSafetyResolver.resolve."""

    @pytest.mark.asyncio
    async def test_empty_candidates(self) -> None:
        resolver = PackageSafetyResolver(StaticRegistry())
        result = await resolver.resolve([])
        assert result.records == []
        assert result.accepted == []

    @pytest.mark.asyncio
    async def test_accepts_within_caps(self) -> None:
        registry = StaticRegistry({"zod": {"version": "3.22.4", "dist.unpackedSize": 600_000}})
        result = await PackageSafetyResolver(registry).resolve(candidates("zod"))

        (record,) = result.accepted
        assert record.name == "zod"
        assert record.version_range == "^3.22.4"
        assert result.total_bytes == 600_000

    @pytest.mark.asyncio
    async def test_unresolved_is_rejected(self) -> None:
        result = await PackageSafetyResolver(StaticRegistry()).resolve(candidates("ghost-pkg"))
        (record,) = result.rejected
        assert record.reason == REJECT_UNRESOLVED
        assert record.version is None

    @pytest.mark.asyncio
    async def test_unreachable_registry_rejects_everything(self) -> None:
        registry = StaticRegistry({"zod": {"version": "1.0.0"}}, unreachable=True)
        result = await PackageSafetyResolver(registry).resolve(candidates("zod", "clsx"))
        assert result.accepted == []
        assert {r.reason for r in result.rejected} == {REJECT_UNRESOLVED}

    @pytest.mark.asyncio
    async def test_falls_back_to_full_query(self) -> None:
        registry = StaticRegistry(
            {"clsx": {"dist-tags": {"latest": "2.1.0"}, "versions": {"2.1.0": {"dist": {"size": 10}}}}},
            narrow_failures={"clsx"},
        )
        result = await PackageSafetyResolver(registry).resolve(candidates("clsx"))
        assert [r.name for r in result.accepted] == ["clsx"]
        assert registry.calls == [("fields", "clsx"), ("full", "clsx")]

    @pytest.mark.asyncio
    async def test_narrow_success_skips_full_query(self) -> None:
        registry = StaticRegistry({"clsx": {"version": "2.1.0"}})
        await PackageSafetyResolver(registry).resolve(candidates("clsx"))
        assert registry.calls == [("fields", "clsx")]

    @pytest.mark.asyncio
    async def test_per_package_cap(self) -> None:
        registry = StaticRegistry({"three": {"version": "0.160.0", "dist.unpackedSize": 30 * MIB}})
        result = await PackageSafetyResolver(registry).resolve(candidates("three"))
        (record,) = result.rejected
        assert record.reason == REJECT_PACKAGE_CAP
        assert record.size_bytes == 30 * MIB

    @pytest.mark.asyncio
    async def test_total_cap_is_greedy_and_order_dependent(self) -> None:
        limits = LimitsConfig(max_total_bytes=10 * MIB, max_package_bytes=8 * MIB)
        registry = StaticRegistry(
            {
                "a-pkg": {"version": "1.0.0", "dist.unpackedSize": 6 * MIB},
                "b-pkg": {"version": "1.0.0", "dist.unpackedSize": 6 * MIB},
                "c-pkg": {"version": "1.0.0", "dist.unpackedSize": 3 * MIB},
            }
        )
        resolver = PackageSafetyResolver(registry, limits=limits)
        result = await resolver.resolve(candidates("a-pkg", "b-pkg", "c-pkg"))

        assert [r.name for r in result.accepted] == ["a-pkg", "c-pkg"]
        assert [(r.name, r.reason) for r in result.rejected] == [("b-pkg", REJECT_TOTAL_CAP)]
        assert result.total_bytes <= limits.max_total_bytes

    @pytest.mark.asyncio
    async def test_unknown_size_is_accepted(self) -> None:
        limits = LimitsConfig(max_total_bytes=1, max_package_bytes=1)
        registry = StaticRegistry({"tiny": {"version": "0.0.1"}})
        result = await PackageSafetyResolver(registry, limits=limits).resolve(candidates("tiny"))
        assert [r.name for r in result.accepted] == ["tiny"]

    @pytest.mark.asyncio
    async def test_count_cap_limits_examined_candidates(self) -> None:
        names = [f"pkg-{i}" for i in range(5)]
        registry = StaticRegistry({name: {"version": "1.0.0"} for name in names})
        resolver = PackageSafetyResolver(registry, limits=LimitsConfig(max_packages=3))
        result = await resolver.resolve(candidates(*names))

        assert [r.name for r in result.records] == names[:3]
        assert len(registry.calls) == 3

    @pytest.mark.asyncio
    async def test_slow_registry_times_out_as_unresolved(self) -> None:
        registry = StaticRegistry({"slow": {"version": "1.0.0"}}, delay=1.0)
        resolver = PackageSafetyResolver(registry, query_timeout=0.05)
        result = await resolver.resolve(candidates("slow"))
        assert result.rejected[0].reason == REJECT_UNRESOLVED

    @pytest.mark.asyncio
    async def test_deterministic(self) -> None:
        registry = StaticRegistry(
            {
                "a-pkg": {"version": "1.0.0", "dist.unpackedSize": 40 * 1024 * 1024 // 4},
                "b-pkg": {"version": "2.0.0", "dist.unpackedSize": 11 * MIB},
                "c-pkg": {"version": "3.0.0", "dist.unpackedSize": 11 * MIB},
                "d-pkg": {"version": "4.0.0", "dist.unpackedSize": 11 * MIB},
                "e-pkg": {"version": "5.0.0", "dist.unpackedSize": 11 * MIB},
            }
        )
        resolver = PackageSafetyResolver(registry)
        names = ("a-pkg", "b-pkg", "c-pkg", "d-pkg", "e-pkg")

        first = await resolver.resolve(candidates(*names))
        second = await resolver.resolve(candidates(*names))

        assert first.records == second.records
        assert first.total_bytes <= 50 * MIB
