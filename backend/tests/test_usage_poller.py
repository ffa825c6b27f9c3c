"""Tests for CPU / RAM usage polling."""

import pytest

from netsync.services.errors import SnmpTransportError
from netsync.services.usage_poller import (
    compute_ram_usage,
    discover_storage_indices,
    fetch_cpu_usage,
    fetch_ram_usage,
    fetch_system_usage,
    normalize_cpu,
)
from netsync.services.vendor import (
    GENERIC_PROFILE,
    OID_HR_STORAGE_SIZE,
    OID_HR_STORAGE_TYPE,
    OID_HR_STORAGE_USED,
    OID_MTXR_CPU_LOAD,
    OID_MTXR_FREE_MEMORY,
    OID_MTXR_TOTAL_MEMORY,
    get_profile,
)

HR_CPU_1 = "1.3.6.1.2.1.25.3.3.1.2.1"
HR_CPU_196608 = "1.3.6.1.2.1.25.3.3.1.2.196608"


async def test_cpu_first_numeric_candidate_wins(fake_agent) -> None:
    agent = fake_agent({HR_CPU_196608: 37, "1.3.6.1.4.1.2021.11.9.0": 80})

    usage = await fetch_cpu_usage("10.0.0.1", "public", "generic", session_factory=agent)

    assert usage == 37


async def test_cpu_single_batched_get_without_retries(fake_agent) -> None:
    agent = fake_agent({HR_CPU_1: 12})

    await fetch_cpu_usage("10.0.0.1", "public", "generic", session_factory=agent)

    session = agent.sessions[0]
    assert session.requests == [("get", list(GENERIC_PROFILE.cpu_oids))]
    assert session.retries == 0
    assert session.close_calls == 1


async def test_cpu_all_candidates_missing_is_none(fake_agent) -> None:
    agent = fake_agent({})

    assert await fetch_cpu_usage("10.0.0.1", "public", "juniper", session_factory=agent) is None


async def test_cpu_clamped_to_percent(fake_agent) -> None:
    agent = fake_agent({HR_CPU_1: 250})

    assert await fetch_cpu_usage("10.0.0.1", "public", "generic", session_factory=agent) == 100


async def test_cpu_mikrotik_byte_scale(fake_agent) -> None:
    agent = fake_agent({OID_MTXR_CPU_LOAD: 128})

    assert await fetch_cpu_usage("10.0.0.1", "public", "mikrotik", session_factory=agent) == 50


async def test_cpu_transport_error_raises(fake_agent) -> None:
    agent = fake_agent({HR_CPU_1: 5}, fail_get=True)

    with pytest.raises(SnmpTransportError):
        await fetch_cpu_usage("10.0.0.1", "public", "generic", session_factory=agent)
    assert agent.sessions[0].close_calls == 1


def test_normalize_cpu_mikrotik_centipercent() -> None:
    profile = get_profile("mikrotik")

    assert normalize_cpu(profile, HR_CPU_1, 4550) == 45.5
    assert normalize_cpu(profile, HR_CPU_1, 42) == 42


def test_compute_ram_usage_rounds_to_two_decimals() -> None:
    total = f"{OID_HR_STORAGE_SIZE}.1"
    used = f"{OID_HR_STORAGE_USED}.1"

    usage = compute_ram_usage(GENERIC_PROFILE, [total], [used], {total: 2033782784, used: 973664256})

    assert usage == 47.87


def test_compute_ram_usage_skips_zero_totals() -> None:
    totals = [f"{OID_HR_STORAGE_SIZE}.1", f"{OID_HR_STORAGE_SIZE}.3"]
    used = [f"{OID_HR_STORAGE_USED}.3"]
    values = {totals[0]: 0, totals[1]: 1000, used[0]: 250}

    assert compute_ram_usage(GENERIC_PROFILE, totals, used, values) == 25.0


def test_compute_ram_usage_without_pair_is_none() -> None:
    total = f"{OID_HR_STORAGE_SIZE}.1"

    assert compute_ram_usage(GENERIC_PROFILE, [total], [f"{OID_HR_STORAGE_USED}.1"], {total: 100}) is None


def test_compute_ram_usage_mikrotik_free_memory_in_megabytes() -> None:
    profile = get_profile("mikrotik")
    values = {OID_MTXR_TOTAL_MEMORY: 256, OID_MTXR_FREE_MEMORY: 192}

    usage = compute_ram_usage(profile, [OID_MTXR_TOTAL_MEMORY], [OID_MTXR_FREE_MEMORY], values)

    assert usage == 25.0


async def test_ram_generic_uses_discovered_storage_indices(fake_agent) -> None:
    agent = fake_agent({
        f"{OID_HR_STORAGE_TYPE}.65536": "1.3.6.1.2.1.25.2.1.2",
        f"{OID_HR_STORAGE_SIZE}.65536": 2033782784,
        f"{OID_HR_STORAGE_USED}.65536": 973664256,
    })

    usage = await fetch_ram_usage("10.0.0.1", "public", "generic", session_factory=agent)

    assert usage == 47.87
    discovery, batch = agent.sessions
    assert discovery.timeout == 2.0
    assert discovery.retries == 0
    requested = batch.requests[0][1]
    assert len(requested) == len(set(requested))
    assert f"{OID_HR_STORAGE_SIZE}.65536" in requested


async def test_storage_discovery_falls_back_to_static_indices(fake_agent) -> None:
    agent = fake_agent({}, fail_walks={OID_HR_STORAGE_TYPE})

    assert await discover_storage_indices("10.0.0.1", "public", session_factory=agent) == [1, 2, 3, 4, 5]


async def test_ram_mikrotik_skips_storage_discovery(fake_agent) -> None:
    agent = fake_agent({OID_MTXR_TOTAL_MEMORY: 1073741824, f"{OID_HR_STORAGE_USED}.65536": 268435456})

    usage = await fetch_ram_usage("10.0.0.1", "public", "mikrotik", session_factory=agent)

    assert usage == 25.0
    assert len(agent.sessions) == 1


async def test_system_usage_runs_cpu_then_ram(fake_agent) -> None:
    agent = fake_agent({HR_CPU_1: 10, f"{OID_HR_STORAGE_SIZE}.1": 1000, f"{OID_HR_STORAGE_USED}.1": 500})

    cpu, ram = await fetch_system_usage("10.0.0.1", "public", "juniper", session_factory=agent)

    assert (cpu, ram) == (10, 50.0)
    assert [s.requests[0][0] for s in agent.sessions] == ["get", "get"]
