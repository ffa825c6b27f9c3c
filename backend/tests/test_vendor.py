"""Tests for vendor classification and profiles."""

import pytest

from netsync.services.vendor import (
    GENERIC_PROFILE,
    VLAN_STRATEGY_BRIDGE,
    VLAN_STRATEGY_HUAWEI,
    VLAN_STRATEGY_MIKROTIK,
    classify_vendor,
    get_profile,
)


@pytest.mark.parametrize(
    "os_string, expected",
    [
        ("routeros", "mikrotik"),
        ("RouterOS CCR1036-12G-4S", "mikrotik"),
        ("MikroTik RouterOS 7.12", "mikrotik"),
        ("junos", "juniper"),
        ("Juniper Networks, Inc. srx300", "juniper"),
        ("vrp", "huawei"),
        ("Huawei Versatile Routing Platform Software", "huawei"),
        ("Cisco IOS Software, C2960 Software", "cisco"),
        ("HP J9773A 2530-24G-PoEP Switch", "hp"),
        ("ArubaOS", "hp"),
        ("Linux 5.4.0", "generic"),
        ("", "generic"),
        (None, "generic"),
    ],
)
def test_classify_vendor(os_string, expected) -> None:
    assert classify_vendor(os_string) == expected


def test_classify_vendor_first_match_wins() -> None:
    # "nexus" contains "ex", so the juniper signatures claim it first.
    assert classify_vendor("Cisco Nexus Operating System") == "juniper"


def test_get_profile_falls_back_to_generic() -> None:
    assert get_profile("unknown-vendor") is GENERIC_PROFILE
    assert get_profile(None) is GENERIC_PROFILE


def test_generic_profile_has_four_cpu_candidates() -> None:
    assert len(GENERIC_PROFILE.cpu_oids) == 4
    assert GENERIC_PROFILE.discover_storage is True


def test_cisco_and_hp_reuse_generic_ram_lists() -> None:
    for tag in ("cisco", "hp"):
        profile = get_profile(tag)

        assert profile.ram_total_oids == GENERIC_PROFILE.ram_total_oids
        assert profile.ram_used_oids == GENERIC_PROFILE.ram_used_oids
        assert profile.discover_storage is False


def test_vlan_strategies() -> None:
    assert get_profile("mikrotik").vlan_strategy == VLAN_STRATEGY_MIKROTIK
    assert get_profile("huawei").vlan_strategy == VLAN_STRATEGY_HUAWEI
    assert get_profile("juniper").vlan_strategy == VLAN_STRATEGY_BRIDGE
    assert get_profile("generic").vlan_strategy == VLAN_STRATEGY_BRIDGE


def test_mikrotik_oid_families() -> None:
    profile = get_profile("mikrotik")

    assert profile.is_byte_scale_cpu("1.3.6.1.4.1.14988.1.1.3.14.0")
    assert profile.is_centipercent_cpu("1.3.6.1.2.1.25.3.3.1.2.1")
    assert profile.is_available_memory("1.3.6.1.4.1.14988.1.1.1.1.0")
    assert not profile.is_available_memory("1.3.6.1.4.1.14988.1.1.1.2.0")
