"""Tests for port index resolution."""

from netsync.services.port_resolver import is_placeholder, resolve_interface_name


def test_prefers_off_by_one_match() -> None:
    interfaces = {3: "ether3", 4: "sfp-sfpplus3"}

    assert resolve_interface_name(3, interfaces) == "sfp-sfpplus3"


def test_falls_back_to_exact_index() -> None:
    interfaces = {7: "ether7"}

    assert resolve_interface_name(7, interfaces) == "ether7"


def test_placeholder_when_unknown() -> None:
    name = resolve_interface_name(12, {1: "ether1"})

    assert name == "port-12"
    assert is_placeholder(name)


def test_empty_names_are_ignored() -> None:
    assert resolve_interface_name(2, {3: "", 2: "ether2"}) == "ether2"
