"""Unit tests for NetworkTypeReconciler.convert_bond (single-bond conversions)."""

from __future__ import annotations

import pytest

from metal_ports.client.errors import (
    MetalConversionNotNeededError,
    MetalConversionStepError,
    MetalPortNotFoundError,
)
from metal_ports.client.memory import DirectoryCall, InMemoryDeviceDirectory
from metal_ports.model.device import Device
from metal_ports.model.port import NetworkType
from metal_ports.reconcile.engine import NetworkTypeReconciler
from metal_ports.utils.topology import bond_network_type

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

GET = DirectoryCall("get_device", "D")


def _two_bond_device(
    bond1_type: NetworkType, bond1_ports: tuple[str, ...] = ("eth2", "eth3")
) -> tuple[InMemoryDeviceDirectory, Device]:
    directory = InMemoryDeviceDirectory()
    directory.create_device("D", NetworkType.LAYER3)
    device = directory.add_bond("D", "bond1", bond1_type, bond1_ports)
    return directory, device


# ---------------------------------------------------------------------------
# Scope
# ---------------------------------------------------------------------------

def test_layer2_individual_touches_only_bond1_members() -> None:
    directory, device = _two_bond_device(NetworkType.LAYER3)
    final = NetworkTypeReconciler(directory).convert_bond(device, "bond1", "layer2-individual")

    assert directory.calls == [
        DirectoryCall("convert_to_layer2", "bond1"),
        GET,
        DirectoryCall("disbond", "eth2", False),
        DirectoryCall("disbond", "eth3", False),
        GET,
    ]
    assert bond_network_type(final, "bond1") is NetworkType.LAYER2_INDIVIDUAL
    assert bond_network_type(final, "bond0") is NetworkType.LAYER3
    assert final.port_by_name("eth0").bonded is True
    assert final.port_by_name("eth1").bonded is True


def test_layer3_bonds_only_bond1_members() -> None:
    directory, device = _two_bond_device(NetworkType.LAYER2_INDIVIDUAL)
    final = NetworkTypeReconciler(directory).convert_bond(device, "bond1", NetworkType.LAYER3)
    assert bond_network_type(final, "bond1") is NetworkType.LAYER3
    touched = {c.target for c in directory.calls if c.method != "get_device"}
    assert touched <= {"bond1", "eth2", "eth3"}


def test_hybrid_splits_odd_member_of_bond1() -> None:
    directory, device = _two_bond_device(NetworkType.LAYER2_BONDED)
    final = NetworkTypeReconciler(directory).convert_bond(device, "bond1", "hybrid")

    assert directory.calls[-2:] == [DirectoryCall("disbond", "eth3", False), GET]
    assert final.port_by_name("eth2").bonded is True
    assert final.port_by_name("eth3").bonded is False
    assert bond_network_type(final, "bond1") is NetworkType.HYBRID


def test_layer3_bond1_to_hybrid_keeps_even_member_bonded() -> None:
    directory, device = _two_bond_device(NetworkType.LAYER3)
    final = NetworkTypeReconciler(directory).convert_bond(device, "bond1", "hybrid")

    assert directory.calls == [
        DirectoryCall("disbond", "eth2", False),
        DirectoryCall("disbond", "eth3", False),
        GET,
        DirectoryCall("convert_to_layer3", "bond1"),
        GET,
        DirectoryCall("disbond", "eth3", False),
        GET,
    ]
    assert [(p.name, p.bonded) for p in final.eth_ports] == [
        ("eth0", True),
        ("eth1", True),
        ("eth2", True),
        ("eth3", False),
    ]
    assert bond_network_type(final, "bond1") is NetworkType.HYBRID


def test_hybrid_rebonds_only_bond1_members() -> None:
    directory = InMemoryDeviceDirectory(ignored={"convert_to_layer3"})
    directory.create_device("D", NetworkType.LAYER2_INDIVIDUAL)
    device = directory.add_bond("D", "bond1", NetworkType.LAYER3, ("eth2", "eth3"))
    final = NetworkTypeReconciler(directory).convert_bond(device, "bond1", "hybrid")

    assert [c for c in directory.calls if c.method == "bond"] == [
        DirectoryCall("bond", "eth2", False)
    ]
    assert final.port_by_name("eth0").bonded is False
    assert bond_network_type(final, "bond1") is NetworkType.HYBRID


def test_hybrid_without_odd_member_fails() -> None:
    directory, device = _two_bond_device(NetworkType.LAYER3, bond1_ports=("eth4", "eth6"))
    with pytest.raises(MetalConversionStepError) as exc_info:
        NetworkTypeReconciler(directory).convert_bond(device, "bond1", "hybrid")
    assert isinstance(exc_info.value.cause, MetalPortNotFoundError)
    assert exc_info.value.step == "disbond odd_ports"


def test_unknown_bond_raises_not_found() -> None:
    directory, device = _two_bond_device(NetworkType.LAYER3)
    with pytest.raises(MetalPortNotFoundError):
        NetworkTypeReconciler(directory).convert_bond(device, "bond7", "layer2-bonded")
    assert directory.calls == []


# ---------------------------------------------------------------------------
# hybrid-bonded
# ---------------------------------------------------------------------------

def test_hybrid_bonded_target_reached_like_layer3() -> None:
    directory, device = _two_bond_device(NetworkType.LAYER2_BONDED)
    final = NetworkTypeReconciler(directory).convert_bond(device, "bond1", "hybrid-bonded")

    # No network is attached by the conversion; layer3 counts as reaching the target.
    assert bond_network_type(final, "bond1") is NetworkType.LAYER3
    assert DirectoryCall("convert_to_layer3", "bond1") in directory.calls


def test_hybrid_bonded_bond_to_layer3_not_needed() -> None:
    directory, device = _two_bond_device(NetworkType.HYBRID_BONDED)
    with pytest.raises(MetalConversionNotNeededError):
        NetworkTypeReconciler(directory).convert_bond(device, "bond1", "layer3")
    assert directory.calls == []


def test_layer3_bond_to_hybrid_bonded_not_needed() -> None:
    directory, device = _two_bond_device(NetworkType.LAYER3)
    with pytest.raises(MetalConversionNotNeededError):
        NetworkTypeReconciler(directory).convert_bond(device, "bond1", "hybrid-bonded")


def test_invalid_target_rejected() -> None:
    directory, device = _two_bond_device(NetworkType.LAYER3)
    with pytest.raises(ValueError):
        NetworkTypeReconciler(directory).convert_bond(device, "bond1", "layer9")
