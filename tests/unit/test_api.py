"""Unit tests for metal_ports.client.api.MetalNetworkClient over mocked HTTP."""

from __future__ import annotations

import json
from typing import Any

import pytest
import responses as rsps_lib

from metal_ports.client.api import MetalNetworkClient
from metal_ports.client.errors import MetalConversionNotNeededError, MetalError
from metal_ports.model.config import MetalClientConfig, MetalCredentials
from metal_ports.model.port import NetworkType

BASE_URL = "https://api.example.test/metal/v1"
DEVICE_URL = f"{BASE_URL}/devices/d1"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _make_client() -> MetalNetworkClient:
    config = MetalClientConfig(
        credentials=MetalCredentials(token="tok-123"),
        base_url=BASE_URL,
        max_retries=0,
    )
    return MetalNetworkClient(config)


def _port(name: str, network_type: str, bonded: bool) -> dict[str, Any]:
    is_bond = name.startswith("bond")
    return {
        "id": f"p-{name}",
        "type": "NetworkBondPort" if is_bond else "NetworkPort",
        "name": name,
        "data": {"bonded": bonded},
        "network_type": network_type,
        "bond": None if is_bond else {"id": "p-bond0", "name": "bond0"},
    }


def _device(bond_type: str, eth_type: str, eth_bonded: bool) -> dict[str, Any]:
    return {
        "id": "d1",
        "network_ports": [
            _port("bond0", bond_type, eth_bonded),
            _port("eth0", eth_type, eth_bonded),
            _port("eth1", eth_type, eth_bonded),
        ],
    }


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------

def test_calls_before_open_raise() -> None:
    client = _make_client()
    with pytest.raises(MetalError, match="not open"):
        client.get_device("d1")
    with pytest.raises(MetalError, match="not open"):
        client.device_to_network_type("d1", "layer3")


def test_close_is_idempotent() -> None:
    client = _make_client()
    client.open()
    client.close()
    client.close()
    with pytest.raises(MetalError):
        client.get_device("d1")


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------

@rsps_lib.activate
def test_device_network_type() -> None:
    rsps_lib.add(rsps_lib.GET, DEVICE_URL, json=_device("hybrid", "hybrid", True), status=200)
    with _make_client() as client:
        assert client.device_network_type("d1") is NetworkType.HYBRID


@rsps_lib.activate
def test_bond_network_type() -> None:
    rsps_lib.add(rsps_lib.GET, DEVICE_URL, json=_device("layer3", "layer3", True), status=200)
    with _make_client() as client:
        assert client.bond_network_type("d1", "bond0") is NetworkType.LAYER3


# ---------------------------------------------------------------------------
# Conversions
# ---------------------------------------------------------------------------

@rsps_lib.activate
def test_layer3_to_layer2_individual_over_http() -> None:
    rsps_lib.add(rsps_lib.GET, DEVICE_URL, json=_device("layer3", "layer3", True), status=200)
    rsps_lib.add(
        rsps_lib.GET, DEVICE_URL, json=_device("layer2-bonded", "layer2-bonded", True), status=200
    )
    rsps_lib.add(
        rsps_lib.GET,
        DEVICE_URL,
        json=_device("layer2-individual", "layer2-individual", False),
        status=200,
    )
    rsps_lib.add(
        rsps_lib.POST,
        f"{BASE_URL}/ports/p-bond0/convert/layer-2",
        json=_port("bond0", "layer2-bonded", True),
        status=200,
    )
    for name in ("eth0", "eth1"):
        rsps_lib.add(
            rsps_lib.POST,
            f"{BASE_URL}/ports/p-{name}/disbond",
            json=_port(name, "layer2-individual", False),
            status=200,
        )

    with _make_client() as client:
        device = client.device_to_network_type("d1", "layer2-individual")

    assert [(c.request.method, c.request.url.split("?")[0]) for c in rsps_lib.calls] == [
        ("GET", DEVICE_URL),
        ("POST", f"{BASE_URL}/ports/p-bond0/convert/layer-2"),
        ("GET", DEVICE_URL),
        ("POST", f"{BASE_URL}/ports/p-eth0/disbond"),
        ("POST", f"{BASE_URL}/ports/p-eth1/disbond"),
        ("GET", DEVICE_URL),
    ]
    assert device.port_by_name("bond0").network_type is NetworkType.LAYER2_INDIVIDUAL


@rsps_lib.activate
def test_not_needed_sends_only_the_read() -> None:
    rsps_lib.add(rsps_lib.GET, DEVICE_URL, json=_device("layer3", "layer3", True), status=200)
    with _make_client() as client:
        with pytest.raises(MetalConversionNotNeededError):
            client.bond_to_network_type("d1", "bond0", "hybrid-bonded")
    assert len(rsps_lib.calls) == 1


# ---------------------------------------------------------------------------
# Virtual networks
# ---------------------------------------------------------------------------

@rsps_lib.activate
def test_attach_vlan_looks_up_port_by_name() -> None:
    rsps_lib.add(rsps_lib.GET, DEVICE_URL, json=_device("layer3", "layer3", True), status=200)
    attached = _port("bond0", "hybrid-bonded", True)
    attached["virtual_networks"] = [{"id": "vn-1"}]
    rsps_lib.add(rsps_lib.POST, f"{BASE_URL}/ports/p-bond0/assign", json=attached, status=200)

    with _make_client() as client:
        port = client.attach_vlan("d1", "bond0", "vn-1")

    assert port.network_type is NetworkType.HYBRID_BONDED
    assert json.loads(rsps_lib.calls[1].request.body) == {"vnid": "vn-1"}


@rsps_lib.activate
def test_clear_native_vlan_sends_delete() -> None:
    rsps_lib.add(rsps_lib.GET, DEVICE_URL, json=_device("hybrid", "hybrid", False), status=200)
    rsps_lib.add(
        rsps_lib.DELETE,
        f"{BASE_URL}/ports/p-eth1/native-vlan",
        json=_port("eth1", "hybrid", False),
        status=200,
    )
    with _make_client() as client:
        port = client.clear_native_vlan("d1", "eth1")
    assert port.native_virtual_network is None
    assert rsps_lib.calls[1].request.method == "DELETE"
