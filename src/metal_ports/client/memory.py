"""
In memory device directory.

Used by tests and local dry runs in place of
:class:`~metal_ports.client.directory.HttpDeviceDirectory`.
It behaves like the provider's port API for a small set of devices.

Features
- Derives each port's network type from bonding state, the bond's layer
  and attached networks, the way the API reports it
- Reproduces provider side effects: converting a bond to layer 3 re-bonds
  its members, bulk bond/disbond touches every sibling
- Rejects redundant bond/disbond calls like the API does
- Records every call in order for assertions
- Can inject errors on specific calls, or ignore calls to simulate a device
  that never converges
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from metal_ports.client.errors import (
    MetalError,
    MetalResponseError,
)
from metal_ports.model.config import AddressRequest
from metal_ports.model.device import Device
from metal_ports.model.port import (
    BondRef,
    NetworkType,
    Port,
    PortType,
    VirtualNetworkAttachment,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DirectoryCall:
    """One recorded directory call.

    Attributes:
        method: Directory method name (``"get_device"``, ``"bond"``, ...).
        target: Device ID for ``get_device``, port interface name otherwise.
        bulk: The bulk flag for bond/disbond, ``None`` otherwise.
    """

    method: str
    target: str
    bulk: bool | None = None


@dataclass
class _PortState:
    id: str
    name: str
    type: PortType
    bonded: bool = False
    bond_name: str | None = None
    layer3: bool = False
    vlans: list[str] = field(default_factory=list)
    native_vlan: str | None = None


@dataclass
class _DeviceState:
    id: str
    hostname: str | None
    ports: dict[str, _PortState] = field(default_factory=dict)


@dataclass
class InMemoryDeviceDirectory:
    """
    In memory device directory.

    failures
    Mapping of ``(method, target)`` to the error raised when that call is
    made, e.g. ``{("disbond", "eth1"): MetalRequestError(...)}``.
    The call is still recorded.

    ignored
    Method names the simulated provider accepts but does not apply.
    The call returns the unchanged port, as a device that did not converge.
    """

    failures: dict[tuple[str, str], MetalError] = field(default_factory=dict)
    ignored: set[str] = field(default_factory=set)
    calls: list[DirectoryCall] = field(default_factory=list)
    layer3_requests: list[tuple[AddressRequest, ...]] = field(default_factory=list)
    _devices: dict[str, _DeviceState] = field(default_factory=dict, init=False, repr=False)

    # ------------------------------------------------------------------
    # Setup
    # ------------------------------------------------------------------

    def create_device(
        self,
        device_id: str,
        network_type: NetworkType | str,
        eth_names: Iterable[str] = ("eth0", "eth1"),
        bond_name: str = "bond0",
        hostname: str | None = None,
        odd_port_names: Sequence[str] = ("eth1", "eth3"),
    ) -> Device:
        """Add a device with one bond whose ports are consistent with *network_type*.

        ``hybrid`` unbonds *odd_port_names*; ``hybrid-bonded`` attaches a
        virtual network to the bond.  Returns the device snapshot.
        """
        state = _DeviceState(id=device_id, hostname=hostname)
        self._devices[device_id] = state
        return self.add_bond(device_id, bond_name, network_type, eth_names, odd_port_names)

    def add_bond(
        self,
        device_id: str,
        bond_name: str,
        network_type: NetworkType | str,
        eth_names: Iterable[str],
        odd_port_names: Sequence[str] = ("eth1", "eth3"),
    ) -> Device:
        """Add another bond and its member ports to an existing device."""
        network_type = NetworkType(network_type)
        state = self._device(device_id)
        state.ports[bond_name] = _PortState(
            id=f"{device_id}-{bond_name}",
            name=bond_name,
            type=PortType.BOND,
            layer3=not network_type.is_layer2,
            vlans=["vn-1000"] if network_type is NetworkType.HYBRID_BONDED else [],
        )
        for name in eth_names:
            if network_type is NetworkType.LAYER2_INDIVIDUAL:
                bonded = False
            elif network_type is NetworkType.HYBRID:
                bonded = name not in odd_port_names
            else:
                bonded = True
            state.ports[name] = _PortState(
                id=f"{device_id}-{name}",
                name=name,
                type=PortType.ETH,
                bonded=bonded,
                bond_name=bond_name,
            )
        return self._snapshot(state)

    # ------------------------------------------------------------------
    # DeviceDirectory
    # ------------------------------------------------------------------

    def get_device(self, device_id: str) -> Device:
        self._record("get_device", device_id)
        return self._snapshot(self._device(device_id))

    def get_port(self, device_id: str, name: str) -> Port:
        self._record("get_port", name)
        return self._snapshot(self._device(device_id)).port_by_name(name)

    def bond(self, port_id: str, bulk: bool) -> Port:
        device, port = self._port(port_id)
        self._record("bond", port.name, bulk)
        if "bond" not in self.ignored:
            if self._is_bonded(device, port):
                raise self._rejected(port_id, "port is already bonded")
            for p in self._affected(device, port, bulk):
                p.bonded = True
        return self._port_snapshot(device, port)

    def disbond(self, port_id: str, bulk: bool) -> Port:
        device, port = self._port(port_id)
        self._record("disbond", port.name, bulk)
        if "disbond" not in self.ignored:
            if not self._is_bonded(device, port):
                raise self._rejected(port_id, "port is not bonded")
            for p in self._affected(device, port, bulk):
                p.bonded = False
        return self._port_snapshot(device, port)

    def convert_to_layer2(self, port_id: str) -> Port:
        device, port = self._port(port_id)
        self._record("convert_to_layer2", port.name)
        if "convert_to_layer2" not in self.ignored:
            if port.type is PortType.BOND:
                port.layer3 = False
            else:
                port.bonded = False
        return self._port_snapshot(device, port)

    def convert_to_layer3(
        self, port_id: str, address_requests: Sequence[AddressRequest]
    ) -> Port:
        device, port = self._port(port_id)
        self._record("convert_to_layer3", port.name)
        self.layer3_requests.append(tuple(address_requests))
        if "convert_to_layer3" not in self.ignored:
            if port.type is not PortType.BOND:
                raise self._rejected(port_id, "only bond ports can be converted to layer 3")
            # The provider re-bonds every member when a bond goes back to layer 3.
            port.layer3 = True
            for member in self._members(device, port.name):
                member.bonded = True
        return self._port_snapshot(device, port)

    # ------------------------------------------------------------------
    # Virtual network attachment
    # ------------------------------------------------------------------

    def assign_vlan(self, port_id: str, vnid: str) -> Port:
        device, port = self._port(port_id)
        self._record("assign_vlan", port.name)
        if vnid not in port.vlans:
            port.vlans.append(vnid)
        return self._port_snapshot(device, port)

    def unassign_vlan(self, port_id: str, vnid: str) -> Port:
        device, port = self._port(port_id)
        self._record("unassign_vlan", port.name)
        if vnid in port.vlans:
            port.vlans.remove(vnid)
        if port.native_vlan == vnid:
            port.native_vlan = None
        return self._port_snapshot(device, port)

    def assign_native_vlan(self, port_id: str, vnid: str) -> Port:
        device, port = self._port(port_id)
        self._record("assign_native_vlan", port.name)
        if vnid not in port.vlans:
            raise self._rejected(port_id, f"virtual network {vnid} is not attached")
        port.native_vlan = vnid
        return self._port_snapshot(device, port)

    def unassign_native_vlan(self, port_id: str) -> Port:
        device, port = self._port(port_id)
        self._record("unassign_native_vlan", port.name)
        port.native_vlan = None
        return self._port_snapshot(device, port)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _record(self, method: str, target: str, bulk: bool | None = None) -> None:
        self.calls.append(DirectoryCall(method, target, bulk))
        error = self.failures.get((method, target))
        if error is not None:
            logger.debug("Injecting failure for %s(%s)", method, target)
            raise error

    def _device(self, device_id: str) -> _DeviceState:
        state = self._devices.get(device_id)
        if state is None:
            raise MetalResponseError(404, f"/devices/{device_id}", ["Not found"])
        return state

    def _port(self, port_id: str) -> tuple[_DeviceState, _PortState]:
        for device in self._devices.values():
            for port in device.ports.values():
                if port.id == port_id:
                    return device, port
        raise MetalResponseError(404, f"/ports/{port_id}", ["Not found"])

    @staticmethod
    def _rejected(port_id: str, message: str) -> MetalResponseError:
        return MetalResponseError(422, f"/ports/{port_id}", [message])

    @staticmethod
    def _members(device: _DeviceState, bond_name: str) -> list[_PortState]:
        return [
            p for p in device.ports.values()
            if p.type is PortType.ETH and p.bond_name == bond_name
        ]

    def _affected(self, device: _DeviceState, port: _PortState, bulk: bool) -> list[_PortState]:
        """Ports a bond/disbond call changes: the port, or all of its bond's members."""
        if port.type is PortType.BOND:
            return self._members(device, port.name)
        if bulk and port.bond_name is not None:
            return self._members(device, port.bond_name)
        return [port]

    def _is_bonded(self, device: _DeviceState, port: _PortState) -> bool:
        if port.type is PortType.BOND:
            members = self._members(device, port.name)
            return bool(members) and all(m.bonded for m in members)
        return port.bonded

    def _network_type(self, device: _DeviceState, port: _PortState) -> NetworkType:
        if port.type is PortType.ETH:
            bond = device.ports.get(port.bond_name or "")
            if port.bonded and bond is not None:
                return self._network_type(device, bond)
            return NetworkType.LAYER2_INDIVIDUAL

        members = self._members(device, port.name)
        bonded_count = sum(1 for m in members if m.bonded)
        all_bonded = bool(members) and bonded_count == len(members)
        # A layer-3 bond with no bonded member left reads as layer2-individual.
        if port.layer3 and bonded_count:
            if not all_bonded:
                return NetworkType.HYBRID
            if port.vlans:
                return NetworkType.HYBRID_BONDED
            return NetworkType.LAYER3
        if all_bonded:
            return NetworkType.LAYER2_BONDED
        return NetworkType.LAYER2_INDIVIDUAL

    def _port_snapshot(self, device: _DeviceState, port: _PortState) -> Port:
        vlans = tuple(
            VirtualNetworkAttachment(id=vn, native=vn == port.native_vlan) for vn in port.vlans
        )
        bond = BondRef(name=port.bond_name, id=f"{device.id}-{port.bond_name}") if port.bond_name else None
        return Port(
            id=port.id,
            name=port.name,
            type=port.type,
            network_type=self._network_type(device, port),
            bonded=self._is_bonded(device, port),
            bond=bond,
            virtual_networks=vlans,
            disbond_supported=port.type is PortType.ETH,
        )

    def _snapshot(self, device: _DeviceState) -> Device:
        return Device(
            id=device.id,
            hostname=device.hostname,
            ports=tuple(self._port_snapshot(device, p) for p in device.ports.values()),
        )
