"""Typed models for device network ports."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class NetworkType(str, Enum):
    """Network mode of a port; the device's type is read off its bond port.

    ``HYBRID_BONDED`` is observed only: a ``layer3`` bond port with a virtual
    network attached.  It cannot be requested from
    :meth:`~metal_ports.reconcile.engine.NetworkTypeReconciler.convert`.
    """

    LAYER3 = "layer3"
    LAYER2_BONDED = "layer2-bonded"
    LAYER2_INDIVIDUAL = "layer2-individual"
    HYBRID = "hybrid"
    HYBRID_BONDED = "hybrid-bonded"

    def __str__(self) -> str:
        return self.value

    @property
    def is_layer2(self) -> bool:
        """True for both layer-2 modes."""
        return self.value.startswith("layer2")


class PortType(str, Enum):
    """Wire discriminator between physical and bond aggregation ports."""

    ETH = "NetworkPort"
    BOND = "NetworkBondPort"


@dataclass(frozen=True)
class BondRef:
    """Non-owning reference from a physical port to its bond.

    Attributes:
        name: Interface name of the bond port (e.g. ``"bond0"``).
        id: Bond port ID, or ``None`` if the API did not include it.
    """

    name: str
    id: str | None = None


@dataclass(frozen=True)
class VirtualNetworkAttachment:
    """A virtual network attached to a port.

    Attributes:
        id: Virtual network ID.
        vxlan: VXLAN/VLAN number, or ``None`` if unknown.
        native: ``True`` if the network is the port's native (untagged) VLAN.
    """

    id: str
    vxlan: int | None = None
    native: bool = False


@dataclass(frozen=True)
class Port:
    """Read replica of one network port on a device.

    Attributes:
        id: Opaque port ID.
        name: Interface name (e.g. ``"eth0"``, ``"bond0"``).
        type: :class:`PortType` discriminator.
        network_type: Current :class:`NetworkType` of the port.
        bonded: ``True`` if the port is currently a member of an active bond.
        bond: The bond this port belongs to, or ``None``.
        virtual_networks: Attached virtual networks (native and tagged).
        disbond_supported: Whether the API reports the bond can be broken
            on this port.
    """

    id: str
    name: str
    type: PortType
    network_type: NetworkType
    bonded: bool = False
    bond: BondRef | None = None
    virtual_networks: tuple[VirtualNetworkAttachment, ...] = field(default_factory=tuple)
    disbond_supported: bool = False

    @property
    def is_bond_port(self) -> bool:
        return self.type is PortType.BOND

    @property
    def is_eth_port(self) -> bool:
        return self.type is PortType.ETH

    @property
    def native_virtual_network(self) -> VirtualNetworkAttachment | None:
        for vn in self.virtual_networks:
            if vn.native:
                return vn
        return None
