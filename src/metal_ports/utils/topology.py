"""Pure queries over a device snapshot: current network type and transitions.

Nothing in this module performs I/O; every function answers from the
:class:`~metal_ports.model.device.Device` it is given.
"""

from __future__ import annotations

from metal_ports.model.config import DEFAULT_BOND_NAME
from metal_ports.model.device import Device
from metal_ports.model.port import NetworkType, Port


def device_network_type(device: Device, bond_name: str = DEFAULT_BOND_NAME) -> NetworkType:
    """Return the device's network type, read off its bond port.

    Raises:
        MetalPortNotFoundError: If the device has no bond port named *bond_name*.
    """
    return device.port_by_name(bond_name).network_type


def bond_network_type(device: Device, bond_name: str) -> NetworkType:
    """Return the network type of the bond port named *bond_name*.

    Raises:
        MetalPortNotFoundError: If the device has no such port.
    """
    return device.port_by_name(bond_name).network_type


def eth_ports_in_bond(device: Device, bond_name: str) -> list[Port]:
    """Return the physical ports whose bond back-reference is *bond_name*.

    Membership is independent of the ``bonded`` flag: a member that has been
    disbonded still names its bond.  Sorted by interface name.
    """
    return [
        p for p in device.eth_ports
        if p.bond is not None and p.bond.name == bond_name
    ]


def transition_required(current: NetworkType, target: NetworkType) -> bool:
    """Return ``True`` if moving from *current* to *target* needs any operation.

    ``False`` when the two are equal, and for ``layer3`` <-> ``hybrid-bonded``
    in either direction.  An attached network is not shed when a
    ``hybrid-bonded`` device is asked for ``layer3``.
    """
    if current == target:
        return False
    # hybrid-bonded is layer3 plus an attached network
    if current is NetworkType.HYBRID_BONDED and target is NetworkType.LAYER3:
        return False
    if current is NetworkType.LAYER3 and target is NetworkType.HYBRID_BONDED:
        return False
    return True
