"""Typed model for a device and its network ports."""

from __future__ import annotations

from dataclasses import dataclass, field

from metal_ports.client.errors import MetalPortNotFoundError
from metal_ports.model.port import Port


@dataclass(frozen=True)
class Device:
    """Read replica of a bare-metal device's network topology.

    Snapshots are fetched fresh before each decision and discarded after
    use.  Port order carries no meaning; interface names are unique.

    Attributes:
        id: Device ID.
        hostname: Device hostname, if the API included it.
        ports: All network ports, physical and bond.
    """

    id: str
    hostname: str | None = None
    ports: tuple[Port, ...] = field(default_factory=tuple)

    def port_by_name(self, name: str) -> Port:
        """Return the port named *name*.

        Raises:
            MetalPortNotFoundError: If the device has no such port.
        """
        for port in self.ports:
            if port.name == name:
                return port
        raise MetalPortNotFoundError(name, self.id)

    @property
    def bond_ports(self) -> list[Port]:
        """Bond aggregation ports, sorted by interface name."""
        return sorted((p for p in self.ports if p.is_bond_port), key=lambda p: p.name)

    @property
    def eth_ports(self) -> list[Port]:
        """Physical (bondable) ports, sorted by interface name."""
        return sorted((p for p in self.ports if p.is_eth_port), key=lambda p: p.name)
