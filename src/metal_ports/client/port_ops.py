"""Locally idempotent port operations.

Each operation checks the snapshot it is handed before calling the
:class:`~metal_ports.client.directory.DeviceDirectory`; when the port is
already in the wanted sub-state the snapshot is returned and no request is
made.  The API rejects some of these calls when they would be no-ops
(bonding a bonded port, for instance), so the guard is required, not an
optimisation.

Confirmed request shapes:

    BOND eth0:          POST /ports/{id}/bond
    BOND all siblings:  POST /ports/{id}/bond?bulk_enable=true
    DISBOND eth1:       POST /ports/{id}/disbond
    TO LAYER 2:         POST /ports/{id}/convert/layer-2
    TO LAYER 3:         POST /ports/{id}/convert/layer-3
        {"request_ips": [{"address_family": 4, "public": true},
                         {"address_family": 4, "public": false},
                         {"address_family": 6, "public": true}]}
"""

from __future__ import annotations

import logging

from metal_ports.client.directory import DeviceDirectory
from metal_ports.model.config import ReconcilePolicy
from metal_ports.model.device import Device
from metal_ports.model.port import NetworkType, Port

logger = logging.getLogger(__name__)


class PortOperations:
    """Facade over the four port primitives with check-before-call guards.

    The returned :class:`Port` reflects only the targeted port.  A real call
    may change sibling ports as well, so re-fetch the device before making
    another decision.

    Args:
        directory: Remote device directory.
        policy: Supplies the layer-3 address request shape.
    """

    def __init__(self, directory: DeviceDirectory, policy: ReconcilePolicy | None = None) -> None:
        self._directory = directory
        self._policy = policy or ReconcilePolicy()

    def bond(self, port: Port, bulk: bool = False) -> Port:
        """Bond *port*, or return it unchanged if already bonded.

        Args:
            port: Snapshot of the port to bond.
            bulk: Bond all of the port's siblings in the same call.
        """
        if port.bonded:
            logger.debug("Port %s already bonded; skipping", port.name)
            return port
        return self._directory.bond(port.id, bulk)

    def disbond(self, port: Port, bulk: bool = False) -> Port:
        """Disbond *port*, or return it unchanged if not bonded."""
        if not port.bonded:
            logger.debug("Port %s already disbonded; skipping", port.name)
            return port
        return self._directory.disbond(port.id, bulk)

    def to_layer2(self, device: Device, port_name: str) -> Port:
        """Convert the port named *port_name* to layer 2 (drops its IPs).

        Raises:
            MetalPortNotFoundError: If *device* has no such port.
        """
        port = device.port_by_name(port_name)
        if port.network_type.is_layer2:
            logger.debug("Port %s already %s; skipping", port.name, port.network_type)
            return port
        return self._directory.convert_to_layer2(port.id)

    def to_layer3(self, device: Device, port_name: str) -> Port:
        """Convert the port named *port_name* to layer 3.

        Requests the policy's fixed address set.  ``layer3`` and ``hybrid``
        ports are left alone.

        Raises:
            MetalPortNotFoundError: If *device* has no such port.
        """
        port = device.port_by_name(port_name)
        if port.network_type in (NetworkType.LAYER3, NetworkType.HYBRID):
            logger.debug("Port %s already %s; skipping", port.name, port.network_type)
            return port
        return self._directory.convert_to_layer3(
            port.id, self._policy.layer3_address_requests
        )
