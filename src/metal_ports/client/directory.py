"""Device directory: the read and port-mutation calls the reconciler consumes.

:class:`DeviceDirectory` is the narrow interface; :class:`HttpDeviceDirectory`
implements it on top of :class:`~metal_ports.client.http.MetalHTTP`.  Every
mutation returns the port as the API reports it immediately after the call;
sibling ports may have changed too, so callers re-fetch the device before
deciding anything else.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Protocol

from metal_ports.client.http import MetalHTTP
from metal_ports.model.config import AddressRequest
from metal_ports.model.device import Device
from metal_ports.model.port import Port
from metal_ports.parser.device import parse_device, parse_port
from metal_ports.vendor.metal.endpoints import (
    DEVICE,
    DEVICE_INCLUDES,
    PORT_ASSIGN,
    PORT_BOND,
    PORT_DISBOND,
    PORT_NATIVE_VLAN,
    PORT_TO_LAYER2,
    PORT_TO_LAYER3,
    PORT_UNASSIGN,
)

logger = logging.getLogger(__name__)


class DeviceDirectory(Protocol):
    """Remote device state and the four port primitives."""

    def get_device(self, device_id: str) -> Device: ...

    def get_port(self, device_id: str, name: str) -> Port: ...

    def bond(self, port_id: str, bulk: bool) -> Port: ...

    def disbond(self, port_id: str, bulk: bool) -> Port: ...

    def convert_to_layer2(self, port_id: str) -> Port: ...

    def convert_to_layer3(
        self, port_id: str, address_requests: Sequence[AddressRequest]
    ) -> Port: ...


class HttpDeviceDirectory:
    """:class:`DeviceDirectory` backed by the Metal HTTP API.

    Args:
        http: Open :class:`MetalHTTP` client.  Not closed by this class.
    """

    def __init__(self, http: MetalHTTP) -> None:
        self._http = http

    def get_device(self, device_id: str) -> Device:
        payload = self._http.get(
            DEVICE.format(device_id=device_id),
            params={"include": DEVICE_INCLUDES},
        )
        return parse_device(payload)

    def get_port(self, device_id: str, name: str) -> Port:
        """Fetch the device and return its port named *name*.

        Raises:
            MetalPortNotFoundError: If the device has no such port.
        """
        return self.get_device(device_id).port_by_name(name)

    def bond(self, port_id: str, bulk: bool) -> Port:
        params = {"bulk_enable": "true"} if bulk else None
        logger.info("Bonding port %s (bulk=%s)", port_id, bulk)
        return parse_port(self._http.post(PORT_BOND.format(port_id=port_id), params=params))

    def disbond(self, port_id: str, bulk: bool) -> Port:
        params = {"bulk_disable": "true"} if bulk else None
        logger.info("Disbonding port %s (bulk=%s)", port_id, bulk)
        return parse_port(
            self._http.post(PORT_DISBOND.format(port_id=port_id), params=params)
        )

    def convert_to_layer2(self, port_id: str) -> Port:
        logger.info("Converting port %s to layer 2", port_id)
        return parse_port(self._http.post(PORT_TO_LAYER2.format(port_id=port_id)))

    def convert_to_layer3(
        self, port_id: str, address_requests: Sequence[AddressRequest]
    ) -> Port:
        body = {"request_ips": [a.to_wire() for a in address_requests]}
        logger.info("Converting port %s to layer 3", port_id)
        return parse_port(self._http.post(PORT_TO_LAYER3.format(port_id=port_id), body=body))

    # ------------------------------------------------------------------
    # Virtual network attachment
    # ------------------------------------------------------------------

    def assign_vlan(self, port_id: str, vnid: str) -> Port:
        """Attach virtual network *vnid* to the port (tagged)."""
        logger.info("Assigning virtual network %s to port %s", vnid, port_id)
        return parse_port(
            self._http.post(PORT_ASSIGN.format(port_id=port_id), body={"vnid": vnid})
        )

    def unassign_vlan(self, port_id: str, vnid: str) -> Port:
        """Detach virtual network *vnid* from the port."""
        logger.info("Unassigning virtual network %s from port %s", vnid, port_id)
        return parse_port(
            self._http.post(PORT_UNASSIGN.format(port_id=port_id), body={"vnid": vnid})
        )

    def assign_native_vlan(self, port_id: str, vnid: str) -> Port:
        """Make the already attached network *vnid* the port's native VLAN."""
        logger.info("Setting native virtual network %s on port %s", vnid, port_id)
        return parse_port(
            self._http.post(PORT_NATIVE_VLAN.format(port_id=port_id), params={"vnid": vnid})
        )

    def unassign_native_vlan(self, port_id: str) -> Port:
        """Clear the port's native VLAN; the network stays attached as tagged."""
        logger.info("Removing native virtual network from port %s", port_id)
        return parse_port(self._http.delete(PORT_NATIVE_VLAN.format(port_id=port_id)))
