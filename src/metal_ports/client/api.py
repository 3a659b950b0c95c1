"""Top-level client: connection lifecycle plus device network type operations."""

from __future__ import annotations

import logging
import threading

from metal_ports.client.directory import HttpDeviceDirectory
from metal_ports.client.errors import MetalError
from metal_ports.client.http import MetalHTTP
from metal_ports.model.config import MetalClientConfig, ReconcilePolicy
from metal_ports.model.device import Device
from metal_ports.model.port import NetworkType, Port
from metal_ports.reconcile.engine import NetworkTypeReconciler
from metal_ports.utils.topology import bond_network_type, device_network_type

logger = logging.getLogger(__name__)


class MetalNetworkClient:
    """Manages an API connection and converts device network types.

    Args:
        config: Connection settings; see :meth:`MetalClientConfig.from_env`.
        policy: Reconciliation policy overrides.
    """

    def __init__(
        self,
        config: MetalClientConfig,
        policy: ReconcilePolicy | None = None,
    ) -> None:
        self._config = config
        self._policy = policy or ReconcilePolicy()
        self._http: MetalHTTP | None = None
        self._directory: HttpDeviceDirectory | None = None
        self._reconciler: NetworkTypeReconciler | None = None

    # ------------------------------------------------------------------
    # Connection lifecycle
    # ------------------------------------------------------------------

    def open(self) -> None:
        """Create the HTTP session.  No request is sent until the first call."""
        logger.info("Opening connection to %s", self._config.base_url)
        self._http = MetalHTTP(self._config)
        self._directory = HttpDeviceDirectory(self._http)
        self._reconciler = NetworkTypeReconciler(self._directory, self._policy)

    def close(self) -> None:
        """Close the HTTP session (idempotent)."""
        if self._http is not None:
            logger.info("Closing connection to %s", self._config.base_url)
            self._http.close()
        self._http = None
        self._directory = None
        self._reconciler = None

    def __enter__(self) -> MetalNetworkClient:
        self.open()
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_device(self, device_id: str) -> Device:
        """Fetch a fresh snapshot of *device_id*."""
        return self._require_directory().get_device(device_id)

    def get_port(self, device_id: str, name: str) -> Port:
        """Fetch port *name* of *device_id*."""
        return self._require_directory().get_port(device_id, name)

    def device_network_type(self, device_id: str) -> NetworkType:
        """Return the network type the device currently reports."""
        device = self.get_device(device_id)
        return device_network_type(device, self._policy.bond_name)

    def bond_network_type(self, device_id: str, bond_name: str) -> NetworkType:
        """Return the network type of one bond on the device."""
        return bond_network_type(self.get_device(device_id), bond_name)

    # ------------------------------------------------------------------
    # Conversions
    # ------------------------------------------------------------------

    def device_to_network_type(
        self,
        device_id: str,
        target: NetworkType | str,
        *,
        cancel: threading.Event | None = None,
    ) -> Device:
        """Fetch the device and convert it to *target*.

        See :meth:`NetworkTypeReconciler.convert` for the error contract.
        """
        device = self.get_device(device_id)
        return self._require_reconciler().convert(device, target, cancel=cancel)

    def bond_to_network_type(
        self,
        device_id: str,
        bond_name: str,
        target: NetworkType | str,
        *,
        cancel: threading.Event | None = None,
    ) -> Device:
        """Fetch the device and convert bond *bond_name* to *target*.

        See :meth:`NetworkTypeReconciler.convert_bond` for the error contract.
        """
        device = self.get_device(device_id)
        return self._require_reconciler().convert_bond(device, bond_name, target, cancel=cancel)

    # ------------------------------------------------------------------
    # Virtual networks
    # ------------------------------------------------------------------

    def attach_vlan(self, device_id: str, port_name: str, vnid: str) -> Port:
        """Attach virtual network *vnid* to a port, looked up by name.

        Attaching a network to a ``layer3`` bond makes it ``hybrid-bonded``.
        """
        port = self.get_port(device_id, port_name)
        return self._require_directory().assign_vlan(port.id, vnid)

    def detach_vlan(self, device_id: str, port_name: str, vnid: str) -> Port:
        """Detach virtual network *vnid* from a port, looked up by name."""
        port = self.get_port(device_id, port_name)
        return self._require_directory().unassign_vlan(port.id, vnid)

    def set_native_vlan(self, device_id: str, port_name: str, vnid: str) -> Port:
        """Make the attached network *vnid* the port's native VLAN."""
        port = self.get_port(device_id, port_name)
        return self._require_directory().assign_native_vlan(port.id, vnid)

    def clear_native_vlan(self, device_id: str, port_name: str) -> Port:
        """Remove the port's native VLAN; the network stays attached."""
        port = self.get_port(device_id, port_name)
        return self._require_directory().unassign_native_vlan(port.id)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _require_directory(self) -> HttpDeviceDirectory:
        """Return the active directory or raise :exc:`.MetalError`."""
        if self._directory is None:
            raise MetalError("Client not open; call open() first.")
        return self._directory

    def _require_reconciler(self) -> NetworkTypeReconciler:
        if self._reconciler is None:
            raise MetalError("Client not open; call open() first.")
        return self._reconciler
