"""Parser for device and port JSON payloads returned by the Metal API."""

from __future__ import annotations

import logging
from typing import Any

from metal_ports.client.errors import MetalParseError
from metal_ports.model.device import Device
from metal_ports.model.port import (
    BondRef,
    NetworkType,
    Port,
    PortType,
    VirtualNetworkAttachment,
)

logger = logging.getLogger(__name__)


def parse_device(payload: dict[str, Any]) -> Device:
    """Build a :class:`Device` from a ``GET /devices/{id}`` payload.

    Args:
        payload: Decoded JSON object.  Ports are read from ``network_ports``.

    Returns:
        The parsed :class:`Device`.

    Raises:
        MetalParseError: If the ID is missing, a port is malformed, or two
            ports share an interface name.
    """
    device_id = payload.get("id")
    if not isinstance(device_id, str) or not device_id:
        raise MetalParseError(f"Device payload has no 'id': {_preview(payload)}")

    raw_ports = payload.get("network_ports") or []
    if not isinstance(raw_ports, list):
        raise MetalParseError(f"Device {device_id}: 'network_ports' is not a list")

    ports = tuple(parse_port(raw) for raw in raw_ports)
    names = [p.name for p in ports]
    duplicates = sorted({n for n in names if names.count(n) > 1})
    if duplicates:
        raise MetalParseError(f"Device {device_id}: duplicate port names {duplicates}")

    hostname = payload.get("hostname")
    return Device(
        id=device_id,
        hostname=hostname if isinstance(hostname, str) else None,
        ports=ports,
    )


def parse_port(payload: dict[str, Any]) -> Port:
    """Build a :class:`Port` from a port JSON object.

    The wire format allows any string in ``network_type``; only the five
    canonical values are accepted here.

    Raises:
        MetalParseError: If a required field is missing or has an unknown value.
    """
    if not isinstance(payload, dict):
        raise MetalParseError(f"Port payload is not an object: {_preview(payload)}")

    port_id = payload.get("id")
    name = payload.get("name")
    if not isinstance(port_id, str) or not isinstance(name, str):
        raise MetalParseError(f"Port payload lacks 'id' or 'name': {_preview(payload)}")

    try:
        port_type = PortType(payload.get("type"))
    except ValueError as exc:
        raise MetalParseError(
            f"Port {name!r}: unknown port type {payload.get('type')!r}"
        ) from exc

    try:
        network_type = NetworkType(payload.get("network_type"))
    except ValueError as exc:
        raise MetalParseError(
            f"Port {name!r}: unknown network type {payload.get('network_type')!r}"
        ) from exc

    data = payload.get("data") or {}
    if not isinstance(data, dict):
        raise MetalParseError(f"Port {name!r}: 'data' is not an object: {_preview(data)}")
    bond_raw = payload.get("bond")
    bond: BondRef | None = None
    if isinstance(bond_raw, dict) and bond_raw.get("name"):
        bond = BondRef(name=str(bond_raw["name"]), id=bond_raw.get("id"))

    return Port(
        id=port_id,
        name=name,
        type=port_type,
        network_type=network_type,
        bonded=bool(data.get("bonded", False)),
        bond=bond,
        virtual_networks=_parse_virtual_networks(payload),
        disbond_supported=bool(payload.get("disbond_operation_supported", False)),
    )


# ---------------------------------------------------------------------------
# Internals
# ---------------------------------------------------------------------------

def _parse_virtual_networks(payload: dict[str, Any]) -> tuple[VirtualNetworkAttachment, ...]:
    """Merge ``native_virtual_network`` and ``virtual_networks`` into attachments."""
    native_raw = payload.get("native_virtual_network")
    native_id = _vn_id(native_raw) if isinstance(native_raw, dict) else None

    attachments: list[VirtualNetworkAttachment] = []
    seen: set[str] = set()
    for raw in payload.get("virtual_networks") or []:
        vn_id = _vn_id(raw) if isinstance(raw, dict) else None
        if vn_id is None:
            logger.warning("Skipping virtual network without id on port %r", payload.get("name"))
            continue
        seen.add(vn_id)
        attachments.append(
            VirtualNetworkAttachment(id=vn_id, vxlan=_vxlan(raw), native=vn_id == native_id)
        )

    if native_id is not None and native_id not in seen:
        attachments.append(
            VirtualNetworkAttachment(id=native_id, vxlan=_vxlan(native_raw), native=True)
        )
    return tuple(attachments)


def _vn_id(raw: dict[str, Any]) -> str | None:
    """Return the network ID, falling back to the last ``href`` segment."""
    if raw.get("id"):
        return str(raw["id"])
    href = raw.get("href")
    if isinstance(href, str) and href:
        return href.rstrip("/").rsplit("/", 1)[-1]
    return None


def _vxlan(raw: Any) -> int | None:
    if not isinstance(raw, dict):
        return None
    value = raw.get("vxlan")
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.isdigit():
        return int(value)
    return None


def _preview(payload: object) -> str:
    return repr(payload)[:200]
