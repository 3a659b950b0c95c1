"""Connection settings and reconciliation policy for metal-ports."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL: str = "https://api.equinix.com/metal/v1"

# Interface name of the bond port a device-wide conversion manages.
DEFAULT_BOND_NAME: str = "bond0"

# Checked in order; the legacy name is still honoured.
TOKEN_ENV_VARS: tuple[str, ...] = ("METAL_AUTH_TOKEN", "PACKET_AUTH_TOKEN")


@dataclass(frozen=True)
class MetalCredentials:
    """Immutable API credentials.

    Args:
        token: API token sent as ``X-Auth-Token``.
        consumer_token: Optional consumer token sent as ``X-Consumer-Token``.
    """

    token: str
    consumer_token: str | None = None

    def __repr__(self) -> str:
        return "MetalCredentials(token='***')"


@dataclass
class MetalClientConfig:
    """Settings for :class:`~metal_ports.client.http.MetalHTTP`.

    Attributes:
        credentials: API credentials.
        base_url: API root URL.
        timeout_s: Request timeout in seconds.
        verify_tls: Whether to verify TLS certificates.
        max_retries: Retries for idempotent requests answered with a 5xx.
    """

    credentials: MetalCredentials
    base_url: str = DEFAULT_BASE_URL
    timeout_s: float = 30.0
    verify_tls: bool = True
    max_retries: int = 3

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> MetalClientConfig:
        """Build a config from environment variables.

        Reads ``METAL_AUTH_TOKEN`` (or ``PACKET_AUTH_TOKEN``),
        ``METAL_CONSUMER_TOKEN``, ``METAL_API_URL``, ``METAL_TIMEOUT`` and
        ``METAL_VERIFY_TLS`` (``"0"`` disables verification).

        Raises:
            ValueError: If no token variable is set or ``METAL_TIMEOUT`` is
                not a number.
        """
        env = os.environ if environ is None else environ
        token = next((env[name] for name in TOKEN_ENV_VARS if env.get(name)), "")
        if not token:
            raise ValueError(
                f"No API token found; set one of {', '.join(TOKEN_ENV_VARS)}"
            )
        timeout_raw = env.get("METAL_TIMEOUT", "30")
        try:
            timeout_s = float(timeout_raw)
        except ValueError as exc:
            raise ValueError(f"METAL_TIMEOUT must be a number, got {timeout_raw!r}") from exc

        config = cls(
            credentials=MetalCredentials(
                token=token,
                consumer_token=env.get("METAL_CONSUMER_TOKEN") or None,
            ),
            base_url=env.get("METAL_API_URL") or DEFAULT_BASE_URL,
            timeout_s=timeout_s,
            verify_tls=env.get("METAL_VERIFY_TLS", "1") != "0",
        )
        logger.debug("Loaded client config from environment: base_url=%s", config.base_url)
        return config


@dataclass(frozen=True)
class AddressRequest:
    """One IP address requested when a port is converted back to layer 3."""

    address_family: int
    public: bool

    def to_wire(self) -> dict[str, object]:
        return {"address_family": self.address_family, "public": self.public}


# One public IPv4, one private IPv4, one public IPv6.  The order is part of
# the wire contract.
DEFAULT_LAYER3_ADDRESSES: tuple[AddressRequest, ...] = (
    AddressRequest(address_family=4, public=True),
    AddressRequest(address_family=4, public=False),
    AddressRequest(address_family=6, public=True),
)

# Provider port layout: the ports split out of the bond in hybrid mode.
DEFAULT_ODD_PORT_NAMES: tuple[str, ...] = ("eth1", "eth3")


@dataclass(frozen=True)
class ReconcilePolicy:
    """Fixed policy values used by the port operations and reconciler.

    Attributes:
        bond_name: Interface name of the device's managed bond port.
        layer3_address_requests: Addresses requested on layer-3 conversion.
        odd_port_names: Ports disbonded to reach ``hybrid``.  The first
            name is required to exist; the rest are used when present.
    """

    bond_name: str = DEFAULT_BOND_NAME
    layer3_address_requests: tuple[AddressRequest, ...] = field(
        default=DEFAULT_LAYER3_ADDRESSES
    )
    odd_port_names: tuple[str, ...] = field(default=DEFAULT_ODD_PORT_NAMES)
