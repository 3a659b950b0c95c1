#!/usr/bin/env python3
"""Example: convert a device to another network type (dry-run by default).

Usage::

    # Dry-run (no changes), shows the current type and the recipe:
    export METAL_AUTH_TOKEN=...
    export METAL_DEVICE_ID=8f1b...
    export TARGET_TYPE=layer2-individual
    python examples/convert_device.py

    # Apply:
    export APPLY=1
    python examples/convert_device.py

Environment variables:
    METAL_AUTH_TOKEN  API token (required; PACKET_AUTH_TOKEN also accepted).
    METAL_API_URL     API root (default: https://api.equinix.com/metal/v1).
    METAL_DEVICE_ID   Device to convert (required).
    TARGET_TYPE       layer3, hybrid, layer2-bonded or layer2-individual (required).
    BOND_NAME         Convert only this bond instead of the whole device.
    APPLY             Set to "1" to actually apply changes (default: dry-run).

WARNING: converting to layer 2 removes the device's IP addresses.
"""

from __future__ import annotations

import logging
import os
import sys

from metal_ports.client.api import MetalNetworkClient
from metal_ports.client.errors import (
    MetalConversionNotNeededError,
    MetalConversionStepError,
    MetalError,
    MetalVerificationError,
)
from metal_ports.model.config import MetalClientConfig
from metal_ports.reconcile.engine import NetworkTypeReconciler


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    device_id = os.environ.get("METAL_DEVICE_ID", "")
    target = os.environ.get("TARGET_TYPE", "")
    if not device_id or not target:
        print("ERROR: METAL_DEVICE_ID and TARGET_TYPE are required.", file=sys.stderr)
        sys.exit(1)
    bond_name = os.environ.get("BOND_NAME", "")
    apply_changes = os.environ.get("APPLY", "0") == "1"

    try:
        config = MetalClientConfig.from_env()
        steps = NetworkTypeReconciler.recipe_for(target, bond=bool(bond_name))
    except ValueError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        sys.exit(1)

    with MetalNetworkClient(config) as client:
        if bond_name:
            current = client.bond_network_type(device_id, bond_name)
            print(f"{bond_name} on {device_id} is {current}")
        else:
            current = client.device_network_type(device_id)
            print(f"Device {device_id} is {current}")

        print(f"Recipe for {target}:")
        for n, step in enumerate(steps, start=1):
            print(f"  {n}. {step.describe()}")
        print()

        if not apply_changes:
            print("Dry-run mode; set APPLY=1 to apply changes.")
            return

        try:
            if bond_name:
                device = client.bond_to_network_type(device_id, bond_name, target)
            else:
                device = client.device_to_network_type(device_id, target)
        except MetalConversionNotNeededError as exc:
            print(f"Nothing to do: {exc}")
            return
        except MetalVerificationError as exc:
            print(f"ERROR: conversion did not take effect: {exc}", file=sys.stderr)
            sys.exit(2)
        except MetalConversionStepError as exc:
            print(f"ERROR: {exc}", file=sys.stderr)
            print("  The device may be partially converted; re-run to resume.", file=sys.stderr)
            sys.exit(3)
        except MetalError as exc:
            print(f"ERROR: {exc}", file=sys.stderr)
            sys.exit(1)

        print("Final port state:")
        for port in device.ports:
            print(f"  {port.name:<6} {port.network_type!s:<18} bonded={port.bonded}")


if __name__ == "__main__":
    main()
