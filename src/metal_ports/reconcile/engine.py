"""Network type reconciliation engine.

Moves a device (or one bond on it) to a target network type by walking the
recipe for that target from :mod:`metal_ports.reconcile.recipes`:

1. Read the current type off the snapshot; stop early if no transition is
   required.
2. Run each step in order.  Port steps act on the current snapshot through
   :class:`~metal_ports.client.port_ops.PortOperations`; ``REFRESH`` steps
   fetch the device again.
3. Fetch the device one last time and verify the type it reports.

Steps are not transactional.  The first failing step aborts the recipe and
nothing is rolled back; every primitive is guarded, so calling
:meth:`NetworkTypeReconciler.convert` again resumes from wherever the device
was left.  Concurrent conversions of the same device are not supported.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass

from metal_ports.client.directory import DeviceDirectory
from metal_ports.client.errors import (
    MetalConversionCancelledError,
    MetalConversionNotNeededError,
    MetalConversionStepError,
    MetalError,
    MetalPortNotFoundError,
    MetalVerificationError,
)
from metal_ports.client.port_ops import PortOperations
from metal_ports.model.config import ReconcilePolicy
from metal_ports.model.device import Device
from metal_ports.model.port import NetworkType, Port
from metal_ports.reconcile.recipes import (
    BOND_RECIPES,
    DEVICE_RECIPES,
    PortSelector,
    RecipeStep,
    StepAction,
)
from metal_ports.utils.topology import (
    bond_network_type,
    device_network_type,
    eth_ports_in_bond,
    transition_required,
)

logger = logging.getLogger(__name__)

_VERIFY_STEP: str = "verify final network type"


@dataclass(frozen=True)
class _Scope:
    """Which physical ports a conversion may touch.

    Attributes:
        bond_name: The bond port being converted.
        whole_device: ``True`` for :meth:`NetworkTypeReconciler.convert`,
            where every physical port is in scope; ``False`` limits the scope
            to the bond's members.
    """

    bond_name: str
    whole_device: bool

    def eth_ports(self, device: Device) -> list[Port]:
        if self.whole_device:
            return device.eth_ports
        return eth_ports_in_bond(device, self.bond_name)


class NetworkTypeReconciler:
    """Drives a device's bond and physical ports to a target network type.

    Args:
        directory: Source of device snapshots and the port primitives.
        policy: Bond name, layer-3 address requests and hybrid port names.
    """

    def __init__(self, directory: DeviceDirectory, policy: ReconcilePolicy | None = None) -> None:
        self._directory = directory
        self._policy = policy or ReconcilePolicy()
        self._ops = PortOperations(directory, self._policy)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def convert(
        self,
        device: Device,
        target: NetworkType | str,
        *,
        cancel: threading.Event | None = None,
    ) -> Device:
        """Convert the whole device to *target*.

        Args:
            device: Fresh snapshot of the device.
            target: Any network type except ``hybrid-bonded``.
            cancel: Optional event; when set, the conversion aborts before
                the next step.

        Returns:
            The device as observed after the conversion.

        Raises:
            ValueError: If *target* is not a requestable network type.
            MetalPortNotFoundError: If *device* has no managed bond port.
            MetalConversionNotNeededError: If no transition is required.
                Nothing was sent.
            MetalConversionStepError: If a step failed or was cancelled.
            MetalVerificationError: If the device did not end up in *target*.
        """
        target = NetworkType(target)
        if target not in DEVICE_RECIPES:
            raise ValueError(f"{target} is observed only and cannot be requested")

        bond_name = self._policy.bond_name
        initial = device_network_type(device, bond_name)
        if not transition_required(initial, target):
            raise MetalConversionNotNeededError(device.id, initial.value, target.value)

        logger.info("Converting device %s from %s to %s", device.id, initial, target)
        final_device = self._run(
            device, target, DEVICE_RECIPES[target], _Scope(bond_name, True), cancel
        )
        final = device_network_type(final_device, bond_name)
        if final != target:
            logger.warning(
                "Device %s did not reach %s (initial=%s, final=%s)",
                device.id, target, initial, final,
            )
            raise MetalVerificationError(device.id, initial.value, target.value, final.value)

        logger.info("Device %s converted to %s", device.id, target)
        return final_device

    def convert_bond(
        self,
        device: Device,
        bond_name: str,
        target: NetworkType | str,
        *,
        cancel: threading.Event | None = None,
    ) -> Device:
        """Convert one bond, and only its member ports, to *target*.

        ``hybrid-bonded`` is accepted and reached like ``layer3``; verification
        treats the two as equivalent.

        Raises:
            ValueError: If *target* is not a network type.
            MetalPortNotFoundError: If *device* has no port named *bond_name*.
            MetalConversionNotNeededError: If no transition is required.
            MetalConversionStepError: If a step failed or was cancelled.
            MetalVerificationError: If the bond did not end up in *target*.
        """
        target = NetworkType(target)
        initial = bond_network_type(device, bond_name)
        if not transition_required(initial, target):
            raise MetalConversionNotNeededError(device.id, initial.value, target.value)

        logger.info(
            "Converting %s on device %s from %s to %s", bond_name, device.id, initial, target
        )
        final_device = self._run(
            device, target, BOND_RECIPES[target], _Scope(bond_name, False), cancel
        )
        final = bond_network_type(final_device, bond_name)
        if transition_required(final, target):
            logger.warning(
                "%s on device %s did not reach %s (initial=%s, final=%s)",
                bond_name, device.id, target, initial, final,
            )
            raise MetalVerificationError(device.id, initial.value, target.value, final.value)

        logger.info("%s on device %s converted to %s", bond_name, device.id, target)
        return final_device

    @staticmethod
    def recipe_for(target: NetworkType | str, *, bond: bool = False) -> tuple[RecipeStep, ...]:
        """Return the steps :meth:`convert` (or :meth:`convert_bond`) runs for *target*.

        Raises:
            ValueError: If no recipe exists for *target*.
        """
        target = NetworkType(target)
        recipes = BOND_RECIPES if bond else DEVICE_RECIPES
        if target not in recipes:
            raise ValueError(f"No recipe for {target}")
        return recipes[target]

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _run(
        self,
        device: Device,
        target: NetworkType,
        recipe: tuple[RecipeStep, ...],
        scope: _Scope,
        cancel: threading.Event | None,
    ) -> Device:
        """Run *recipe*, then return a freshly fetched device for verification."""
        snapshot = device
        for index, step in enumerate(recipe):
            self._check_cancel(cancel, device.id, target, step.describe(), index)
            logger.debug("Device %s step %d: %s", device.id, index + 1, step.describe())
            try:
                snapshot = self._apply(step, snapshot, scope)
            except MetalError as exc:
                logger.warning(
                    "Device %s: step %d (%s) failed: %s", device.id, index + 1, step.describe(), exc
                )
                raise MetalConversionStepError(
                    device_id=device.id,
                    target=target.value,
                    step=step.describe(),
                    completed_steps=index,
                    cause=exc,
                ) from exc

        self._check_cancel(cancel, device.id, target, _VERIFY_STEP, len(recipe))
        try:
            final_device = self._directory.get_device(device.id)
            final_device.port_by_name(scope.bond_name)
        except MetalError as exc:
            raise MetalConversionStepError(
                device_id=device.id,
                target=target.value,
                step=_VERIFY_STEP,
                completed_steps=len(recipe),
                cause=exc,
            ) from exc
        return final_device

    def _apply(self, step: RecipeStep, snapshot: Device, scope: _Scope) -> Device:
        """Run one step against *snapshot*; return the snapshot for the next step."""
        if step.action is StepAction.REFRESH:
            return self._directory.get_device(snapshot.id)

        for port in self._select(step.selector, snapshot, scope):
            if step.action is StepAction.BOND:
                self._ops.bond(port, step.bulk)
            elif step.action is StepAction.DISBOND:
                self._ops.disbond(port, step.bulk)
            elif step.action is StepAction.TO_LAYER2:
                self._ops.to_layer2(snapshot, port.name)
            elif step.action is StepAction.TO_LAYER3:
                self._ops.to_layer3(snapshot, port.name)
        return snapshot

    def _select(self, selector: PortSelector, snapshot: Device, scope: _Scope) -> list[Port]:
        if selector is PortSelector.BOND_PORT:
            return [snapshot.port_by_name(scope.bond_name)]
        if selector is PortSelector.BOND_MEMBERS:
            return eth_ports_in_bond(snapshot, scope.bond_name)
        if selector is PortSelector.ETH_PORTS:
            return scope.eth_ports(snapshot)
        if selector is PortSelector.ODD_PORTS:
            return self._odd_ports(snapshot, scope)
        if selector is PortSelector.NON_ODD_PORTS:
            names = self._policy.odd_port_names
            return [p for p in scope.eth_ports(snapshot) if p.name not in names]
        return []

    def _odd_ports(self, snapshot: Device, scope: _Scope) -> list[Port]:
        """Ports split out of the bond for ``hybrid``.

        Device-wide, the first policy name must exist.  For a single bond,
        at least one member must carry a policy name.
        """
        names = self._policy.odd_port_names
        ports = [p for p in scope.eth_ports(snapshot) if p.name in names]
        if scope.whole_device:
            if not any(p.name == names[0] for p in ports):
                raise MetalPortNotFoundError(names[0], snapshot.id)
        elif not ports:
            raise MetalPortNotFoundError(names[0], snapshot.id)
        return ports

    @staticmethod
    def _check_cancel(
        cancel: threading.Event | None,
        device_id: str,
        target: NetworkType,
        step: str,
        completed: int,
    ) -> None:
        if cancel is not None and cancel.is_set():
            logger.warning("Device %s: conversion to %s cancelled", device_id, target)
            raise MetalConversionCancelledError(
                device_id=device_id,
                target=target.value,
                step=step,
                completed_steps=completed,
            )
