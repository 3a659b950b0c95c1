"""Recipe table: the ordered steps that move a bond to each network type.

A recipe is a tuple of :class:`RecipeStep`.  Steps name an action and the
ports it applies to; :class:`~metal_ports.reconcile.engine.NetworkTypeReconciler`
resolves the ports against its current snapshot and runs the action on each.
``REFRESH`` replaces the snapshot with a fresh ``get_device`` result.

The same recipes serve the device-wide and single-bond conversions; the
scope only changes which physical ports ``ETH_PORTS``, ``ODD_PORTS`` and
``NON_ODD_PORTS`` cover.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from metal_ports.model.port import NetworkType


class StepAction(str, Enum):
    BOND = "bond"
    DISBOND = "disbond"
    TO_LAYER2 = "to_layer2"
    TO_LAYER3 = "to_layer3"
    REFRESH = "refresh"


class PortSelector(str, Enum):
    """Which ports of the current snapshot a step applies to."""

    NONE = "none"
    BOND_PORT = "bond_port"        # the managed bond port itself
    BOND_MEMBERS = "bond_members"  # physical ports naming the bond
    ETH_PORTS = "eth_ports"        # all physical ports in scope
    ODD_PORTS = "odd_ports"        # policy.odd_port_names within scope
    NON_ODD_PORTS = "non_odd_ports"  # ports in scope that stay bonded for hybrid


@dataclass(frozen=True)
class RecipeStep:
    """One entry of a recipe.

    Attributes:
        action: What to do.
        selector: Which ports to do it to.
        bulk: Passed to bond/disbond; ``False`` acts on each port alone.
    """

    action: StepAction
    selector: PortSelector = PortSelector.NONE
    bulk: bool = False

    def describe(self) -> str:
        if self.action is StepAction.REFRESH:
            return "refresh device"
        suffix = " (bulk)" if self.bulk else ""
        return f"{self.action.value} {self.selector.value}{suffix}"


REFRESH = RecipeStep(StepAction.REFRESH)

_LAYER3: tuple[RecipeStep, ...] = (
    RecipeStep(StepAction.DISBOND, PortSelector.BOND_MEMBERS),
    REFRESH,
    RecipeStep(StepAction.TO_LAYER3, PortSelector.BOND_PORT),
    REFRESH,
    RecipeStep(StepAction.BOND, PortSelector.ETH_PORTS),
)

_HYBRID: tuple[RecipeStep, ...] = (
    RecipeStep(StepAction.DISBOND, PortSelector.BOND_MEMBERS),
    REFRESH,
    RecipeStep(StepAction.TO_LAYER3, PortSelector.BOND_PORT),
    REFRESH,
    RecipeStep(StepAction.BOND, PortSelector.NON_ODD_PORTS),
    RecipeStep(StepAction.DISBOND, PortSelector.ODD_PORTS),
)

_LAYER2_INDIVIDUAL: tuple[RecipeStep, ...] = (
    RecipeStep(StepAction.TO_LAYER2, PortSelector.BOND_PORT),
    REFRESH,
    RecipeStep(StepAction.DISBOND, PortSelector.BOND_MEMBERS),
)

_LAYER2_BONDED: tuple[RecipeStep, ...] = (
    RecipeStep(StepAction.TO_LAYER2, PortSelector.BOND_PORT),
    REFRESH,
    RecipeStep(StepAction.BOND, PortSelector.ETH_PORTS),
)

DEVICE_RECIPES: dict[NetworkType, tuple[RecipeStep, ...]] = {
    NetworkType.LAYER3: _LAYER3,
    NetworkType.HYBRID: _HYBRID,
    NetworkType.LAYER2_INDIVIDUAL: _LAYER2_INDIVIDUAL,
    NetworkType.LAYER2_BONDED: _LAYER2_BONDED,
}

# A single bond may also be asked for hybrid-bonded, which is reached the
# same way as layer3.
BOND_RECIPES: dict[NetworkType, tuple[RecipeStep, ...]] = {
    **DEVICE_RECIPES,
    NetworkType.HYBRID_BONDED: _LAYER3,
}
