"""Circuit definitions and the compile/solve harness.

A circuit is a class with a define(api) method that declares its inputs and
emits constraints through the Builder. Compiling runs define once against a
fresh constraint network; the resulting ConstraintSystem can then check any
number of assignments.

Usage:
    class SquareCircuit(Circuit):
        def define(self, api: Builder) -> None:
            x = api.secret_input("x")
            api.assert_is_equal(api.mul(x, x), api.public_input("y"))

    cs = compile_circuit(SquareCircuit(), BN254)
    cs.solve({"x": 3, "y": 9})
"""

import logging
from abc import ABC, abstractmethod
from typing import Mapping

from verifier_gadgets.constraints.api import Builder
from verifier_gadgets.constraints.system import ConstraintSystem, Witness

logger = logging.getLogger(__name__)


class Circuit(ABC):
    """A circuit definition. Subclasses emit their constraints in define()."""

    @abstractmethod
    def define(self, api: Builder) -> None:
        """Declare inputs and constraints on api."""
        pass


def compile_circuit(circuit: Circuit, field) -> ConstraintSystem:
    """Run circuit.define against a new constraint network over field.

    Every call builds a separate network; networks are never shared between
    unrelated circuits.
    """
    api = Builder(field)
    circuit.define(api)
    cs = api.cs
    logger.debug(
        "Compiled %s: %d inputs, %d wires, %d hints, %d constraints (%d range checks)",
        type(circuit).__name__,
        len(cs.inputs),
        cs.n_wires,
        len(cs.hints),
        len(cs.constraints),
        cs.n_range_checks,
    )
    return cs


def is_solved(circuit: Circuit, assignment: Mapping[str, int], field) -> Witness:
    """Compile circuit and check assignment against it.

    Raises:
        UnsatisfiedConstraintError: If the assignment violates a constraint
    """
    return compile_circuit(circuit, field).solve(assignment)
