"""Append-only constraint network.

A ConstraintSystem records everything a circuit definition produces:

- wires: native field slots, either named inputs or hint outputs
- hints: ordered witness-computation steps (wire values derived from earlier
  wire values by plain Python functions)
- constraints: rank-1 relations A * B == C over linear expressions, and range
  checks 0 <= v < 2^bits

Nothing in the network is ever mutated after it is appended. Solving an
assignment replays the hints in order and checks every constraint, so a
wrong witness is reported at solve time rather than while building.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Mapping, Optional, Tuple, Union

from verifier_gadgets.errors import MissingAssignmentError, UnsatisfiedConstraintError

logger = logging.getLogger(__name__)

# --- Type Aliases ---
HintFunction = Callable[[int, List[int]], List[int]]
"""hint(native_modulus, input_values) -> output_values"""


class Variable:
    """Linear expression constant + sum(coeff * wire) over the native field.

    Variables are values: the term mapping is never modified after
    construction, so two variables may safely share it.
    """

    __slots__ = ("terms", "constant")

    def __init__(self, terms: Optional[Dict[int, int]] = None, constant: int = 0) -> None:
        self.terms: Dict[int, int] = terms if terms is not None else {}
        self.constant = constant

    @property
    def is_constant(self) -> bool:
        return not self.terms

    def __repr__(self) -> str:
        if self.is_constant:
            return f"Variable({self.constant})"
        terms = " + ".join(f"{c}*w{w}" for w, c in self.terms.items())
        return f"Variable({terms} + {self.constant})"


Operand = Union[Variable, int]


@dataclass(frozen=True)
class R1C:
    """Rank-1 constraint a * b == c."""

    a: Variable
    b: Variable
    c: Variable
    label: str = ""


@dataclass(frozen=True)
class RangeCheck:
    """Range constraint 0 <= v < 2^bits."""

    v: Variable
    bits: int
    label: str = ""


@dataclass(frozen=True)
class Hint:
    """Witness computation step writing `outputs` from the values of `inputs`."""

    fn: HintFunction
    inputs: Tuple[Variable, ...]
    outputs: Tuple[int, ...]
    name: str = ""


Constraint = Union[R1C, RangeCheck]


class ConstraintSystem:
    """Storage for one circuit's wires, hints and constraints.

    Args:
        field: galois prime field class of the native field
    """

    def __init__(self, field) -> None:
        self.field = field
        self.modulus = int(field.order)
        self.n_wires = 0
        self.inputs: Dict[str, int] = {}
        self.public_inputs: List[str] = []
        self.hints: List[Hint] = []
        self.constraints: List[Constraint] = []

    # --- Construction ---

    def new_wire(self) -> int:
        wire = self.n_wires
        self.n_wires += 1
        return wire

    def add_input(self, name: str, public: bool) -> int:
        if name in self.inputs:
            raise ValueError(f"Input '{name}' already declared")
        wire = self.new_wire()
        self.inputs[name] = wire
        if public:
            self.public_inputs.append(name)
        return wire

    def add_hint(self, hint: Hint) -> None:
        self.hints.append(hint)

    def add_constraint(self, constraint: Constraint) -> None:
        self.constraints.append(constraint)

    @property
    def n_range_checks(self) -> int:
        return sum(1 for c in self.constraints if isinstance(c, RangeCheck))

    # --- Solving ---

    def solve(self, assignment: Mapping[str, int]) -> "Witness":
        """Compute every wire from the input assignment and check all constraints.

        Args:
            assignment: Value for each declared input, keyed by input name

        Returns:
            Witness holding the value of every wire

        Raises:
            MissingAssignmentError: If an input has no value
            UnsatisfiedConstraintError: If any constraint fails
        """
        m = self.modulus
        values: List[Optional[int]] = [None] * self.n_wires
        for name, wire in self.inputs.items():
            if name not in assignment:
                raise MissingAssignmentError(name)
            values[wire] = int(assignment[name]) % m

        witness = Witness(m, values)
        for hint in self.hints:
            in_values = [witness.evaluate(v) for v in hint.inputs]
            out_values = hint.fn(m, in_values)
            if len(out_values) != len(hint.outputs):
                raise ValueError(
                    f"Hint '{hint.name}' returned {len(out_values)} values, expected {len(hint.outputs)}"
                )
            for wire, value in zip(hint.outputs, out_values):
                values[wire] = int(value) % m

        for index, constraint in enumerate(self.constraints):
            if isinstance(constraint, R1C):
                a = witness.evaluate(constraint.a)
                b = witness.evaluate(constraint.b)
                c = witness.evaluate(constraint.c)
                if (a * b - c) % m != 0:
                    raise UnsatisfiedConstraintError(index, constraint.label, f"{a} * {b} != {c}")
            else:
                v = witness.evaluate(constraint.v)
                if v >> constraint.bits:
                    raise UnsatisfiedConstraintError(
                        index, constraint.label, f"{v} does not fit in {constraint.bits} bits"
                    )

        logger.debug("Solved %d constraints over %d wires", len(self.constraints), self.n_wires)
        return witness


class Witness:
    """Solved wire values of a ConstraintSystem."""

    def __init__(self, modulus: int, values: List[Optional[int]]) -> None:
        self.modulus = modulus
        self.values = values

    def evaluate(self, v: Operand) -> int:
        """Value of a variable (or integer constant) under this witness."""
        if isinstance(v, int):
            return v % self.modulus
        acc = v.constant
        for wire, coeff in v.terms.items():
            acc += coeff * self.values[wire]
        return acc % self.modulus
