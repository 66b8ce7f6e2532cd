"""Constraint network: variables, builder API, circuits and solver."""

from .api import Builder
from .circuit import Circuit, compile_circuit, is_solved
from .system import (
    R1C,
    ConstraintSystem,
    Hint,
    Operand,
    RangeCheck,
    Variable,
    Witness,
)

__all__ = [
    "Builder",
    "Circuit",
    "compile_circuit",
    "is_solved",
    "ConstraintSystem",
    "Witness",
    "Variable",
    "Operand",
    "R1C",
    "RangeCheck",
    "Hint",
]
