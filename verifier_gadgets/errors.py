"""Error types raised by the gadget layer.

Two classes of failure exist:

1. Construction-time configuration errors (ConfigurationError): wrong native
   modulus for a hash/curve parameterization, malformed curve or field
   descriptors. Raised immediately, before any constraint is produced.

2. Witness-time unsatisfiability (UnsatisfiedConstraintError): a point that is
   not on the curve, an out-of-range limb, the inverse of zero. Building the
   circuit never raises for these; they surface only when a concrete
   assignment is checked against the compiled constraint system.
"""


class ConfigurationError(ValueError):
    """A gadget was constructed with parameters it cannot soundly support."""


class UnsatisfiedConstraintError(ValueError):
    """A witness does not satisfy one of the recorded constraints.

    Attributes:
        index: Position of the failing constraint in the constraint list
        label: Human-readable origin of the constraint
    """

    def __init__(self, index: int, label: str, detail: str) -> None:
        self.index = index
        self.label = label
        super().__init__(f"constraint #{index} ({label or 'unlabeled'}) is not satisfied: {detail}")


class MissingAssignmentError(KeyError):
    """A circuit input has no value in the supplied assignment."""
