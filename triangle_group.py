from fractions import Fraction
from typing import Dict, List, Optional, Tuple

from free_group import FreeGroup, FreeGroupElement
from homomorphism import FreeGroupEndomorphism
from subgroup_of_free_group import SubgroupOfFreeGroup

Signature = Tuple[int, int, int]


class ProperTriangleGroup:
    """
    The orientation-preserving triangle group
    ``<x, y | x^r, y^q, (x*y)^p>`` of signature ``(r, q, p)``.

    Subgroups are handled through their preimages in the free group on ``x`` and
    ``y``; one instance is shared per signature (see `get`) so that all of them
    live in the same free group and can be compared.
    """

    _instances: Dict[Signature, "ProperTriangleGroup"] = {}

    def __init__(self, r: int, q: int, p: int):
        if min(r, q, p) < 2:
            raise ValueError(f"Invalid triangle group signature {(r, q, p)}")
        self.signature: Signature = (r, q, p)
        self.free_group = FreeGroup(("x", "y"), name=f"F({r}, {q}, {p})")

    @staticmethod
    def get(signature: Signature) -> "ProperTriangleGroup":
        signature = tuple(int(n) for n in signature)  # type: ignore[assignment]
        if len(signature) != 3:
            raise ValueError(f"A signature has three entries, got {signature}")
        group = ProperTriangleGroup._instances.get(signature)
        if group is None:
            group = ProperTriangleGroup(*signature)
            ProperTriangleGroup._instances[signature] = group
        return group

    def __repr__(self) -> str:
        r, q, p = self.signature
        return f"ProperTriangleGroup({r}, {q}, {p})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ProperTriangleGroup):
            return False
        return self.signature == other.signature

    def __hash__(self) -> int:
        return hash(("ProperTriangleGroup", self.signature))

    def gens(self) -> Tuple[FreeGroupElement, FreeGroupElement, FreeGroupElement]:
        x, y = self.free_group.gens()
        return x, y, ~(x * y)

    def relators(self) -> List[FreeGroupElement]:
        r, q, p = self.signature
        x, y = self.free_group.gens()
        return [x**r, y**q, (x * y) ** p]

    def euler_characteristic(self) -> Fraction:
        r, q, p = self.signature
        return Fraction(1, r) + Fraction(1, q) + Fraction(1, p) - 1

    def is_hyperbolic(self) -> bool:
        return self.euler_characteristic() < 0

    def genus(self, order: int) -> Fraction:
        # Riemann-Hurwitz: 2 - 2g = order * chi. Integral for smooth quotients.
        return 1 - Fraction(order) * self.euler_characteristic() / 2

    def mirror(self) -> FreeGroupEndomorphism:
        # x -> x^-1, y -> y^-1: conjugation by a reflection, up to an inner automorphism.
        x, y = self.free_group.gens()
        return FreeGroupEndomorphism(self.free_group, (~x, ~y))

    def full_subgroup(self) -> SubgroupOfFreeGroup:
        return self.free_group.full_subgroup()

    def translation_group(
        self, relators: List[FreeGroupElement]
    ) -> SubgroupOfFreeGroup:
        # The kernel of the quotient defined by the extra relators.
        return self.free_group.normal_subgroup(self.relators() + relators)

    def parse(self, text: str) -> FreeGroupElement:
        return self.free_group.parse(text)


def signature_of(signature: Optional[Signature | ProperTriangleGroup]) -> Signature:
    if isinstance(signature, ProperTriangleGroup):
        return signature.signature
    if signature is None:
        raise ValueError("A triangle group signature is required")
    return tuple(int(n) for n in signature)  # type: ignore[return-value]
