from typing import TYPE_CHECKING, Any, List

from free_group import FreeGroupElement
from subgroup_of_free_group import SubgroupOfFreeGroup
from utils import instance_cache


if TYPE_CHECKING:

    def lcm(l: List[int]) -> int: ...

else:
    from sympy import lcm


class FiniteGroup:
    """
    The quotient ``lift_group / kernel`` of two subgroups of a free group, with
    ``kernel`` normal and of finite index in ``lift_group``.

    A triangle-group quotient is the case where ``lift_group`` is the whole free
    group on the triangle generators and ``kernel`` the translation group.
    """

    def __init__(
        self, *, lift_group: SubgroupOfFreeGroup, kernel: SubgroupOfFreeGroup, code: str
    ):
        if code != "verified normal and finite index":
            raise ValueError("Use SubgroupOfFreeGroup quotients to build finite groups.")

        self.lift_group = lift_group
        self.kernel = kernel
        self.free_group = lift_group.free_group

    @staticmethod
    def quotient(
        lift_group: SubgroupOfFreeGroup, kernel: SubgroupOfFreeGroup
    ) -> "FiniteGroup":
        if not lift_group.contains_subgroup(kernel):
            raise ValueError("The kernel must be contained in the lift group.")
        if not kernel.has_finite_index_in(lift_group):
            raise NotImplementedError(
                "Quotients by infinite index normal subgroups are not implemented."
            )
        if not kernel.is_normal_in(lift_group):
            raise ValueError("The kernel must be normal in the lift group.")
        return FiniteGroup(
            lift_group=lift_group, kernel=kernel, code="verified normal and finite index"
        )

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, FiniteGroup):
            return False
        return self.lift_group == other.lift_group and self.kernel == other.kernel

    @instance_cache
    def order(self) -> int:
        return self.kernel.index_in(self.lift_group)

    def element(self, word: FreeGroupElement) -> "FiniteGroupElement":
        if not self.lift_group.contains_element(word):
            raise ValueError(f"{word} does not lie in the lift group.")
        return FiniteGroupElement(self.kernel, word)

    @instance_cache
    def gens(self) -> List["FiniteGroupElement"]:
        return [FiniteGroupElement(self.kernel, gen) for gen in self.lift_group.gens()]

    @instance_cache
    def elements(self) -> List["FiniteGroupElement"]:
        return [
            FiniteGroupElement(self.kernel, rep)
            for rep in self.kernel.right_coset_representatives_in(self.lift_group)
        ]

    def identity(self) -> "FiniteGroupElement":
        return FiniteGroupElement(self.kernel, self.free_group.identity())

    @instance_cache
    def is_abelian(self) -> bool:
        return all(
            commutator(a, b) == self.identity()
            for a in self.gens()
            for b in self.gens()
        )

    @instance_cache
    def exponent(self) -> int:
        return int(lcm([g.order() for g in self.elements()]))


def commutator(
    a: "FiniteGroupElement", b: "FiniteGroupElement"
) -> "FiniteGroupElement":
    return a * b * ~a * ~b


class FiniteGroupElement:
    # Elements are cosets of the kernel, identified by their shortlex-minimal label.
    def __init__(self, kernel: SubgroupOfFreeGroup, elem: FreeGroupElement):
        self.kernel = kernel
        self.rep = kernel.coset_label(elem)

    def __mul__(self, other: "FiniteGroupElement") -> "FiniteGroupElement":
        if not self.kernel is other.kernel:
            raise ValueError("Cannot multiply elements from different groups.")
        return FiniteGroupElement(self.kernel, self.rep * other.rep)

    def __invert__(self) -> "FiniteGroupElement":
        return FiniteGroupElement(self.kernel, ~self.rep)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, FiniteGroupElement):
            return False
        return self.kernel is other.kernel and self.rep == other.rep

    def __pow__(self, n: int) -> "FiniteGroupElement":
        return FiniteGroupElement(self.kernel, self.rep**n)

    def is_trivial(self) -> bool:
        return self.kernel.contains_element(self.rep)

    @instance_cache
    def order(self) -> int:
        current = self
        order = 1
        while not current.is_trivial():
            current *= self
            order += 1
        return order

    def __repr__(self) -> str:
        return f"[{self.rep}]"
