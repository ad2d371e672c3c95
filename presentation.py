import hashlib
from typing import Sequence

from free_group import FreeGroup, FreeGroupElement
from subgroup_of_free_group import SubgroupOfFreeGroup
from utils import Cached, cached_value


class FinitelyPresentedGroup(Cached):
    """
    ``<gens | relators>``, on top of a `FreeGroup`.

    Equality of elements is decided in the coset graph of the normal closure of
    the relators, which is only finite (and the test only terminates) for
    finite groups. Word simplification by completion does not need it.
    """

    def __init__(self, free_group: FreeGroup, relators: Sequence[FreeGroupElement]):
        for relator in relators:
            if relator.free_group != free_group:
                raise ValueError(f"Relator {relator} not in free group {free_group}")
        self.free_group = free_group
        self.relators = tuple(relators)
        super().__init__()

    @staticmethod
    def from_strings(
        gens: Sequence[str], relators: Sequence[str]
    ) -> "FinitelyPresentedGroup":
        free_group = FreeGroup(tuple(gens))
        return FinitelyPresentedGroup(
            free_group, [free_group.parse(relator) for relator in relators]
        )

    def __repr__(self) -> str:
        relators = ", ".join(r.format() for r in self.relators)
        return f"<{', '.join(self.free_group.names())} | {relators}>"

    def gens(self):
        return self.free_group.gens()

    def identity(self) -> FreeGroupElement:
        return self.free_group.identity()

    def parse(self, text: str) -> FreeGroupElement:
        return self.free_group.parse(text)

    def content_hash(self) -> str:
        # Equal presentations give equal hashes, also across processes.
        text = "|".join(self.free_group.names()) + "||" + "|".join(
            r.format() for r in self.relators
        )
        return hashlib.sha1(text.encode()).hexdigest()

    @cached_value
    def kernel(self) -> SubgroupOfFreeGroup:
        return self.free_group.normal_subgroup(list(self.relators))

    def order(self) -> int:
        return self.kernel().index()

    def equals(self, a: FreeGroupElement, b: FreeGroupElement) -> bool:
        if a.free_group != self.free_group or b.free_group != self.free_group:
            raise ValueError("Elements must belong to the free group of the presentation")
        return self.kernel().contains_element(a * ~b)
