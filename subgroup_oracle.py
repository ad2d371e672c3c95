from typing import Any

from free_group import FreeGroup
from subgroup_of_free_group import SubgroupOfFreeGroup


class SubgroupOracle:
    """
    Answers the subgroup questions asked by the sequence machinery.

    Handles are opaque to callers; this implementation works on
    `SubgroupOfFreeGroup` graphs. Any object providing the same methods can be
    passed wherever an oracle is accepted.
    """

    def contains(self, big: Any, small: Any) -> bool:
        return big.contains_subgroup(small)

    def equal(self, a: Any, b: Any) -> bool:
        return self.contains(a, b) and self.contains(b, a)

    def is_normal_subgroup(self, h: Any, k: Any) -> bool:
        # Is h a normal subgroup of k?
        if not self.contains(k, h):
            return False
        return h.is_normal_in(k)

    def is_proper_normal_subgroup(self, h: Any, k: Any) -> bool:
        return self.is_normal_subgroup(h, k) and not self.contains(h, k)

    def is_normal_in_ambient(self, h: Any, ambient: FreeGroup) -> bool:
        return h.is_normal_in(ambient)

    def intersect(self, h: SubgroupOfFreeGroup, k: SubgroupOfFreeGroup) -> Any:
        return SubgroupOfFreeGroup.intersect_subgroups(h.free_group, [h, k])

    def index(self, h: Any, k: Any) -> int:
        # [k : h], for h contained in k.
        return h.index_in(k)
