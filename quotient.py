from typing import TYPE_CHECKING, Optional, Sequence, Tuple

from finite_group import FiniteGroup
from free_group import FreeGroupElement
from subgroup_of_free_group import SubgroupOfFreeGroup
from triangle_group import ProperTriangleGroup, Signature
from utils import KeyedCache

if TYPE_CHECKING:
    from subgroup_oracle import SubgroupOracle

QuotientId = Tuple[int, Optional[int]]


class TranslationGroupCache(KeyedCache[Tuple, SubgroupOfFreeGroup]):
    """Constructed translation groups, keyed by signature and defining relators."""


class TGQuotient:
    """
    A finite quotient of a proper triangle group, ``Δ⁺ / Γ``.

    It is identified by ``(genus, number)`` as in Conder's lists. The translation
    group ``Γ`` is either given by extra relators (library entries) or directly
    as a subgroup (quotients produced by intersecting translation groups, whose
    number is ``None`` unless the library knows them).
    """

    def __init__(
        self,
        triangle_group: ProperTriangleGroup,
        genus: int,
        number: Optional[int],
        relators: Sequence[FreeGroupElement] = (),
        *,
        mirror_symmetric: Optional[bool] = None,
        translation_group: Optional[SubgroupOfFreeGroup] = None,
    ):
        if translation_group is None and not relators:
            raise ValueError("A quotient needs relators or a translation group")
        for relator in relators:
            if relator.free_group != triangle_group.free_group:
                raise ValueError(f"Relator {relator} not in {triangle_group.free_group}")
        self._triangle_group = triangle_group
        self._genus = int(genus)
        self._number = None if number is None else int(number)
        self._relators = tuple(relators)
        self._mirror_symmetric = mirror_symmetric
        self._translation_group = translation_group

    @staticmethod
    def from_translation_group(
        triangle_group: ProperTriangleGroup,
        translation_group: SubgroupOfFreeGroup,
        number: Optional[int] = None,
    ) -> "TGQuotient":
        genus = triangle_group.genus(translation_group.index())
        return TGQuotient(
            triangle_group,
            genus.numerator // genus.denominator,
            number,
            translation_group=translation_group,
        )

    @property
    def triangle_group(self) -> ProperTriangleGroup:
        return self._triangle_group

    @property
    def signature(self) -> Signature:
        return self._triangle_group.signature

    @property
    def genus(self) -> int:
        return self._genus

    @property
    def number(self) -> Optional[int]:
        return self._number

    @property
    def relators(self) -> Tuple[FreeGroupElement, ...]:
        return self._relators

    def identifier(self) -> QuotientId:
        return self._genus, self._number

    def name(self) -> str:
        prefix = "R" if self._mirror_symmetric in (None, True) else "C"
        number = "?" if self._number is None else str(self._number)
        return f"{prefix}{self._genus}.{number}"

    def __repr__(self) -> str:
        return f"TGQuotient({self.name()} of {self._triangle_group})"

    def cache_key(self) -> Tuple:
        return (
            self.signature,
            tuple(relator.format() for relator in self._relators),
        )

    def translation_group(
        self, cache: Optional[TranslationGroupCache] = None
    ) -> SubgroupOfFreeGroup:
        if self._translation_group is not None:
            return self._translation_group
        if cache is None:
            self._translation_group = self._triangle_group.translation_group(
                list(self._relators)
            )
            return self._translation_group
        return cache.get(
            self.cache_key(),
            lambda: self._triangle_group.translation_group(list(self._relators)),
        )

    def order(self, cache: Optional[TranslationGroupCache] = None) -> int:
        return self.translation_group(cache).index()

    def group(self, cache: Optional[TranslationGroupCache] = None) -> FiniteGroup:
        return FiniteGroup.quotient(
            self._triangle_group.full_subgroup(), self.translation_group(cache)
        )

    def is_smooth(self, cache: Optional[TranslationGroupCache] = None) -> bool:
        # x, y and x*y keep their orders, i.e. the translation group is torsion-free.
        group = self.group(cache)
        x, y, z = self._triangle_group.gens()
        return [group.element(g).order() for g in (x, y, z)] == list(self.signature)

    def is_mirror_symmetric(
        self, cache: Optional[TranslationGroupCache] = None
    ) -> bool:
        if self._mirror_symmetric is None:
            translation_group = self.translation_group(cache)
            image = translation_group.image(self._triangle_group.mirror())
            self._mirror_symmetric = image == translation_group
        return self._mirror_symmetric

    def same_translation_group(
        self,
        other: "TGQuotient",
        oracle: Optional["SubgroupOracle"] = None,
        cache: Optional[TranslationGroupCache] = None,
    ) -> bool:
        if self.signature != other.signature:
            return False
        if oracle is None:
            return self.translation_group(cache) == other.translation_group(cache)
        return oracle.equal(self.translation_group(cache), other.translation_group(cache))
