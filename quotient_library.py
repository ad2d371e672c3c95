import re
from os import PathLike
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from quotient import TGQuotient, TranslationGroupCache
from subgroup_of_free_group import SubgroupOfFreeGroup
from subgroup_oracle import SubgroupOracle
from triangle_group import ProperTriangleGroup, Signature, signature_of

_ENTRY = re.compile(
    r"^\[\s*(\d+)\s*,\s*(\d+)\s*,\s*(\d+)\s*\]\s*([RC])(\d+)\.(\d+)\s*:\s*(.*)$"
)


class QuotientLibrary:
    """
    A fixed list of triangle-group quotients, in the spirit of Conder's lists of
    regular maps.

    The text format has one quotient per line::

        [4, 4, 2] R1.2 : x*y^-1

    giving the signature, ``R`` (reflexible, i.e. mirror-symmetric) or ``C``
    (chiral), ``genus.number`` and the relators that have to be added to the
    triangle group presentation. Blank lines and lines starting with ``#`` are
    ignored.
    """

    def __init__(self, quotients: Iterable[TGQuotient] = ()):
        self._quotients: Dict[Signature, Dict[Tuple[int, int], TGQuotient]] = {}
        for quotient in quotients:
            self.add(quotient)

    def add(self, quotient: TGQuotient):
        if quotient.number is None:
            raise ValueError(f"Library quotients must be numbered: {quotient}")
        entries = self._quotients.setdefault(quotient.signature, {})
        key = (quotient.genus, quotient.number)
        if key in entries:
            raise ValueError(f"Duplicate library entry {quotient.name()}")
        entries[key] = quotient

    @staticmethod
    def parse(text: str) -> "QuotientLibrary":
        library = QuotientLibrary()
        for lineno, line in enumerate(text.splitlines(), 1):
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            match = _ENTRY.match(line)
            if match is None:
                raise ValueError(f"Malformed library line {lineno}: {line!r}")
            r, q, p, kind, genus, number, relators = match.groups()
            group = ProperTriangleGroup.get((int(r), int(q), int(p)))
            words = [group.parse(w) for w in relators.split(",") if w.strip()]
            library.add(
                TGQuotient(
                    group,
                    int(genus),
                    int(number),
                    words,
                    mirror_symmetric=(kind == "R"),
                )
            )
        return library

    @staticmethod
    def from_file(path: str | PathLike) -> "QuotientLibrary":
        with open(path) as f:
            return QuotientLibrary.parse(f.read())

    def format(self) -> str:
        lines = []
        for signature in sorted(self._quotients):
            for _key, quotient in sorted(self._quotients[signature].items()):
                r, q, p = signature
                kind = "R" if quotient.is_mirror_symmetric() else "C"
                relators = ", ".join(w.format() for w in quotient.relators)
                lines.append(
                    f"[{r}, {q}, {p}] {kind}{quotient.genus}.{quotient.number} : {relators}"
                )
        return "\n".join(lines) + "\n"

    def signatures(self) -> List[Signature]:
        return sorted(self._quotients)

    def __len__(self) -> int:
        return sum(len(entries) for entries in self._quotients.values())

    def __iter__(self) -> Iterator[TGQuotient]:
        for signature in self.signatures():
            for _key, quotient in sorted(self._quotients[signature].items()):
                yield quotient

    def list_quotients(
        self, signature: Signature | ProperTriangleGroup, genus_bound: int
    ) -> List[TGQuotient]:
        entries = self._quotients.get(signature_of(signature), {})
        return [
            quotient
            for key, quotient in sorted(entries.items())
            if quotient.genus <= genus_bound
        ]

    def quotient(
        self, signature: Signature | ProperTriangleGroup, genus: int, number: int
    ) -> TGQuotient:
        try:
            return self._quotients[signature_of(signature)][(genus, number)]
        except KeyError:
            raise ValueError(
                f"No quotient {genus}.{number} of signature {signature_of(signature)}"
            ) from None

    def identify(
        self,
        triangle_group: ProperTriangleGroup,
        translation_group: SubgroupOfFreeGroup,
        *,
        oracle: Optional[SubgroupOracle] = None,
        cache: Optional[TranslationGroupCache] = None,
    ) -> Optional[TGQuotient]:
        oracle = oracle or SubgroupOracle()
        genus = triangle_group.genus(translation_group.index())
        for (g, _number), quotient in sorted(
            self._quotients.get(triangle_group.signature, {}).items()
        ):
            if g != genus:
                continue
            if oracle.equal(quotient.translation_group(cache), translation_group):
                return quotient
        return None

    def quotient_from_translation_group(
        self,
        triangle_group: ProperTriangleGroup,
        translation_group: SubgroupOfFreeGroup,
        *,
        oracle: Optional[SubgroupOracle] = None,
        cache: Optional[TranslationGroupCache] = None,
    ) -> TGQuotient:
        known = self.identify(
            triangle_group, translation_group, oracle=oracle, cache=cache
        )
        if known is not None:
            return known
        return TGQuotient.from_translation_group(triangle_group, translation_group)
