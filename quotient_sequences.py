import json
import logging
from os import PathLike
from typing import IO, Any, Dict, List, Optional, Protocol, Sequence, Tuple

from adjacency import AdjacencyMatrix
from quotient import QuotientId, TGQuotient, TranslationGroupCache
from subgroup_oracle import SubgroupOracle
from triangle_group import ProperTriangleGroup, Signature, signature_of

logger = logging.getLogger(__name__)

DEFAULT_GENUS_BOUND = 66
MAX_GENUS_BOUND = 101


class QuotientSource(Protocol):
    def list_quotients(
        self, signature: Signature | ProperTriangleGroup, genus_bound: int
    ) -> List[TGQuotient]: ...

    def quotient(
        self, signature: Signature | ProperTriangleGroup, genus: int, number: int
    ) -> TGQuotient: ...


def effective_genus_bound(bound: Any) -> int:
    # Out-of-range bounds fall back to the default rather than failing.
    if isinstance(bound, bool) or not isinstance(bound, int):
        return DEFAULT_GENUS_BOUND
    if not 1 <= bound <= MAX_GENUS_BOUND:
        return DEFAULT_GENUS_BOUND
    return bound


def covering_relation(full: AdjacencyMatrix) -> AdjacencyMatrix:
    # Keeps (i, j) only when no k sits strictly between them.
    res = AdjacencyMatrix(full.size, sparse=full.sparse)
    successors = [set(full.successors(i)) for i in range(full.size)]
    for i, j in full.positions():
        if not any(full[k, j] for k in successors[i] if k != j):
            res[i, j] = full[i, j]
    return res


class QuotientSequences:
    """
    The normal-subgroup relation between all quotients of a triangle group
    with genus at most ``bound``, as found in a quotient library.

    ``adjacency[i, j]`` is 1 when the translation group of ``quotients[j]`` is a
    proper normal subgroup of that of ``quotients[i]``; ``nearest_neighbours``
    keeps only the covering pairs. ``mirror_symmetric[i]`` is 1 for the quotients
    that are symmetric under the reflections of the full triangle group.
    """

    def __init__(
        self,
        signature: Signature,
        bound: int,
        quotients: Sequence[TGQuotient],
        mirror_symmetric: Sequence[int],
        sparse: bool,
        adjacency: AdjacencyMatrix,
        nearest_neighbours: Optional[AdjacencyMatrix] = None,
    ):
        if len(mirror_symmetric) != len(quotients):
            raise ValueError("One mirror-symmetry flag per quotient is required")
        if adjacency.size != len(quotients):
            raise ValueError("The adjacency matrix must have one row per quotient")
        self.signature = signature
        self.bound = bound
        self.quotients = list(quotients)
        self.mirror_symmetric = [int(bool(flag)) for flag in mirror_symmetric]
        self.sparse = sparse
        self.adjacency = adjacency.as_sparse() if sparse else adjacency.as_dense()
        if nearest_neighbours is None:
            nearest_neighbours = covering_relation(self.adjacency)
        self.nearest_neighbours = (
            nearest_neighbours.as_sparse() if sparse else nearest_neighbours.as_dense()
        )

    @staticmethod
    def build(
        library: QuotientSource,
        signature: Signature | ProperTriangleGroup,
        *,
        bound_by_genus: Any = DEFAULT_GENUS_BOUND,
        sparse: bool = False,
        oracle: Optional[SubgroupOracle] = None,
        cache: Optional[TranslationGroupCache] = None,
    ) -> "QuotientSequences":
        oracle = oracle or SubgroupOracle()
        cache = cache if cache is not None else TranslationGroupCache()
        signature = signature_of(signature)
        bound = effective_genus_bound(bound_by_genus)
        if bound != bound_by_genus:
            logger.debug("Genus bound %r replaced by %d", bound_by_genus, bound)

        quotients = library.list_quotients(signature, bound)
        logger.debug(
            "Building adjacency of %d quotients of %s up to genus %d",
            len(quotients),
            signature,
            bound,
        )
        groups = [q.translation_group(cache) for q in quotients]
        mirror = [int(q.is_mirror_symmetric(cache)) for q in quotients]

        adjacency = AdjacencyMatrix(len(quotients), sparse=sparse)
        for i, bigger in enumerate(groups):
            for j, smaller in enumerate(groups):
                if i != j and oracle.is_proper_normal_subgroup(smaller, bigger):
                    adjacency[i, j] = 1
            logger.debug("Row %d of %d done", i + 1, len(groups))

        return QuotientSequences(
            signature, bound, quotients, mirror, sparse, adjacency
        )

    def __len__(self) -> int:
        return len(self.quotients)

    def __repr__(self) -> str:
        return (
            f"QuotientSequences({self.signature}, bound={self.bound}, "
            f"{len(self.quotients)} quotients)"
        )

    def identifiers(self) -> List[QuotientId]:
        return [q.identifier() for q in self.quotients]

    def position(self, quotient: int | Tuple[int, int] | List[int]) -> Optional[int]:
        if isinstance(quotient, int) and not isinstance(quotient, bool):
            return quotient if 0 <= quotient < len(self.quotients) else None
        try:
            genus, number = quotient  # type: ignore[misc]
        except (TypeError, ValueError):
            return None
        try:
            return self.identifiers().index((genus, number))
        except ValueError:
            return None

    def longest_sequence(
        self,
        *,
        quotient: Optional[int | Tuple[int, int] | List[int]] = None,
        non_mirror_symmetric: bool = False,
    ) -> List[QuotientId]:
        """
        A longest chain of strictly decreasing translation groups, as
        ``(genus, number)`` pairs.

        Only mirror-symmetric quotients take part unless ``non_mirror_symmetric``
        is set. With ``quotient`` (an index into `quotients` or a
        ``(genus, number)`` pair) the chain starts there; the result is empty
        when that quotient is unknown or excluded.

        Several chains can be longest. The one returned has the
        lexicographically smallest sequence of positions in `quotients`; this is
        a convention, not a property of the chain.
        """
        allowed = [
            non_mirror_symmetric or bool(flag) for flag in self.mirror_symmetric
        ]
        start = None
        if quotient is not None:
            start = self.position(quotient)
            if start is None or not allowed[start]:
                return []

        best: Dict[int, List[int]] = {}

        def chain_from(i: int) -> List[int]:
            # The relation is a strict partial order, so this recursion ends.
            if i not in best:
                tails = [
                    chain_from(j)
                    for j in self.adjacency.successors(i)
                    if allowed[j]
                ]
                tail = min(tails, key=lambda t: (-len(t), t), default=[])
                best[i] = [i] + tail
            return best[i]

        if start is not None:
            chain = chain_from(start)
        else:
            chains = [chain_from(i) for i in range(len(self.quotients)) if allowed[i]]
            chain = min(chains, key=lambda c: (-len(c), c), default=[])
        return [self.quotients[i].identifier() for i in chain]

    def longest_sequence_quotients(self, **options: Any) -> List[TGQuotient]:
        positions = {q.identifier(): q for q in self.quotients}
        return [positions[key] for key in self.longest_sequence(**options)]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "signature": list(self.signature),
            "bound": self.bound,
            "quotients": [list(q.identifier()) for q in self.quotients],
            "mirror_symmetric": list(self.mirror_symmetric),
            "sparse": self.sparse,
            "adjacency": _encode(self.adjacency),
            "nearest_neighbours": _encode(self.nearest_neighbours),
        }

    @staticmethod
    def from_dict(data: Dict[str, Any], library: QuotientSource) -> "QuotientSequences":
        try:
            signature = signature_of(data["signature"])
            size = len(data["quotients"])
            sparse = bool(data["sparse"])
            quotients = [
                library.quotient(signature, genus, number)
                for genus, number in data["quotients"]
            ]
            adjacency = _decode(data["adjacency"], size, sparse)
            nearest = _decode(data["nearest_neighbours"], size, sparse)
            return QuotientSequences(
                signature,
                int(data["bound"]),
                quotients,
                data["mirror_symmetric"],
                sparse,
                adjacency,
                nearest,
            )
        except (KeyError, TypeError, IndexError, ValueError) as e:
            raise ValueError(f"Malformed quotient sequences data: {e}") from e

    def dumps(self) -> str:
        return json.dumps(self.to_dict(), indent=1, sort_keys=True) + "\n"

    def dump(self, fp: IO[str]):
        fp.write(self.dumps())

    def save(self, path: str | PathLike):
        with open(path, "w") as f:
            self.dump(f)

    @staticmethod
    def loads(text: str, library: QuotientSource) -> "QuotientSequences":
        return QuotientSequences.from_dict(json.loads(text), library)

    @staticmethod
    def load(fp: IO[str], library: QuotientSource) -> "QuotientSequences":
        return QuotientSequences.loads(fp.read(), library)

    @staticmethod
    def from_file(path: str | PathLike, library: QuotientSource) -> "QuotientSequences":
        with open(path) as f:
            return QuotientSequences.load(f, library)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, QuotientSequences):
            return False
        return (
            self.signature == other.signature
            and self.bound == other.bound
            and self.identifiers() == other.identifiers()
            and self.mirror_symmetric == other.mirror_symmetric
            and self.sparse == other.sparse
            and self.adjacency == other.adjacency
            and self.nearest_neighbours == other.nearest_neighbours
        )


def _encode(matrix: AdjacencyMatrix) -> List:
    if matrix.sparse:
        return [[list(pos), entry] for pos, entry in matrix.to_sparse()]
    return matrix.to_dense()


def _decode(data: List, size: int, sparse: bool) -> AdjacencyMatrix:
    if sparse:
        return AdjacencyMatrix.from_sparse(
            size, [((int(i), int(j)), int(entry)) for (i, j), entry in data]
        )
    if len(data) != size:
        raise ValueError(f"Expected {size} rows, got {len(data)}")
    return AdjacencyMatrix.from_dense(data)
