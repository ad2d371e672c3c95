from typing import Dict, Iterator, List, Sequence, Tuple

SparseEntry = Tuple[Tuple[int, int], int]


class AdjacencyMatrix:
    """
    A square integer matrix with a dense or a sparse encoding.

    The dense encoding is a list of rows. The sparse encoding is a list of
    ``((row, col), entry)`` records sorted by position, zero entries omitted.
    Both describe the same relation and convert into each other without loss.
    """

    def __init__(self, size: int, *, sparse: bool = False):
        if size < 0:
            raise ValueError("Matrix size must be non-negative")
        self.size = size
        self.sparse = sparse
        self._entries: Dict[Tuple[int, int], int] = {}

    @staticmethod
    def from_dense(rows: Sequence[Sequence[int]]) -> "AdjacencyMatrix":
        res = AdjacencyMatrix(len(rows))
        for i, row in enumerate(rows):
            if len(row) != len(rows):
                raise ValueError("A dense adjacency matrix must be square")
            for j, entry in enumerate(row):
                res[i, j] = entry
        return res

    @staticmethod
    def from_sparse(size: int, entries: Sequence[SparseEntry]) -> "AdjacencyMatrix":
        res = AdjacencyMatrix(size, sparse=True)
        for (i, j), entry in entries:
            res[i, j] = entry
        return res

    def _check(self, i: int, j: int):
        if not (0 <= i < self.size and 0 <= j < self.size):
            raise IndexError(f"Position {(i, j)} outside a {self.size}x{self.size} matrix")

    def __getitem__(self, pos: Tuple[int, int]) -> int:
        self._check(*pos)
        return self._entries.get(pos, 0)

    def __setitem__(self, pos: Tuple[int, int], entry: int):
        self._check(*pos)
        if entry:
            self._entries[pos] = int(entry)
        else:
            self._entries.pop(pos, None)

    def to_dense(self) -> List[List[int]]:
        return [[self[i, j] for j in range(self.size)] for i in range(self.size)]

    def to_sparse(self) -> List[SparseEntry]:
        return [(pos, self._entries[pos]) for pos in sorted(self._entries)]

    def encoded(self) -> List:
        return self.to_sparse() if self.sparse else self.to_dense()

    def as_sparse(self) -> "AdjacencyMatrix":
        return AdjacencyMatrix.from_sparse(self.size, self.to_sparse())

    def as_dense(self) -> "AdjacencyMatrix":
        return AdjacencyMatrix.from_dense(self.to_dense())

    def successors(self, i: int) -> List[int]:
        return [j for j in range(self.size) if self[i, j]]

    def positions(self) -> Iterator[Tuple[int, int]]:
        return iter(sorted(self._entries))

    def nonzero_count(self) -> int:
        return len(self._entries)

    def __eq__(self, other: object) -> bool:
        # The encoding is not part of the relation.
        if not isinstance(other, AdjacencyMatrix):
            return False
        return self.size == other.size and self._entries == other._entries

    def __repr__(self) -> str:
        kind = "sparse" if self.sparse else "dense"
        return f"AdjacencyMatrix({self.size}, {kind}, {self.nonzero_count()} entries)"
