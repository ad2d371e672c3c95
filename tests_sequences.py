import io
import logging
from math import lcm
from types import SimpleNamespace
from typing import Dict, List, Optional, Tuple

import pytest

from adjacency import AdjacencyMatrix
from quotient import TranslationGroupCache
from quotient_library import QuotientLibrary
from quotient_sequence import (
    dump_sequence,
    dump_sequences,
    dumps_sequence,
    dumps_sequences,
    extend_sequence,
    extend_sequence_by_minimal_index,
    is_tg_quotient_sequence,
    load_sequence,
    load_sequences,
    loads_sequence,
    loads_sequences,
    next_options,
    save_sequence,
    save_sequences,
    sequence_from_file,
    sequence_to_list,
    sequences_from_file,
    sequences_to_list,
)
from quotient_sequences import (
    DEFAULT_GENUS_BOUND,
    QuotientSequences,
    covering_relation,
    effective_genus_bound,
)
from subgroup_oracle import SubgroupOracle

SIGNATURE = (2, 3, 7)


class LatticeOracle(SubgroupOracle):
    # The subgroup nZ of Z is handled as the integer n.
    def contains(self, big, small):
        return small % big == 0

    def is_normal_subgroup(self, h, k):
        return self.contains(k, h)

    def is_normal_in_ambient(self, h, ambient):
        return True

    def intersect(self, h, k):
        return lcm(h, k)

    def index(self, h, k):
        return h // k


class LatticeQuotient:
    def __init__(
        self,
        n: int,
        genus: int,
        number: Optional[int],
        mirror_symmetric: bool = True,
        signature: Tuple[int, int, int] = SIGNATURE,
    ):
        self.n = n
        self.genus = genus
        self.number = number
        self.mirror_symmetric = mirror_symmetric
        self.signature = signature
        self.triangle_group = SimpleNamespace(signature=signature, free_group=None)

    def identifier(self):
        return self.genus, self.number

    def translation_group(self, cache=None):
        return self.n

    def is_mirror_symmetric(self, cache=None):
        return self.mirror_symmetric

    def __repr__(self):
        return f"{self.n}Z"


class LatticeLibrary:
    def __init__(self, quotients: List[LatticeQuotient]):
        self.quotients = quotients

    def list_quotients(self, signature, genus_bound):
        return sorted(
            (
                q
                for q in self.quotients
                if q.signature == tuple(signature) and q.genus <= genus_bound
            ),
            key=lambda q: q.identifier(),
        )

    def quotient(self, signature, genus, number):
        for q in self.quotients:
            if q.signature == tuple(signature) and q.identifier() == (genus, number):
                return q
        raise ValueError(f"No quotient {genus}.{number}")

    def quotient_from_translation_group(
        self, triangle_group, translation_group, *, oracle=None, cache=None
    ):
        for q in self.quotients:
            if q.n == translation_group:
                return q
        return LatticeQuotient(translation_group, translation_group, None)


def lattice(
    entries: Dict[int, Tuple[int, int]], non_mirror: Tuple[int, ...] = ()
) -> Dict[int, LatticeQuotient]:
    return {
        n: LatticeQuotient(n, genus, number, mirror_symmetric=n not in non_mirror)
        for n, (genus, number) in entries.items()
    }


# 2Z > 4Z > 12Z is the only chain; 5Z and 7Z are unrelated to everything.
FIVE = {2: (2, 1), 4: (3, 1), 5: (3, 2), 7: (4, 1), 12: (5, 1)}


def five(non_mirror: Tuple[int, ...] = ()):
    quotients = lattice(FIVE, non_mirror)
    return quotients, LatticeLibrary(list(quotients.values()))


def build(library, **options) -> QuotientSequences:
    return QuotientSequences.build(library, SIGNATURE, oracle=LatticeOracle(), **options)


def test_is_tg_quotient_sequence():
    q, _library = five()
    oracle = LatticeOracle()
    assert is_tg_quotient_sequence([q[2], q[4], q[12]], oracle=oracle)
    assert is_tg_quotient_sequence([q[5]], oracle=oracle)
    assert not is_tg_quotient_sequence([], oracle=oracle)
    assert not is_tg_quotient_sequence([q[2], q[2]], oracle=oracle)
    assert not is_tg_quotient_sequence([q[2], q[5]], oracle=oracle)
    assert not is_tg_quotient_sequence([q[4], q[2]], oracle=oracle)

    other = LatticeQuotient(4, 3, 1, signature=(2, 3, 8))
    assert not is_tg_quotient_sequence([q[2], other], oracle=oracle)


def test_effective_genus_bound():
    assert effective_genus_bound(1) == 1
    assert effective_genus_bound(40) == 40
    assert effective_genus_bound(101) == 101
    for bad in [0, -5, 102, 1000, "12", 3.0, None, True]:
        assert effective_genus_bound(bad) == DEFAULT_GENUS_BOUND


def test_build_adjacency():
    _q, library = five()
    seqs = build(library)
    assert seqs.bound == DEFAULT_GENUS_BOUND
    assert seqs.identifiers() == [(2, 1), (3, 1), (3, 2), (4, 1), (5, 1)]
    assert seqs.mirror_symmetric == [1, 1, 1, 1, 1]
    assert not seqs.adjacency.sparse
    assert seqs.adjacency.to_dense() == [
        [0, 1, 0, 0, 1],
        [0, 0, 0, 0, 1],
        [0, 0, 0, 0, 0],
        [0, 0, 0, 0, 0],
        [0, 0, 0, 0, 0],
    ]
    assert sorted(seqs.nearest_neighbours.positions()) == [(0, 1), (1, 4)]
    assert seqs.nearest_neighbours.nonzero_count() == 2

    for i, j in seqs.adjacency.positions():
        assert i != j
        assert seqs.adjacency[j, i] == 0


def test_build_respects_genus_bound():
    _q, library = five()
    assert len(build(library, bound_by_genus=4)) == 4
    assert len(build(library, bound_by_genus=2)) == 1
    assert build(library, bound_by_genus=500).bound == DEFAULT_GENUS_BOUND
    assert len(build(library, bound_by_genus=0)) == 5


def test_build_for_unknown_signature():
    _q, library = five()
    seqs = QuotientSequences.build(library, (3, 3, 4), oracle=LatticeOracle())
    assert len(seqs) == 0
    assert seqs.longest_sequence() == []


def test_sparse_and_dense_encodings_agree():
    _q, library = five()
    dense = build(library)
    sparse = build(library, sparse=True)
    assert sparse.adjacency.sparse
    assert sparse.adjacency.to_sparse() == [((0, 1), 1), ((0, 4), 1), ((1, 4), 1)]
    assert sparse.adjacency == dense.adjacency
    assert sparse.nearest_neighbours == dense.nearest_neighbours
    assert (
        AdjacencyMatrix.from_sparse(5, dense.adjacency.to_sparse()).to_dense()
        == dense.adjacency.to_dense()
    )
    assert sparse.longest_sequence() == dense.longest_sequence()


def test_covering_relation():
    full = AdjacencyMatrix.from_dense(
        [
            [0, 1, 1, 1],
            [0, 0, 1, 1],
            [0, 0, 0, 1],
            [0, 0, 0, 0],
        ]
    )
    covers = covering_relation(full)
    assert list(covers.positions()) == [(0, 1), (1, 2), (2, 3)]


def test_adjacency_matrix():
    m = AdjacencyMatrix(3, sparse=True)
    m[0, 2] = 1
    m[0, 1] = 1
    m[0, 1] = 0
    assert m.to_sparse() == [((0, 2), 1)]
    assert m.encoded() == [((0, 2), 1)]
    assert m.as_dense().encoded() == [[0, 0, 1], [0, 0, 0], [0, 0, 0]]
    assert m.successors(0) == [2]
    with pytest.raises(IndexError):
        m[3, 0] = 1
    with pytest.raises(ValueError):
        AdjacencyMatrix.from_dense([[0, 1], [0]])


def test_longest_sequence():
    _q, library = five()
    seqs = build(library)
    assert seqs.longest_sequence() == [(2, 1), (3, 1), (5, 1)]
    assert seqs.longest_sequence(quotient=(3, 1)) == [(3, 1), (5, 1)]
    assert seqs.longest_sequence(quotient=1) == [(3, 1), (5, 1)]
    assert seqs.longest_sequence(quotient=[3, 2]) == [(3, 2)]
    assert seqs.longest_sequence(quotient=(9, 9)) == []
    assert seqs.longest_sequence(quotient=17) == []

    chain = seqs.longest_sequence_quotients()
    assert [q.n for q in chain] == [2, 4, 12]
    assert is_tg_quotient_sequence(chain, oracle=LatticeOracle())


def test_longest_sequence_skips_non_mirror_symmetric_quotients():
    _q, library = five(non_mirror=(4,))
    seqs = build(library)
    assert seqs.mirror_symmetric == [1, 0, 1, 1, 1]

    # 4Z is left out, but 2Z > 12Z still holds.
    assert seqs.longest_sequence() == [(2, 1), (5, 1)]
    assert seqs.longest_sequence(quotient=(3, 1)) == []
    assert seqs.longest_sequence(non_mirror_symmetric=True) == [(2, 1), (3, 1), (5, 1)]
    assert seqs.longest_sequence(quotient=(3, 1), non_mirror_symmetric=True) == [
        (3, 1),
        (5, 1),
    ]


def test_longest_sequence_tie_break():
    quotients = lattice({2: (2, 1), 3: (2, 2), 6: (3, 1)})
    seqs = build(LatticeLibrary(list(quotients.values())))
    # [2Z, 6Z] and [3Z, 6Z] are both longest.
    assert seqs.longest_sequence() == [(2, 1), (3, 1)]
    assert seqs.longest_sequence(quotient=(2, 2)) == [(2, 2), (3, 1)]


def test_longest_sequence_without_relations():
    quotients = lattice({5: (2, 1), 7: (2, 2)})
    seqs = build(LatticeLibrary(list(quotients.values())))
    assert seqs.adjacency.nonzero_count() == 0
    assert seqs.longest_sequence() == [(2, 1)]


def test_extend_sequence():
    q, library = five()
    oracle = LatticeOracle()
    three = LatticeQuotient(3, 2, 9)
    sequence = [q[2]]
    res = extend_sequence([three, q[2], q[4], q[5]], sequence, library=library, oracle=oracle)

    assert [x.n for x in res] == [2, 6, 12, 60]
    assert res[2] is q[12]
    assert res[1].number is None
    assert sequence == [q[2]]
    assert is_tg_quotient_sequence(res, oracle=oracle)

    assert extend_sequence([], sequence, library=library, oracle=oracle) == sequence
    with pytest.raises(ValueError):
        extend_sequence([q[4]], [], library=library, oracle=oracle)


def test_extend_sequence_skips_other_signatures():
    q, library = five()
    other = LatticeQuotient(3, 1, 1, signature=(2, 3, 8))
    res = extend_sequence([other], [q[2]], library=library, oracle=LatticeOracle())
    assert res == [q[2]]


def test_next_options():
    q, _library = five()
    three = LatticeQuotient(3, 2, 9)
    options = next_options([q[2], three, q[12]], q[4], oracle=LatticeOracle())
    assert [(c.n, index) for c, index in options] == [(2, 1), (3, 3), (12, 3)]


def test_extend_sequence_by_minimal_index():
    q, library = five()
    oracle = LatticeOracle()
    three = LatticeQuotient(3, 2, 9)
    candidates = [three, q[4], q[5]]

    res = extend_sequence_by_minimal_index(
        candidates, [q[2]], library=library, oracle=oracle
    )
    assert [x.n for x in res] == [2, 4, 12, 60]
    assert is_tg_quotient_sequence(res, oracle=oracle)

    res = extend_sequence_by_minimal_index(
        candidates, [q[2]], library=library, steps=1, oracle=oracle
    )
    assert [x.n for x in res] == [2, 4]

    with pytest.raises(ValueError):
        extend_sequence_by_minimal_index(candidates, [], library=library, oracle=oracle)


def test_sequence_serialization():
    q, _library = five()
    sequence = [q[2], q[4], q[12]]
    assert sequence_to_list(sequence) == [[2, 1], [3, 1], [5, 1]]
    assert sequences_to_list([sequence, [q[5]]]) == [[[2, 1], [3, 1], [5, 1]], [[3, 2]]]

    text = dumps_sequence(sequence)
    assert loads_sequence(text) == [(2, 1), (3, 1), (5, 1)]
    assert dumps_sequence(loads_sequence(text)) == text

    for bad in ["{}", "[[1, 2, 3]]", "[1, 2]"]:
        with pytest.raises(ValueError):
            loads_sequence(bad)


def test_sequence_files(tmp_path):
    q, _library = five()
    sequence = [q[2], q[4], q[12]]
    text = dumps_sequence(sequence)

    stream = io.StringIO()
    dump_sequence(sequence, stream)
    assert stream.getvalue() == text
    path = tmp_path / "sequence.json"
    save_sequence(sequence, path)
    assert path.read_text() == text

    assert load_sequence(io.StringIO(text)) == loads_sequence(text)
    assert sequence_from_file(path) == [(2, 1), (3, 1), (5, 1)]

    sequences = [sequence, [q[5]], []]
    text = dumps_sequences(sequences)
    stream = io.StringIO()
    dump_sequences(sequences, stream)
    assert stream.getvalue() == text
    path = tmp_path / "sequences.json"
    save_sequences(sequences, str(path))
    assert path.read_text() == text

    expected = [[(2, 1), (3, 1), (5, 1)], [(3, 2)], []]
    assert loads_sequences(text) == expected
    assert load_sequences(io.StringIO(text)) == expected
    assert sequences_from_file(path) == expected
    assert dumps_sequences(expected) == text
    assert dumps_sequences([]) == "[]\n"

    for bad in ["{}", "[[1, 2]]", "[[[1, 2, 3]]]"]:
        with pytest.raises(ValueError):
            loads_sequences(bad)


@pytest.mark.parametrize("sparse", [False, True])
def test_quotient_sequences_json(sparse, tmp_path):
    _q, library = five(non_mirror=(5,))
    seqs = build(library, sparse=sparse)

    text = seqs.dumps()
    assert text.endswith("\n")
    loaded = QuotientSequences.loads(text, library)
    assert loaded == seqs
    assert loaded.sparse == sparse
    assert loaded.dumps() == text
    assert loaded.longest_sequence() == seqs.longest_sequence()

    stream = io.StringIO()
    seqs.dump(stream)
    assert stream.getvalue() == text
    stream.seek(0)
    assert QuotientSequences.load(stream, library) == seqs

    path = tmp_path / "sequences.json"
    seqs.save(path)
    assert path.read_text() == text
    assert QuotientSequences.from_file(path, library) == seqs


def test_quotient_sequences_json_errors():
    _q, library = five()
    seqs = build(library)
    data = seqs.to_dict()

    missing = dict(data)
    del missing["adjacency"]
    with pytest.raises(ValueError):
        QuotientSequences.from_dict(missing, library)

    unknown = dict(data, quotients=[[9, 9]] + data["quotients"][1:])
    with pytest.raises(ValueError):
        QuotientSequences.from_dict(unknown, library)

    short = dict(data, adjacency=data["adjacency"][1:])
    with pytest.raises(ValueError):
        QuotientSequences.from_dict(short, library)

    sparse_data = build(library, sparse=True).to_dict()
    outside = dict(sparse_data, adjacency=sparse_data["adjacency"] + [[[9, 0], 1]])
    with pytest.raises(ValueError):
        QuotientSequences.from_dict(outside, library)


def test_build_logs_progress(caplog):
    _q, library = five()
    with caplog.at_level(logging.DEBUG, logger="quotient_sequences"):
        build(library, bound_by_genus=0)
    assert "Genus bound 0 replaced by 66" in caplog.text


# The same machinery on actual translation groups, see tests.py for the library.
LIBRARY = """
[4, 4, 2] R1.1 : x*y^-1, x^2
[4, 4, 2] R1.2 : y, x^2
[4, 4, 2] R1.3 : x*y^-1
[4, 4, 2] R1.4 : x^2, y^2, x*y*x^-1*y^-1
"""


def test_quotient_sequences_of_abelian_quotients(tmp_path):
    library = QuotientLibrary.parse(LIBRARY)
    cache = TranslationGroupCache()
    seqs = QuotientSequences.build(library, (4, 4, 2), cache=cache)
    assert len(cache) == 4

    assert seqs.identifiers() == [(1, 1), (1, 2), (1, 3), (1, 4)]
    assert list(seqs.adjacency.positions()) == [(0, 2), (0, 3), (1, 3)]
    assert seqs.nearest_neighbours == seqs.adjacency
    assert seqs.longest_sequence() == [(1, 1), (1, 3)]
    assert seqs.longest_sequence(quotient=(1, 2)) == [(1, 2), (1, 4)]
    assert is_tg_quotient_sequence(seqs.longest_sequence_quotients(), cache=cache)

    path = tmp_path / "quotients.json"
    seqs.save(path)
    assert QuotientSequences.from_file(path, library) == seqs


def test_extend_abelian_quotients():
    library = QuotientLibrary.parse(LIBRARY)
    z2, z2_x, z4, klein = library.list_quotients((4, 4, 2), DEFAULT_GENUS_BOUND)

    assert extend_sequence([z4], [z2], library=library) == [z2, z4]

    res = extend_sequence([z2, klein], [z2, z4], library=library)
    assert len(res) == 3
    assert res[-1].number is None
    assert res[-1].order() == 8
    assert is_tg_quotient_sequence(res)

    options = next_options([z2, z2_x, klein], z4)
    assert [index for _q, index in options] == [1, 2, 2]

    res = extend_sequence_by_minimal_index([z2, z2_x, klein], [z4], library=library)
    assert [q.order() for q in res] == [4, 8]
