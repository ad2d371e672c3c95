"""
Sequences of triangle-group quotients.

A sequence ``Γ(0), Γ(1), ..., Γ(n)`` is a list of quotients of one triangle
group whose translation groups decrease strictly, each normal in the previous
one. Sequences are plain lists and are never modified in place.
"""

import json
import logging
from os import PathLike
from typing import IO, Any, List, Optional, Protocol, Sequence, Tuple

from quotient import QuotientId, TGQuotient, TranslationGroupCache
from subgroup_oracle import SubgroupOracle

logger = logging.getLogger(__name__)


class QuotientFactory(Protocol):
    def quotient_from_translation_group(
        self,
        triangle_group: Any,
        translation_group: Any,
        *,
        oracle: Optional[SubgroupOracle] = None,
        cache: Optional[TranslationGroupCache] = None,
    ) -> TGQuotient: ...


def is_tg_quotient_sequence(
    quotients: Sequence[TGQuotient],
    *,
    oracle: Optional[SubgroupOracle] = None,
    cache: Optional[TranslationGroupCache] = None,
) -> bool:
    if not quotients:
        return False
    oracle = oracle or SubgroupOracle()
    signature = quotients[0].signature
    if any(q.signature != signature for q in quotients):
        return False
    for bigger, smaller in zip(quotients, quotients[1:]):
        if not oracle.is_proper_normal_subgroup(
            smaller.translation_group(cache), bigger.translation_group(cache)
        ):
            return False
    return True


def _intersection_quotient(
    last: TGQuotient,
    candidate: TGQuotient,
    library: QuotientFactory,
    oracle: SubgroupOracle,
    cache: Optional[TranslationGroupCache],
) -> Optional[TGQuotient]:
    # The quotient by T(last) ∩ T(candidate), or None when it makes no progress.
    if candidate.signature != last.signature:
        return None
    current = last.translation_group(cache)
    intersection = oracle.intersect(current, candidate.translation_group(cache))
    if oracle.contains(intersection, current):
        return None
    if not oracle.is_normal_in_ambient(intersection, last.triangle_group.free_group):
        return None
    return library.quotient_from_translation_group(
        last.triangle_group, intersection, oracle=oracle, cache=cache
    )


def extend_sequence(
    quotients: Sequence[TGQuotient],
    sequence: Sequence[TGQuotient],
    *,
    library: QuotientFactory,
    oracle: Optional[SubgroupOracle] = None,
    cache: Optional[TranslationGroupCache] = None,
) -> List[TGQuotient]:
    """
    Extends ``sequence`` by intersecting its last translation group with those
    of ``quotients``, in the given order.

    Every candidate whose intersection is strictly smaller than the current last
    element adds one entry; the others are skipped. This is a single greedy
    pass, so a different order of the candidates can give a longer sequence.
    """
    if not sequence:
        raise ValueError("Cannot extend an empty sequence")
    oracle = oracle or SubgroupOracle()
    res = list(sequence)
    for candidate in quotients:
        extension = _intersection_quotient(res[-1], candidate, library, oracle, cache)
        if extension is None:
            logger.debug("Skipping %r: no progress on %r", candidate, res[-1])
            continue
        res.append(extension)
    return res


def next_options(
    quotients: Sequence[TGQuotient],
    q0: TGQuotient,
    *,
    oracle: Optional[SubgroupOracle] = None,
    cache: Optional[TranslationGroupCache] = None,
) -> List[Tuple[TGQuotient, int]]:
    # Pairs each candidate with [T(q0) : T(q0) ∩ T(candidate)]; nothing is filtered.
    oracle = oracle or SubgroupOracle()
    current = q0.translation_group(cache)
    res = []
    for candidate in quotients:
        intersection = oracle.intersect(current, candidate.translation_group(cache))
        res.append((candidate, oracle.index(intersection, current)))
    return res


def extend_sequence_by_minimal_index(
    quotients: Sequence[TGQuotient],
    sequence: Sequence[TGQuotient],
    *,
    library: QuotientFactory,
    steps: Optional[int] = None,
    oracle: Optional[SubgroupOracle] = None,
    cache: Optional[TranslationGroupCache] = None,
) -> List[TGQuotient]:
    """
    Repeatedly appends the intersection with the candidate of smallest index
    larger than one, the first such candidate winning ties.

    This is a local choice at every step; it does not minimise the index of the
    final element over all possible extensions.
    """
    if not sequence:
        raise ValueError("Cannot extend an empty sequence")
    oracle = oracle or SubgroupOracle()
    res = list(sequence)
    while steps is None or len(res) - len(sequence) < steps:
        options = [
            (candidate, index)
            for candidate, index in next_options(
                [q for q in quotients if q.signature == res[-1].signature],
                res[-1],
                oracle=oracle,
                cache=cache,
            )
            if index > 1
        ]
        if not options:
            break
        best, index = min(options, key=lambda option: option[1])
        extension = _intersection_quotient(res[-1], best, library, oracle, cache)
        if extension is None:
            break
        logger.debug("Appending %r (index %d)", extension, index)
        res.append(extension)
    return res


def sequence_to_list(sequence: Sequence[TGQuotient]) -> List[List[Optional[int]]]:
    return [list(q.identifier()) for q in sequence]


def sequences_to_list(
    sequences: Sequence[Sequence[TGQuotient]],
) -> List[List[List[Optional[int]]]]:
    return [sequence_to_list(sequence) for sequence in sequences]


def _pairs(
    sequence: Sequence[TGQuotient] | Sequence[QuotientId],
) -> List[List[Optional[int]]]:
    # Accepts quotients or (genus, number) pairs.
    return [
        list(q) if isinstance(q, (tuple, list)) else list(q.identifier())
        for q in sequence
    ]


def _identifiers(data: Any) -> List[QuotientId]:
    if not isinstance(data, list) or not all(
        isinstance(pair, list) and len(pair) == 2 for pair in data
    ):
        raise ValueError(f"Not a list of [genus, number] pairs: {data!r}")
    return [(pair[0], pair[1]) for pair in data]


def dumps_sequence(sequence: Sequence[TGQuotient] | Sequence[QuotientId]) -> str:
    return json.dumps(_pairs(sequence)) + "\n"


def dump_sequence(
    sequence: Sequence[TGQuotient] | Sequence[QuotientId], fp: IO[str]
):
    fp.write(dumps_sequence(sequence))


def save_sequence(
    sequence: Sequence[TGQuotient] | Sequence[QuotientId], path: str | PathLike
):
    with open(path, "w") as f:
        dump_sequence(sequence, f)


def loads_sequence(text: str) -> List[QuotientId]:
    return _identifiers(json.loads(text))


def load_sequence(fp: IO[str]) -> List[QuotientId]:
    return loads_sequence(fp.read())


def sequence_from_file(path: str | PathLike) -> List[QuotientId]:
    with open(path) as f:
        return load_sequence(f)


def dumps_sequences(
    sequences: Sequence[Sequence[TGQuotient] | Sequence[QuotientId]],
) -> str:
    # One sequence per line.
    lines = ",\n ".join(json.dumps(_pairs(sequence)) for sequence in sequences)
    return f"[{lines}]\n"


def dump_sequences(
    sequences: Sequence[Sequence[TGQuotient] | Sequence[QuotientId]], fp: IO[str]
):
    fp.write(dumps_sequences(sequences))


def save_sequences(
    sequences: Sequence[Sequence[TGQuotient] | Sequence[QuotientId]],
    path: str | PathLike,
):
    with open(path, "w") as f:
        dump_sequences(sequences, f)


def loads_sequences(text: str) -> List[List[QuotientId]]:
    data = json.loads(text)
    if not isinstance(data, list):
        raise ValueError(f"Not a list of sequences: {text!r}")
    return [_identifiers(sequence) for sequence in data]


def load_sequences(fp: IO[str]) -> List[List[QuotientId]]:
    return loads_sequences(fp.read())


def sequences_from_file(path: str | PathLike) -> List[List[QuotientId]]:
    with open(path) as f:
        return load_sequences(f)
