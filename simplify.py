import logging
import warnings
from enum import Enum
from typing import Optional

from free_group import FreeGroupElement
from homomorphism import FreeGroupHomomorphism
from presentation import FinitelyPresentedGroup
from rewriting import (
    CompletionOptions,
    RewritingEntry,
    RewritingSystemCache,
    associated_monoid,
    complete,
    longest_rule,
    reduce,
)

logger = logging.getLogger(__name__)


class SimplificationWarning(UserWarning):
    pass


class SimplifyMethod(Enum):
    BRUTE_FORCE = "BruteForce"
    KNUTH_BENDIX = "KnuthBendix"


class BruteForceStrategy:
    """
    Tries all reduced words shorter than the input, in shortlex order, up to
    length ``lmax``. The cost grows exponentially with ``lmax``; this is meant
    for short bounds.

    The group must be finite: equality is decided on the coset graph of the
    normal closure of the relators, and building it does not terminate for an
    infinite group.
    """

    def simplify(
        self, group: FinitelyPresentedGroup, word: FreeGroupElement, lmax: int
    ) -> FreeGroupElement:
        for candidate in group.free_group.words(max_len=min(word.length() - 1, lmax)):
            if group.equals(candidate, word):
                return candidate
        return word


class KnuthBendixStrategy:
    """
    Reduces words with a confluent rewriting system, completed once per
    presentation and kept in a `RewritingSystemCache`.

    When completion does not finish within the configured bounds the input
    word is returned, with a `SimplificationWarning`.
    """

    def __init__(self, cache: RewritingSystemCache):
        self.cache = cache

    def _entry(
        self, group: FinitelyPresentedGroup, lmax: int
    ) -> Optional[RewritingEntry]:
        key = group.content_hash()
        entry = self.cache.lookup(key)
        if entry is not None:
            return entry

        options = CompletionOptions(max_stored_length=(lmax, 2 * (1 + lmax)))
        monoid, homomorphism = associated_monoid(group)
        result = complete(monoid, options)
        if not result.ok:
            warnings.warn(
                f"Knuth-Bendix completion failed for {group} ({result.reason}); "
                "the word is returned unsimplified",
                SimplificationWarning,
                stacklevel=4,
            )
            return None
        assert result.system is not None
        longest = longest_rule(result.system)
        if longest > options.max_stored_length[1]:
            warnings.warn(
                f"Knuth-Bendix completion for {group} needs rules of length {longest}, "
                f"more than {options.max_stored_length[1]}; "
                "the word is returned unsimplified",
                SimplificationWarning,
                stacklevel=4,
            )
            return None

        entry = RewritingEntry(result.system, homomorphism, monoid, group)
        self.cache.store(key, entry)
        logger.debug("Stored rewriting system for %s under %s", group, key)
        return entry

    def simplify(
        self, group: FinitelyPresentedGroup, word: FreeGroupElement, lmax: int
    ) -> FreeGroupElement:
        entry = self._entry(group, lmax)
        if entry is None:
            return word

        # The cached presentation may be a different, equal, object.
        cached_free_group = entry.group.free_group
        if cached_free_group is group.free_group:
            return entry.homomorphism.preimage(
                reduce(entry.system, entry.homomorphism(word))
            )
        forward = FreeGroupHomomorphism.by_position(group.free_group, cached_free_group)
        backward = FreeGroupHomomorphism.by_position(cached_free_group, group.free_group)
        normal_form = reduce(entry.system, entry.homomorphism(forward(word)))
        return backward(entry.homomorphism.preimage(normal_form))


class WordSimplifier:
    def __init__(self, cache: Optional[RewritingSystemCache] = None):
        self.cache = cache if cache is not None else RewritingSystemCache()
        self._strategies = {
            SimplifyMethod.BRUTE_FORCE: BruteForceStrategy(),
            SimplifyMethod.KNUTH_BENDIX: KnuthBendixStrategy(self.cache),
        }

    def flush(self):
        self.cache.flush()

    def simplify(
        self,
        group: FinitelyPresentedGroup,
        word: FreeGroupElement,
        *,
        method: SimplifyMethod | str = SimplifyMethod.BRUTE_FORCE,
        lmax: int = -1,
    ) -> FreeGroupElement:
        try:
            method = SimplifyMethod(method)
        except ValueError:
            raise ValueError(f"Unknown simplification method {method!r}") from None
        if word.free_group != group.free_group:
            raise ValueError(f"{word} is not a word in the generators of {group}")

        if word.is_identity():
            return group.identity()
        if word.length() <= 1 or lmax == 0:
            return word
        if lmax < 0:
            lmax = word.length()
        return self._strategies[method].simplify(group, word, lmax)


def simplify_word(
    group: FinitelyPresentedGroup,
    word: FreeGroupElement,
    *,
    method: SimplifyMethod | str = SimplifyMethod.BRUTE_FORCE,
    lmax: int = -1,
    cache: Optional[RewritingSystemCache] = None,
) -> FreeGroupElement:
    return WordSimplifier(cache).simplify(group, word, method=method, lmax=lmax)
