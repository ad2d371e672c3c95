"""
Knuth-Bendix completion, through sympy's rewriting systems.

sympy completes a group presentation as a monoid presentation on the
generators and their formal inverses, with shortlex ordering. This module keeps
the completion behind a small interface that never raises: `complete` returns a
`CompletionResult` that is either a rewriting system or a reason for failure.
"""

from typing import TYPE_CHECKING, Dict, NamedTuple, Optional, Tuple

from sympy.combinatorics.fp_groups import FpGroup
from sympy.combinatorics.free_groups import free_group
from sympy.combinatorics.rewritingsystem import RewritingSystem

from free_group import FreeGroup, FreeGroupElement
from utils import KeyedCache

if TYPE_CHECKING:
    from presentation import FinitelyPresentedGroup

DEFAULT_MAX_RULES = 5000


class MonoidHomomorphism:
    # Sends words of a FreeGroup to the free group under a sympy FpGroup, by generator name.
    def __init__(self, domain: FreeGroup, monoid: FpGroup):
        self.domain = domain
        self.monoid = monoid
        symbols = [str(symbol) for symbol in monoid.free_group.symbols]
        if symbols != list(domain.names()):
            raise ValueError(f"{domain} and {monoid} have different generators")
        self._images = dict(zip(symbols, monoid.free_group.generators))
        self._preimages: Dict[str, FreeGroupElement] = dict(zip(symbols, domain.gens()))

    def __call__(self, word: FreeGroupElement):
        if word.free_group != self.domain:
            raise ValueError("Element not in domain")
        res = self.monoid.free_group.identity
        for gen, pow in word:
            res = res * self._images[gen.name] ** pow
        return res

    def preimage(self, element) -> FreeGroupElement:
        res = self.domain.identity()
        for symbol, pow in element.array_form:
            res *= self._preimages[str(symbol)] ** int(pow)
        return res


def associated_monoid(
    group: "FinitelyPresentedGroup",
) -> Tuple[FpGroup, MonoidHomomorphism]:
    names = group.free_group.names()
    F, *gens = free_group(", ".join(names))
    images = dict(zip(names, gens))
    relators = []
    for relator in group.relators:
        word = F.identity
        for gen, pow in relator:
            word = word * images[gen.name] ** pow
        relators.append(word)
    monoid = FpGroup(F, relators)
    return monoid, MonoidHomomorphism(group.free_group, monoid)


class CompletionOptions:
    def __init__(
        self,
        *,
        max_stored_length: Tuple[int, int],
        max_rules: int = DEFAULT_MAX_RULES,
    ):
        # (word length bound, rule length bound); completion gives up on longer rules.
        self.max_stored_length = max_stored_length
        self.max_rules = max_rules

    def __repr__(self) -> str:
        return (
            f"CompletionOptions(max_stored_length={self.max_stored_length}, "
            f"max_rules={self.max_rules})"
        )


class CompletionResult:
    def __init__(self, system: Optional[RewritingSystem], reason: str = ""):
        self.system = system
        self.reason = reason

    @staticmethod
    def success(system: RewritingSystem) -> "CompletionResult":
        return CompletionResult(system)

    @staticmethod
    def failure(reason: str) -> "CompletionResult":
        return CompletionResult(None, reason)

    @property
    def ok(self) -> bool:
        return self.system is not None

    def __repr__(self) -> str:
        return "CompletionResult(ok)" if self.ok else f"CompletionResult({self.reason!r})"


class RuleLengthExceeded(Exception):
    pass


class BoundedRewritingSystem(RewritingSystem):
    """
    A rewriting system that refuses rules with a left-hand side longer than
    ``max_length``. Shortlex completion of an infinite group generally needs
    ever longer rules, so this bound makes `make_confluent` stop.
    """

    def __init__(self, group: FpGroup, max_length: int):
        # Set before sympy adds the relators as rules.
        self.max_length = max_length
        super().__init__(group)

    def _add_rule(self, r1, r2):
        if len(r1) > self.max_length:
            raise RuleLengthExceeded(
                f"a rule of length {len(r1)} is needed, more than {self.max_length}"
            )
        super()._add_rule(r1, r2)


def complete(monoid: FpGroup, options: CompletionOptions) -> CompletionResult:
    try:
        system = BoundedRewritingSystem(monoid, options.max_stored_length[1])
        system.set_max(options.max_rules)
        confluent = system.make_confluent()
    except RuleLengthExceeded as e:
        return CompletionResult.failure(str(e))
    except RuntimeError as e:
        return CompletionResult.failure(f"completion aborted: {e}")
    if not confluent:
        return CompletionResult.failure(
            f"no confluent system with at most {options.max_rules} rules"
        )
    return CompletionResult.success(system)


def longest_rule(system: RewritingSystem) -> int:
    return max((len(lhs) for lhs in system.rules), default=0)


def reduce(system: RewritingSystem, element):
    return system.reduce(element)


class RewritingEntry(NamedTuple):
    system: RewritingSystem
    homomorphism: MonoidHomomorphism
    monoid: FpGroup
    group: "FinitelyPresentedGroup"


class RewritingSystemCache(KeyedCache[str, RewritingEntry]):
    """
    Confluent rewriting systems keyed by `FinitelyPresentedGroup.content_hash`.

    Two different presentations with the same hash would share an entry; this
    is not detected.
    """
