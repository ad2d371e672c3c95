from functools import total_ordering
import itertools
import re
from typing import (
    TYPE_CHECKING,
    Any,
    Iterator,
    List,
    Optional,
    Sequence,
    Tuple,
)

from word import Word

if TYPE_CHECKING:
    from subgroup_of_free_group import SubgroupOfFreeGroup


_TOKEN = re.compile(r"\s*(?:(?P<name>[A-Za-z_][A-Za-z_0-9]*)|(?P<int>-?\d+)|(?P<op>[()*^~]))")


class FreeGroup:
    def __init__(self, _gens: Tuple[str, ...] | int, name: Optional[str] = None):
        self._name = name
        if isinstance(_gens, int):
            gen_names: Tuple[str, ...] = tuple(chr(ord("a") + i) for i in range(_gens))
        else:
            gen_names = tuple(_gens)
        if len(set(gen_names)) != len(gen_names):
            raise ValueError(f"Repeated generator names in {gen_names}")
        self._gens = tuple(
            object.__new__(FreeGroupGenerator) for _ in range(len(gen_names))
        )
        for _letter, _name in zip(self._gens, gen_names):
            _letter.__init__(self, _name)

    def gens(self) -> Tuple["FreeGroupGenerator", ...]:
        return self._gens

    def names(self) -> Tuple[str, ...]:
        return tuple(gen.name for gen in self._gens)

    def gen(self, name: str) -> "FreeGroupGenerator":
        for gen in self._gens:
            if gen.name == name:
                return gen
        raise ValueError(f"No generator named {name!r} in {self}")

    def __repr__(self):
        return (
            f"Free Group over {', '.join(repr(gen) for gen in self._gens)}"
            if self._name is None
            else self._name
        )

    def __hash__(self):
        return hash(("Free Group", tuple((gen.name for gen in self._gens))))

    def identity(self):
        return FreeGroupElement(self)

    def rank(self):
        return len(self.gens())

    def words(self, *, max_len: int) -> Iterator["FreeGroupElement"]:
        # Reduced words in shortlex order, the identity first.
        def paths(w: FreeGroupElement, len: int) -> Iterator[FreeGroupElement]:
            if len == 0:
                yield w
            else:
                for gen in self.gens():
                    if w.last_letter_with_sign() != (gen, -1):
                        yield from paths(w * gen, len - 1)
                    if w.last_letter_with_sign() != (gen, 1):
                        yield from paths(w * ~gen, len - 1)

        for len in itertools.count(0):
            if len > max_len:
                break
            yield from paths(self.identity(), len)

    def parse(self, text: str) -> "FreeGroupElement":
        """
        Reads a word such as ``x^2*y^-1*(x*y)^3`` or ``~x*y``.

        ``1`` denotes the identity. Juxtaposition is not accepted; factors are
        separated by ``*``.
        """
        tokens: List[Tuple[str, str]] = []
        pos = 0
        text = text.strip()
        while pos < len(text):
            match = _TOKEN.match(text, pos)
            if match is None:
                raise ValueError(f"Cannot parse word {text!r} at position {pos}")
            kind = match.lastgroup
            assert kind is not None
            tokens.append((kind, match.group(kind)))
            pos = match.end()

        def peek() -> Optional[Tuple[str, str]]:
            return tokens[0] if tokens else None

        def expect(value: str):
            if peek() != ("op", value):
                raise ValueError(f"Expected {value!r} in word {text!r}")
            tokens.pop(0)

        def product() -> FreeGroupElement:
            res = factor()
            while peek() == ("op", "*"):
                tokens.pop(0)
                res *= factor()
            return res

        def factor() -> FreeGroupElement:
            if peek() == ("op", "~"):
                tokens.pop(0)
                return ~factor()
            base = atom()
            if peek() == ("op", "^"):
                tokens.pop(0)
                token = peek()
                if token is None or token[0] != "int":
                    raise ValueError(f"Expected an exponent in word {text!r}")
                tokens.pop(0)
                base = base ** int(token[1])
            return base

        def atom() -> FreeGroupElement:
            token = peek()
            if token is None:
                raise ValueError(f"Unexpected end of word {text!r}")
            tokens.pop(0)
            kind, value = token
            if kind == "name":
                return self.gen(value).copy()
            if kind == "int" and value == "1":
                return self.identity()
            if token == ("op", "("):
                res = product()
                expect(")")
                return res
            raise ValueError(f"Unexpected {value!r} in word {text!r}")

        res = product()
        if tokens:
            raise ValueError(f"Trailing input {tokens[0][1]!r} in word {text!r}")
        return res

    def subgroup(
        self, relations_: Sequence["FreeGroupElement"]
    ) -> "SubgroupOfFreeGroup":
        from subgroup_of_free_group import SubgroupOfFreeGroup

        return SubgroupOfFreeGroup.from_relations(self, list(relations_))

    def normal_subgroup(
        self, relations: Sequence["FreeGroupElement"]
    ) -> "SubgroupOfFreeGroup":
        # Terminates only when the normal closure has finite index.
        return self.subgroup(relations).normalization_in(self)

    def full_subgroup(self) -> "SubgroupOfFreeGroup":
        return self.subgroup([gen for gen in self.gens()])

    def empty_subgroup(self) -> "SubgroupOfFreeGroup":
        return self.subgroup([])

    def intersect_subgroups(
        self, subgroups: Sequence["SubgroupOfFreeGroup"]
    ) -> "SubgroupOfFreeGroup":
        from subgroup_of_free_group import SubgroupOfFreeGroup

        return SubgroupOfFreeGroup.intersect_subgroups(self, subgroups)


@total_ordering
class FreeGroupElement(Word["FreeGroupGenerator"]):
    def __init__(self, free_group: FreeGroup):
        self.free_group = free_group
        super().__init__()

    def identity(self) -> "FreeGroupElement":
        # Overrides Word.identity, to make sure computations return the correct type.
        return FreeGroupElement(self.free_group)

    def add(self, let: "FreeGroupGenerator", pow: int = 1):
        if not let in self.free_group.gens():
            raise ValueError(f"Generator {let} not in free group {self.free_group}")
        super().add(let, pow)

    def _shortlex_key(self) -> Tuple[int, Tuple[Tuple[str, bool], ...]]:
        # `a` < `a^-1` < `b` < `b^-1`, generators ordered by name.
        return self.length(), tuple((let.name, s < 0) for let, s in self.letters())

    def lexicographically_lt(self, other: "FreeGroupElement") -> bool:
        if not self.free_group == other.free_group:
            raise ValueError("Cannot compare elements from different free groups.")
        return self._shortlex_key()[1] < other._shortlex_key()[1]

    # Shortlex: by length, then lexicographically.
    def __lt__(self, other: "FreeGroupElement") -> bool:
        if self.length() == other.length():
            return self.lexicographically_lt(other)
        return self.length() < other.length()

    if TYPE_CHECKING:

        def __mul__(self, other: Word["FreeGroupGenerator"]) -> "FreeGroupElement": ...
        def __pow__(self, n: int) -> "FreeGroupElement": ...
        def __invert__(self) -> "FreeGroupElement": ...
        def copy(self) -> "FreeGroupElement": ...
        def conjugate(
            self, other: "Word[FreeGroupGenerator]"
        ) -> "FreeGroupElement": ...

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, FreeGroupElement):
            return False
        return self.free_group == other.free_group and self.word == other.word

    def substitute(
        self, codomain: FreeGroup, values: Tuple["FreeGroupElement", ...]
    ) -> "FreeGroupElement":
        if not all(val.free_group == codomain for val in values):
            raise ValueError("Values must be from the same free group as the codomain.")
        if len(values) != self.free_group.rank():
            raise ValueError(f"Incorrect number of arguments")

        mapping = {gen.name: val for gen, val in zip(self.free_group.gens(), values)}
        res = codomain.identity()
        for gen, pow in self:
            res *= mapping[gen.name] ** pow
        return res


class FreeGroupGenerator(FreeGroupElement):
    def __init__(self, free_group: FreeGroup, name: str):
        for gen in free_group.gens():
            if self is gen:
                break
        else:
            raise ValueError(f"Generator {name} not in free group {free_group}")
        self.name = name

        super().__init__(free_group)
        self.add(self)

    def __eq__(self, other: "FreeGroupGenerator | FreeGroupElement") -> bool:
        if isinstance(other, FreeGroupGenerator):
            return self is other
        return super().__eq__(other)

    def __lt__(self, other: "FreeGroupGenerator | FreeGroupElement") -> bool:
        if isinstance(other, FreeGroupGenerator):
            return self.name < other.name
        return super().__lt__(other)

    def __hash__(self):
        return hash((self.free_group, self.name))

    def __repr__(self):
        return self.name


if TYPE_CHECKING:

    def commutator(a: FreeGroupElement, b: FreeGroupElement) -> FreeGroupElement: ...

else:
    from word import commutator
