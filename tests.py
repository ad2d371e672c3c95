from typing import List
from fractions import Fraction

import pytest

from finite_group import FiniteGroup
from free_group import FreeGroup, FreeGroupElement, commutator
from homomorphism import FreeGroupEndomorphism, FreeGroupHomomorphism
from quotient import TGQuotient, TranslationGroupCache
from quotient_library import QuotientLibrary
from triangle_group import ProperTriangleGroup

# Abelian quotients of <x, y | x^4, y^4, (x*y)^2>:
#   1.1  Z2,      x, y -> 1
#   1.2  Z2,      x -> 1, y -> 0
#   1.3  Z4,      x, y -> 1
#   1.4  Z2 x Z2, x -> (1, 0), y -> (0, 1)
LIBRARY = """
# signature, genus.number, extra relators
[4, 4, 2] R1.1 : x*y^-1, x^2
[4, 4, 2] R1.2 : y, x^2
[4, 4, 2] R1.3 : x*y^-1
[4, 4, 2] R1.4 : x^2, y^2, x*y*x^-1*y^-1
"""


def test_free_group():
    F = FreeGroup(("a", "b", "c"))
    a, b, c = F.gens()
    x = a * b * ~a * b * c**2
    y = b ** (-3) * c * a * b
    z = a * b * c
    e = F.identity()

    assert x * e == e * x == x
    assert x * ~x == ~x * x == e
    assert (x * y) * z == x * (y * z)
    assert (x * y) ** (-1) == y ** (-1) * x ** (-1)

    assert x**5 == x * x * x * x * x

    assert x.conjugate(y) == y * x * ~y
    assert x.conjugate(e) == x
    assert e.conjugate(x) == e
    assert (x * y).conjugate(z) == x.conjugate(z) * y.conjugate(z)

    c = commutator
    assert c(x, y) == x * y * ~x * ~y
    assert c(x, y) == ~c(y, x)
    assert c(x * y, z) == c(x, c(y, z)) * c(y, z) * c(x, z)


def test_parse_and_format():
    F = FreeGroup(("a", "b"))
    a, b = F.gens()
    assert F.parse("a*b^-1*(a*b)^2") == a * ~b * a * b * a * b
    assert F.parse("~a*b") == ~a * b
    assert F.parse("1") == F.identity()
    assert F.parse("a*a^-1").is_identity()

    w = a**3 * ~b * a * b**-2
    assert F.parse(w.format()) == w
    assert F.identity().format() == "1"

    for bad in ["a*", "a^", "c", "(a*b", "a b", "a^x"]:
        with pytest.raises(ValueError):
            F.parse(bad)


def test_words_are_shortlex_ordered():
    F = FreeGroup(("a", "b"))
    a, b = F.gens()
    words = list(F.words(max_len=2))
    assert len(words) == 1 + 4 + 12
    assert words[:5] == [F.identity(), a, ~a, b, ~b]
    assert words == sorted(words)
    assert all(w.length() <= 2 for w in words)


def test_subgroup_of_free_group():
    F = FreeGroup(("a", "b"))
    a, b = F.gens()

    lst: List[List[FreeGroupElement]] = [
        [a, b],
        [a, b ** (-10)],
        [a * b, b * a],
        [(a * b) ** 2, a],
        [(a * b) ** 3, b],
        [a**2, b**3, commutator(a, b)],
        [(a * b) ** 10, commutator(a, b) ** 3, b**1, b.conjugate(a)],
        [a**2 * b**3 * a ** (-2), b**3, commutator(a, b.conjugate(a**5))],
    ]

    for gens in lst:
        H = F.subgroup(gens)
        assert H.rank() <= len(gens)
        for gen in gens:
            assert H.contains_element(gen)
        for gen in H.gens():
            assert F.subgroup(gens).contains_element(gen)

    H = F.subgroup([a**2, b])
    assert not H.contains_element(a)
    assert not H.is_trivial()
    assert F.empty_subgroup().is_trivial()


def test_normal_closure_intersection_and_index():
    F = FreeGroup(("a", "b"))
    a, b = F.gens()

    even_a = F.normal_subgroup([a**2, b])
    even_b = F.normal_subgroup([a, b**2])
    klein = F.normal_subgroup([a**2, b**2, commutator(a, b)])

    assert even_a.index() == 2
    assert klein.index() == 4
    assert klein.is_normal_in(F)
    assert klein.rank() == 1 + 4 * (F.rank() - 1)

    intersection = F.intersect_subgroups([even_a, even_b])
    assert intersection == klein
    assert even_a.contains_subgroup(klein)
    assert klein.index_in(even_a) == 2
    assert not klein.contains_subgroup(even_a)

    assert not F.subgroup([a]).has_finite_index_in(F)

    # The stabiliser of a point under S3 acting on three points.
    stabiliser = F.subgroup([b, a**2, a * b**2 * ~a, a * b * a * ~b * ~a])
    assert stabiliser.index() == 3
    assert not stabiliser.is_normal_in(F)


def test_homomorphisms():
    F = FreeGroup(("a", "b"))
    a, b = F.gens()
    mirror = FreeGroupEndomorphism(F, (~a, ~b))
    assert mirror(a * b**2) == ~a * ~b * ~b
    assert mirror**2 == FreeGroupHomomorphism.identity(F)

    G = FreeGroup(("a", "b"))
    there = FreeGroupHomomorphism.by_position(F, G)
    back = FreeGroupHomomorphism.by_position(G, F)
    w = a * ~b * a
    assert there(w).free_group is G
    assert back(there(w)) == w
    assert there * back == FreeGroupHomomorphism.identity(F)


def test_finite_group():
    F = FreeGroup(("a", "b"))
    a, b = F.gens()
    S3 = FiniteGroup.quotient(
        F.full_subgroup(), F.normal_subgroup([a**2, b**2, (a * b) ** 3])
    )
    assert S3.order() == 6
    assert len(S3.elements()) == 6
    assert S3.element(a).order() == 2
    assert S3.element(a * b).order() == 3
    assert S3.element(a * b * a) == S3.element(b * a * b)
    assert not S3.is_abelian()
    assert S3.exponent() == 6

    with pytest.raises(ValueError):
        FiniteGroup.quotient(
            F.full_subgroup(), F.subgroup([b, a**2, a * b**2 * ~a, a * b * a * ~b * ~a])
        )
    with pytest.raises(NotImplementedError):
        FiniteGroup.quotient(F.full_subgroup(), F.subgroup([a]))


def test_triangle_group():
    T = ProperTriangleGroup.get((4, 4, 2))
    assert T is ProperTriangleGroup.get([4, 4, 2])
    assert T == ProperTriangleGroup(4, 4, 2)
    assert not T.is_hyperbolic()
    assert T.genus(8) == 1

    klein = ProperTriangleGroup.get((2, 3, 7))
    assert klein.is_hyperbolic()
    assert klein.euler_characteristic() == Fraction(-1, 42)
    assert klein.genus(168) == 3

    x, y, z = T.gens()
    assert x * y * z == T.free_group.identity()
    assert T.mirror()(x * y) == ~x * ~y

    with pytest.raises(ValueError):
        ProperTriangleGroup(1, 4, 4)


def test_quotient_library():
    library = QuotientLibrary.parse(LIBRARY)
    assert len(library) == 4
    assert library.signatures() == [(4, 4, 2)]
    quotients = library.list_quotients((4, 4, 2), 66)
    assert [q.identifier() for q in quotients] == [(1, 1), (1, 2), (1, 3), (1, 4)]
    assert library.list_quotients((2, 3, 7), 66) == []
    assert library.list_quotients((4, 4, 2), 0) == []

    assert QuotientLibrary.parse(library.format()).format() == library.format()

    with pytest.raises(ValueError):
        library.quotient((4, 4, 2), 1, 9)
    with pytest.raises(ValueError):
        QuotientLibrary.parse("[4, 4, 2] X1.1 : x")
    with pytest.raises(ValueError):
        QuotientLibrary.parse(LIBRARY + "[4, 4, 2] R1.1 : x\n")


def test_quotients():
    library = QuotientLibrary.parse(LIBRARY)
    z2, z2_x, z4, klein = library.list_quotients((4, 4, 2), 66)

    assert [q.order() for q in (z2, z2_x, z4, klein)] == [2, 2, 4, 4]
    assert z4.is_smooth()
    assert not klein.is_smooth()
    assert z4.name() == "R1.3"
    assert z4.group().is_abelian()

    T = z4.triangle_group
    x, y = T.free_group.gens()
    unflagged = TGQuotient(T, 1, 3, [x * ~y])
    assert unflagged.is_mirror_symmetric()
    assert unflagged.same_translation_group(z4)
    assert not unflagged.same_translation_group(klein)

    with pytest.raises(ValueError):
        TGQuotient(T, 1, 1, [])


def test_translation_group_cache():
    library = QuotientLibrary.parse(LIBRARY)
    cache = TranslationGroupCache()
    quotients = library.list_quotients((4, 4, 2), 66)
    first = [q.translation_group(cache) for q in quotients]
    assert len(cache) == 4
    second = [q.translation_group(cache) for q in quotients]
    assert all(g is h for g, h in zip(first, second))
    assert cache.hits == 4

    cache.flush()
    assert len(cache) == 0
    third = quotients[0].translation_group(cache)
    assert third is not first[0]
    assert third == first[0]


def test_identify_translation_group():
    library = QuotientLibrary.parse(LIBRARY)
    z2, z2_x, z4, klein = library.list_quotients((4, 4, 2), 66)
    T = z4.triangle_group

    intersection = T.free_group.intersect_subgroups(
        [z2.translation_group(), z4.translation_group()]
    )
    assert library.identify(T, intersection) is z4

    smaller = T.free_group.intersect_subgroups(
        [z4.translation_group(), klein.translation_group()]
    )
    assert library.identify(T, smaller) is None
    anonymous = library.quotient_from_translation_group(T, smaller)
    assert anonymous.identifier() == (1, None)
    assert anonymous.order() == 8
