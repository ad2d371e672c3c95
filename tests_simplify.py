import warnings

import pytest

from free_group import FreeGroup
from presentation import FinitelyPresentedGroup
from rewriting import (
    CompletionOptions,
    RewritingSystemCache,
    associated_monoid,
    complete,
    longest_rule,
)
from simplify import SimplificationWarning, SimplifyMethod, WordSimplifier, simplify_word


def s3() -> FinitelyPresentedGroup:
    return FinitelyPresentedGroup.from_strings(("a", "b"), ["a^2", "b^2", "(a*b)^3"])


def z11() -> FinitelyPresentedGroup:
    return FinitelyPresentedGroup.from_strings(("a",), ["a^11"])


def test_presentation():
    G = s3()
    assert repr(G) == "<a, b | a^2, b^2, a*b*a*b*a*b>"
    assert G.order() == 6
    assert G.equals(G.parse("a*b*a"), G.parse("b*a*b"))
    assert not G.equals(G.parse("a*b"), G.parse("b*a"))
    assert G.content_hash() == s3().content_hash()
    assert G.content_hash() != z11().content_hash()

    with pytest.raises(ValueError):
        G.equals(G.parse("a"), FreeGroup(("a", "b")).gens()[0])


def test_trivial_cases():
    G = s3()
    simplifier = WordSimplifier()
    for method in SimplifyMethod:
        assert simplifier.simplify(G, G.identity(), method=method).is_identity()
        assert simplifier.simplify(G, G.parse("a*a^-1*b^0"), method=method).is_identity()
        assert simplifier.simplify(G, G.parse("b"), method=method) == G.parse("b")
        w = G.parse("a*b*a*b")
        assert simplifier.simplify(G, w, method=method, lmax=0) == w
    assert len(simplifier.cache) == 0


def test_brute_force():
    G = s3()
    w = G.parse("a*b*a*b")
    assert simplify_word(G, w) == G.parse("b*a")
    assert simplify_word(G, w, method="BruteForce", lmax=2) == G.parse("b*a")
    # Nothing of length one is equal to w.
    assert simplify_word(G, w, lmax=1) == w

    assert simplify_word(G, G.parse("(a*b)^3*a")) == G.parse("a")
    aba = G.parse("a*b*a")
    assert simplify_word(G, aba) == aba


def test_knuth_bendix():
    G = s3()
    w = G.parse("a*b*a*b")
    with warnings.catch_warnings():
        warnings.simplefilter("error", SimplificationWarning)
        res = simplify_word(G, w, method=SimplifyMethod.KNUTH_BENDIX)
    assert res.length() == 2
    assert G.equals(res, w)


def test_methods_agree():
    G = s3()
    simplifier = WordSimplifier()
    for text in ["a*b*a", "b*a*b*a", "(a*b)^3*a", "a^3*b^-1*a*b^5", "(a*b^-1)^4"]:
        w = G.parse(text)
        brute = simplifier.simplify(G, w, method="BruteForce")
        completed = simplifier.simplify(G, w, method="KnuthBendix")
        assert G.equals(brute, w)
        assert G.equals(completed, w)
        assert brute.length() <= w.length()
        assert completed.length() == brute.length()


def test_knuth_bendix_cache():
    cache = RewritingSystemCache()
    simplifier = WordSimplifier(cache)
    G = s3()
    simplifier.simplify(G, G.parse("a*b*a*b"), method="KnuthBendix")
    assert len(cache) == 1
    assert G.content_hash() in cache

    # An equal presentation on a new free group reuses the system.
    H = s3()
    w = H.parse("b*a*b*a")
    res = simplifier.simplify(H, w, method="KnuthBendix")
    assert len(cache) == 1
    assert res.free_group is H.free_group
    assert H.equals(res, w)
    assert res.length() == 2

    Z = z11()
    simplifier.simplify(Z, Z.parse("a^8"), method="KnuthBendix")
    assert len(cache) == 2

    simplifier.flush()
    assert len(cache) == 0


def test_knuth_bendix_fallback():
    G = z11()
    w = G.parse("a^8")
    simplifier = WordSimplifier()

    # The completed system needs the rule a^6 -> a^-5, longer than 2 * (1 + 1).
    with pytest.warns(SimplificationWarning):
        res = simplifier.simplify(G, w, method="KnuthBendix", lmax=1)
    assert res == w
    assert len(simplifier.cache) == 0

    res = simplifier.simplify(G, w, method="KnuthBendix", lmax=5)
    assert res == G.parse("a^-3")
    assert len(simplifier.cache) == 1


def test_completion_is_bounded():
    monoid, _ = associated_monoid(z11())
    result = complete(monoid, CompletionOptions(max_stored_length=(1, 4)))
    assert not result.ok
    assert "length 6" in result.reason

    result = complete(monoid, CompletionOptions(max_stored_length=(5, 12)))
    assert result.ok
    assert longest_rule(result.system) <= 12


def test_knuth_bendix_infinite_group():
    # Shortlex completion of a hyperbolic triangle group never finishes.
    G = FinitelyPresentedGroup.from_strings(("x", "y"), ["x^2", "y^3", "(x*y)^7"])
    w = G.parse("(x*y)^7*x")
    simplifier = WordSimplifier()
    with pytest.warns(SimplificationWarning):
        res = simplifier.simplify(G, w, method="KnuthBendix", lmax=4)
    assert res == w
    assert len(simplifier.cache) == 0


def test_invalid_arguments():
    G = s3()
    w = G.parse("a*b")
    with pytest.raises(ValueError):
        simplify_word(G, w, method="Foo")
    x, y = FreeGroup(("a", "b")).gens()
    with pytest.raises(ValueError):
        simplify_word(G, x * y)
