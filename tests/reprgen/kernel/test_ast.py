import pytest

from reprgen.kernel.ast import (
    App,
    Branch,
    BVar,
    Case,
    Const,
    FVar,
    Fix,
    FixDef,
    Hole,
    Lam,
    Let,
    Lit,
    Motive,
    Pi,
    Univ,
    decompose_app,
    mk_app,
)


def _depths(term):
    seen = []

    def visit(depth, t):
        seen.append((depth, t))
        return t

    term.map_one_with_binders(lambda d: d + 1, visit, 0)
    return seen


def test_map_one_rewrites_every_immediate_child() -> None:
    term = App(FVar("f"), (FVar("a"), FVar("b")))
    c = Const("c")
    assert term.map_one(lambda _t: c) == App(c, (c, c))


def test_map_one_returns_leaves_unchanged() -> None:
    leaf = BVar(3)
    assert leaf.map_one(lambda _t: Const("never")) is leaf


def test_binder_depth_for_lambda_and_let() -> None:
    lam = Lam(Const("T"), BVar(0))
    assert _depths(lam) == [(0, Const("T")), (1, BVar(0))]

    let = Let(Const("T"), Lit(1), BVar(0))
    assert _depths(let) == [(0, Const("T")), (0, Lit(1)), (1, BVar(0))]


def test_binder_depth_for_case_counts_motive_and_branch_names() -> None:
    case = Case(
        "I",
        FVar("s"),
        Motive(("i", "x"), Const("M")),
        (Branch("C", ("a", "b", "c"), Const("B")),),
    )
    assert sorted(_depths(case), key=lambda p: p[0]) == [
        (0, FVar("s")),
        (2, Const("M")),
        (3, Const("B")),
    ]


def test_binder_depth_for_fix_bodies_is_group_size() -> None:
    fix = Fix(
        (FixDef("f", Const("F"), Const("bf"), 0), FixDef("g", Const("G"), Const("bg"), 0))
    )
    depths = dict((t.name, d) for d, t in _depths(fix))
    assert depths == {"F": 0, "bf": 2, "G": 0, "bg": 2}


def test_shift_respects_cutoff() -> None:
    term = Lam(Univ(), App(BVar(1), (BVar(0),)))
    assert term.shift(2) == Lam(Univ(), App(BVar(3), (BVar(0),)))


def test_abstract_turns_names_into_indices_under_binders() -> None:
    term = Lam(FVar("A"), App(FVar("f"), (BVar(0), FVar("x"))))
    assert term.abstract(("x", "f")) == Lam(FVar("A"), App(BVar(2), (BVar(0), BVar(1))))


@pytest.mark.parametrize(
    "term",
    [
        Lam(FVar("A"), App(FVar("f"), (BVar(0), FVar("x")))),
        Pi(FVar("g"), Pi(BVar(0), App(FVar("f"), (BVar(1),)))),
        Let(FVar("A"), FVar("g"), App(BVar(0), (FVar("f"),))),
        Case(
            "L",
            FVar("s"),
            Motive(("x",), FVar("f")),
            (Branch("C", ("a", "b"), App(FVar("f"), (BVar(1), FVar("g")))),),
        ),
        Fix((FixDef("r", FVar("g"), Lam(FVar("f"), App(BVar(1), (BVar(0),))), 0),)),
    ],
)
def test_instantiate_inverts_abstract(term) -> None:
    names = ("f", "g")
    abstracted = term.abstract(names)
    assert abstracted.free_names().isdisjoint(names)
    assert abstracted.instantiate(names) == term


def test_instantiate_lowers_indices_above_the_range() -> None:
    assert BVar(3).instantiate(("a", "b")) == BVar(1)
    assert Lam(Univ(), BVar(2)).instantiate(("a",)) == Lam(Univ(), BVar(1))
    assert Lam(Univ(), BVar(1)).instantiate(("a",)) == Lam(Univ(), FVar("a"))


def test_loose_bvar_range() -> None:
    assert Lam(Univ(), BVar(0)).loose_bvar_range() == 0
    assert Lam(Univ(), BVar(2)).loose_bvar_range() == 2
    assert Fix((FixDef("f", Univ(), BVar(1), 0),)).loose_bvar_range() == 1


def test_free_names_contains_and_holes() -> None:
    hole = Hole(7, Const("T"))
    term = Lam(FVar("A"), App(FVar("f"), (BVar(0), hole)))
    assert term.free_names() == frozenset({"A", "f"})
    assert term.contains(lambda t: t == Const("T"))
    assert not term.contains(lambda t: isinstance(t, Lit))
    assert term.holes() == (hole,)


def test_mk_app_flattens_and_decompose_app_splits() -> None:
    f, a, b = FVar("f"), FVar("a"), FVar("b")
    nested = mk_app(mk_app(f, a), b)
    assert nested == App(f, (a, b))
    assert decompose_app(nested) == (f, (a, b))
    assert decompose_app(f) == (f, ())
    assert mk_app(f) is f


def test_negative_index_rejected() -> None:
    with pytest.raises(ValueError, match="non-negative"):
        BVar(-1)
