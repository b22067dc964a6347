import pytest

from reprgen.config import DEFAULT_CONFIG, DeriveConfig
from reprgen.deriving.repr import (
    _Deriver,
    allocate_signature,
    derive_repr,
    is_recursive,
    needs_dict,
    validate,
)
from reprgen.errors import UnsupportedShape
from reprgen.kernel.ast import (
    App,
    BVar,
    Case,
    Fix,
    Hole,
    Ind,
    Lam,
    Let,
    Pi,
    Univ,
    decompose_app,
)
from reprgen.prelude import CTOR_APP, NAT, REPR_MK, repr_class


def _strip_lams(term, n):
    for _ in range(n):
        assert isinstance(term, Lam)
        term = term.body
    return term


def _fix_dispatch(derivation):
    """The ``Case`` inside ``fix rec. λ sig. let rec_inst := …; case``."""
    fix = derivation.function.body
    assert isinstance(fix, Fix)
    n = fix.defs[0].rec_arg + 1
    let = _strip_lams(fix.defs[0].body, n)
    assert isinstance(let, Let)
    return let


@pytest.mark.parametrize("name", ["Stream", "Even"])
def test_unsupported_shapes_are_rejected(descs, name) -> None:
    with pytest.raises(UnsupportedShape, match=name):
        validate(descs[name])
    with pytest.raises(UnsupportedShape):
        derive_repr(descs[name])


def test_recursion_detection(descs) -> None:
    assert is_recursive(descs["List"])
    assert is_recursive(descs["Rose"])
    assert is_recursive(descs["Vec"])
    assert not is_recursive(descs["Box"])
    assert not is_recursive(descs["Enum"])


def test_only_universe_parameters_get_dictionaries(descs) -> None:
    assert needs_dict(Univ(0))
    assert not needs_dict(NAT)
    assert derive_repr(descs["List"]).dict_params == (True,)
    assert derive_repr(descs["Tagged"]).dict_params == (False,)


def test_non_recursive_function_is_plain_dispatch(descs) -> None:
    derivation = derive_repr(descs["Enum"])
    assert not derivation.function.is_fix
    case = _strip_lams(derivation.function.body, 2)
    assert isinstance(case, Case)
    assert [b.ctor for b in case.branches] == ["A", "B"]
    assert case.scrutinee == BVar(0)
    for b in case.branches:
        head, args = decompose_app(b.body)
        assert head == CTOR_APP
        assert args[0].value == b.ctor
        # prec is the binder just outside the subject
        assert args[1] == BVar(1)


def test_recursive_function_is_a_fix_over_the_whole_signature(descs) -> None:
    derivation = derive_repr(descs["List"])
    fix = derivation.function.body
    assert derivation.function.is_fix
    assert isinstance(fix, Fix) and len(fix.defs) == 1
    # A, inst_A, prec, x
    assert fix.defs[0].rec_arg == 3
    assert fix.defs[0].ty == derivation.function.ty


def test_self_capability_is_let_bound_around_the_dispatch(descs) -> None:
    let = _fix_dispatch(derive_repr(descs["List"]))
    assert let.name == "rec_inst"
    assert let.arg_ty == repr_class(App(Ind("List"), (BVar(3),)))
    assert decompose_app(let.value)[0] == REPR_MK
    case = let.body
    assert isinstance(case, Case)
    assert [b.ctor for b in case.branches] == ["Nil", "Cons"]
    assert [len(b.names) for b in case.branches] == [0, 2]


def _erase_hole_ids(term):
    if isinstance(term, Hole):
        return Hole(0, _erase_hole_ids(term.ty))
    return term.map_one(_erase_hole_ids)


def test_stubbed_self_capability_gives_plain_dispatch_shape(descs) -> None:
    lst = descs["List"]
    let = _fix_dispatch(derive_repr(lst))
    # A sits above inst_A, prec and x
    stub = Hole(-1, repr_class(App(Ind("List"), (BVar(3),))))
    stubbed = let.body.subst_range((stub,))

    sig = allocate_signature(lst)
    plain = _Deriver(lst, DEFAULT_CONFIG).dispatch(sig, sig.ctx, None)
    expected = _strip_lams(sig.ctx.mk_lams(sig.names, plain), len(sig.names))

    assert _erase_hole_ids(stubbed) == _erase_hole_ids(expected)


def test_non_recursive_dispatch_matches_its_constructors(descs) -> None:
    box = descs["Box"]
    case = _strip_lams(derive_repr(box).function.body, 4)
    assert isinstance(case, Case)
    assert [b.ctor for b in case.branches] == [c.name for c in box.constructors]


def test_holes_left_for_foreign_arguments_only(descs) -> None:
    assert derive_repr(descs["Enum"]).holes == ()
    assert len(derive_repr(descs["Record"]).holes) == 3
    # hd needs Repr A; tl goes through the self capability
    assert len(derive_repr(descs["List"]).holes) == 1
    # n needs Repr Nat, hd needs Repr A
    assert len(derive_repr(descs["Vec"]).holes) == 2


def test_instance_value_is_closed(descs) -> None:
    derivation = derive_repr(descs["List"])
    assert derivation.instance_name == "repr_List"
    assert derivation.instance_value.loose_bvar_range() == 0
    assert not derivation.instance_value.free_names()


def test_instance_type_binds_params_then_dictionaries(descs) -> None:
    ty = derive_repr(descs["List"]).instance_ty
    assert ty == Pi(
        Univ(0),
        Pi(repr_class(BVar(0)), repr_class(App(Ind("List"), (BVar(1),))), name="inst_A"),
        name="A",
    )


def test_instance_prefix_comes_from_config(descs) -> None:
    config = DeriveConfig(instance_prefix="show_")
    assert derive_repr(descs["Enum"], config).instance_name == "show_Enum"
