import pytest

from reprgen.kernel.ast import App, BVar, Ind, Univ
from reprgen.kernel.env import Environment
from reprgen.kernel.inductive import ConstructorDescriptor as C
from reprgen.kernel.inductive import Finiteness, TypeDescriptor
from reprgen.kernel.telescope import Telescope
from reprgen.prelude import NAT, builtin_environment

TYPE = Univ(0)


def _args(*pairs):
    return Telescope.from_pairs(*pairs)


ENUM = TypeDescriptor("Enum", constructors=(C("A"), C("B")))

BOOL = TypeDescriptor("Bool", constructors=(C("true"), C("false")))

RECORD = TypeDescriptor(
    "Record",
    constructors=(
        C("MkRecord", _args(("a", Ind("Bool")), ("b", Ind("Bool")), ("c", Ind("Bool")))),
    ),
    finiteness=Finiteness.RECORD,
)

# List (A : Type) := Nil | Cons (hd : A) (tl : List A)
LIST = TypeDescriptor(
    "List",
    params=_args(("A", TYPE)),
    constructors=(
        C("Nil"),
        C("Cons", _args(("hd", BVar(0)), ("tl", App(Ind("List"), (BVar(1),))))),
    ),
)

BOX = TypeDescriptor(
    "Box",
    params=_args(("A", TYPE)),
    constructors=(C("MkBox", _args(("v", BVar(0)))),),
    finiteness=Finiteness.RECORD,
)

# Vec (A : Type) : Nat -> Type := vnil | vcons (n : Nat) (hd : A) (tl : Vec A n)
VEC = TypeDescriptor(
    "Vec",
    params=_args(("A", TYPE)),
    indices=_args(("n", NAT)),
    constructors=(
        C("vnil"),
        C(
            "vcons",
            _args(("n", NAT), ("hd", BVar(1)), ("tl", App(Ind("Vec"), (BVar(2), BVar(1))))),
        ),
    ),
)

# Rose (A : Type) := node (label : A) (kids : List (Rose A))
ROSE = TypeDescriptor(
    "Rose",
    params=_args(("A", TYPE)),
    constructors=(
        C(
            "node",
            _args(
                ("label", BVar(0)),
                ("kids", App(Ind("List"), (App(Ind("Rose"), (BVar(1),)),))),
            ),
        ),
    ),
)

TAGGED = TypeDescriptor(
    "Tagged",
    params=_args(("n", NAT)),
    constructors=(C("MkTagged"),),
)

STREAM = TypeDescriptor(
    "Stream",
    params=_args(("A", TYPE)),
    constructors=(
        C("SCons", _args(("hd", BVar(0)), ("tl", App(Ind("Stream"), (BVar(1),))))),
    ),
    finiteness=Finiteness.COINDUCTIVE,
)

EVEN = TypeDescriptor(
    "Even",
    constructors=(C("zero"), C("succ", _args(("n", Ind("Odd"))))),
    mutual=("Even", "Odd"),
)

ALL = (ENUM, BOOL, RECORD, LIST, BOX, VEC, ROSE, TAGGED, STREAM, EVEN)


@pytest.fixture
def descs() -> dict[str, TypeDescriptor]:
    return {d.name: d for d in ALL}


@pytest.fixture
def env() -> Environment:
    result = builtin_environment()
    for desc in ALL:
        result = result.add_inductive(desc)
    return result
