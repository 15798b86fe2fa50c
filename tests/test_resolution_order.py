import pytest
from types import SimpleNamespace
from mfind.mfind_model import ObjectModel
from mfind.mfind_finder import MethodFinder
from mfind.mfind_datatypes import ResolutionCycleError


@pytest.fixture
def model():
    return ObjectModel()

@pytest.fixture
def finder(model):
    return MethodFinder(model.adapter)

@pytest.fixture
def ls(model):
    """A small hierarchy with includes and extends at several levels."""
    top = model.define_class("Top")
    nxt = model.define_class("Next", superclass=top)
    m = model.define_module("M")
    n = model.define_module("N")
    n.include(m)
    o = model.define_module("O")
    o.include(m)
    p = model.define_module("P")
    low = model.define_class("Low", superclass=nxt)
    low.include(n, p)
    lower = model.define_class("Lower", superclass=low)
    lower.extend(n)
    bottom = model.define_class("Bottom", superclass=lower)
    bottom.extend(o)
    # Materialize the singleton scopes so every class contributes one.
    for e in (top, nxt, low, lower, bottom, model.object, model.base_object):
        e.singleton_class()
    return SimpleNamespace(Top=top, Next=nxt, M=m, N=n, O=o, P=p, Low=low, Lower=lower, Bottom=bottom)


def eig(entity):
    return entity.singleton_class()

# --- instance orders ---

def test_class_then_superclass(finder, ls):
    assert finder.instance_resolution_order(ls.Next) == [ls.Next] + finder.instance_resolution_order(ls.Top)

def test_includes_sit_between_class_and_superclass(finder, ls):
    assert finder.instance_resolution_order(ls.Low) == (
        [ls.Low, ls.P, ls.N, ls.M] + finder.instance_resolution_order(ls.Next)
    )

def test_extended_modules_do_not_affect_instance_order(finder, ls):
    assert finder.instance_resolution_order(ls.Bottom) == [ls.Bottom] + finder.instance_resolution_order(ls.Lower)

def test_modules_expand_their_own_includes(finder, ls):
    assert finder.instance_resolution_order(ls.O) == [ls.O, ls.M]

def test_instance_order_ends_at_the_root(model, finder, ls):
    order = finder.instance_resolution_order(ls.Top)
    assert order == [ls.Top, model.object, model.kernel, model.base_object]

# --- value orders ---

def test_singleton_of_a_plain_value_comes_first(model, finder, ls):
    obj = model.new(ls.Low)
    obj.singleton_class()
    assert finder.resolution_order(obj) == [eig(obj)] + finder.instance_resolution_order(ls.Low)

def test_value_without_singleton_uses_its_class(model, finder, ls):
    obj = model.new(ls.Low)
    assert finder.resolution_order(obj) == finder.instance_resolution_order(ls.Low)

def test_primitive_values_have_no_singleton(model, finder):
    assert finder.resolution_order(4) == finder.instance_resolution_order(model.integer)
    assert finder.resolution_order("abc") == finder.instance_resolution_order(model.string)
    assert finder.resolution_order(None) == finder.instance_resolution_order(model.nil)

def test_entities_start_with_their_singleton_scopes(finder, ls):
    assert finder.resolution_order(ls.Low) == [eig(ls.Low)] + finder.resolution_order(ls.Next)

def test_extended_modules_follow_the_singleton_scope(finder, ls):
    assert finder.resolution_order(ls.Lower) == [eig(ls.Lower), ls.N, ls.M] + finder.resolution_order(ls.Low)

def test_modules_appear_at_most_once(finder, ls):
    order = finder.resolution_order(ls.Bottom)
    assert sum(1 for e in order if e is ls.M) == 1
    assert len({id(e) for e in order}) == len(order)

def test_first_reachable_position_wins(finder, ls):
    rest = [e for e in finder.resolution_order(ls.Lower) if e is not ls.M]
    assert finder.resolution_order(ls.Bottom) == [eig(ls.Bottom), ls.O, ls.M] + rest

def test_class_instance_order_follows_singleton_scopes(model, finder, ls):
    assert finder.resolution_order(ls.Top) == [
        eig(ls.Top), eig(model.object), eig(model.base_object),
        *finder.instance_resolution_order(model.class_class),
    ]

def test_modules_as_values_use_module_class(model, finder, ls):
    assert finder.resolution_order(ls.P) == finder.instance_resolution_order(model.module_class)

def test_order_reflects_later_changes(model, finder, ls):
    before = finder.instance_resolution_order(ls.Top)
    late = model.define_module("Late")
    ls.Top.include(late)
    assert finder.instance_resolution_order(ls.Top) == [ls.Top, late] + before[1:]

# --- cycles ---

def test_include_cycles_terminate(model, finder):
    x = model.define_module("X")
    y = model.define_module("Y")
    x.include(y)
    y.include(x)
    assert finder.instance_resolution_order(x) == [x, y]
    assert finder.instance_resolution_order(y) == [y, x]

def test_superclass_cycle_is_an_assertion_failure(model, finder):
    a = model.define_class("A")
    b = model.define_class("B", superclass=a)
    obj = model.new(b)
    a.superclass = b
    with pytest.raises(ResolutionCycleError):
        finder.instance_resolution_order(b)
    with pytest.raises(AssertionError):
        finder.resolution_order(obj)
