import pytest
from mfind.mfind_reference import parse_reference
from mfind.mfind_datatypes import Name, Lookup, CallSuffix


def nodes_of(text):
    res = parse_reference(text)
    assert res.status == "success", res.error_message
    return res.nodes


def test_bare_name():
    assert nodes_of("hello") == [Name("hello")]

def test_instance_method_reference():
    assert nodes_of("Foo#bar") == [Name("Foo"), Lookup("#", "bar")]

def test_dot_and_double_colon():
    assert nodes_of("obj.meth") == [Name("obj"), Lookup(".", "meth")]
    assert nodes_of("Outer::Inner.meth") == [Name("Outer"), Lookup("::", "Inner"), Lookup(".", "meth")]

def test_predicate_and_bang_names():
    assert nodes_of("Dict#has_key?") == [Name("Dict"), Lookup("#", "has_key?")]
    assert nodes_of("obj.save!") == [Name("obj"), Lookup(".", "save!")]
    assert nodes_of("obj.name=") == [Name("obj"), Lookup(".", "name=")]

def test_operator_method_names():
    assert nodes_of("Integer#+") == [Name("Integer"), Lookup("#", "+")]
    assert nodes_of("Integer#<=>") == [Name("Integer"), Lookup("#", "<=>")]
    assert nodes_of("Dict#[]") == [Name("Dict"), Lookup("#", "[]")]
    assert nodes_of("Dict#[]=") == [Name("Dict"), Lookup("#", "[]=")]

def test_intermediate_new_becomes_call_suffix():
    assert nodes_of("_klass.new.hello") == [Name("_klass"), CallSuffix("new"), Lookup(".", "hello")]

def test_trailing_new_stays_a_lookup():
    assert nodes_of("Foo.new") == [Name("Foo"), Lookup(".", "new")]

def test_directly_appended_index_suffix():
    assert nodes_of("f[]") == [Name("f"), CallSuffix("[]")]
    assert nodes_of("_klass.new[]") == [Name("_klass"), CallSuffix("new"), CallSuffix("[]")]

def test_surrounding_whitespace_is_ignored():
    assert nodes_of("  Foo#bar \n") == [Name("Foo"), Lookup("#", "bar")]

@pytest.mark.parametrize("text", [
    "", "   ", None, "Foo#", "#bar", "a..b", "Foo##bar", "foo bar", "Foo#bar baz", "a.(b)", "1.to_s",
])
def test_malformed_references_are_errors_not_exceptions(text):
    res = parse_reference(text)
    assert res.status == "error"
    assert res.nodes == []
    assert res.error_message
