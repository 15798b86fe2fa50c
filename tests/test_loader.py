import textwrap
import pytest
from mfind.mfind_loader import load_graph, load_graph_file, GraphFormatError
from mfind.mfind_finder import MethodFinder
from mfind.mfind_datatypes import Param, SourceLocation

ZOO = textwrap.dedent("""
    file: zoo.src
    modules:
      - name: Chewing
        methods:
          - {name: chew, line: 3, params: ["req food", "block"]}
      - name: Loud
        methods: [roar]
    classes:
      - name: Animal
        include: [Chewing]
        methods:
          - name: eat
            line: 10
            params:
              - req food
              - {kind: opt, name: amount}
            source: |
              def eat(food, amount = 1)
              end
        singleton_methods:
          - {name: census, line: 20}
        aliases: {fress: eat}
      - name: Cat
        superclass: Animal
        methods:
          - {name: eat, line: 30, file: cat.src}
    objects:
      rex:
        class: Animal
        extend: [Loud]
        singleton_methods:
          - {name: fetch, line: 40}
        aliases: {grab: fetch}
      tom: {class: Cat}
""")


@pytest.fixture
def zoo():
    return load_graph(ZOO)


def test_loads_entities_and_methods(zoo):
    model, objects = zoo
    animal = model.constants["Animal"]
    eat = animal.methods["eat"]
    assert eat.location == SourceLocation("zoo.src", 10)
    assert eat.sig.params == [Param("req", "food"), Param("opt", "amount")]
    assert eat.source.startswith("def eat")
    assert animal.includes == [model.constants["Chewing"]]
    assert animal.methods["fress"] is eat
    assert "census" in animal.singleton.methods

def test_superclass_defaults_to_object(zoo):
    model, _ = zoo
    assert model.constants["Animal"].superclass is model.object
    assert model.constants["Cat"].superclass is model.constants["Animal"]

def test_per_method_file_override(zoo):
    model, _ = zoo
    assert model.constants["Cat"].methods["eat"].location == SourceLocation("cat.src", 30)

def test_methods_without_line_have_no_location(zoo):
    model, _ = zoo
    assert model.constants["Loud"].methods["roar"].location is None

def test_objects(zoo):
    model, objects = zoo
    rex = objects["rex"]
    assert rex.cls is model.constants["Animal"]
    assert rex.singleton.includes == [model.constants["Loud"]]
    assert rex.singleton.methods["grab"] is rex.singleton.methods["fetch"]
    assert objects["tom"].singleton is None

def test_loaded_graph_resolves(zoo):
    model, objects = zoo
    finder = MethodFinder(model.adapter)
    ctx = model.top_level_context(**objects)
    assert finder.resolve_reference("rex.roar", ctx).owner is model.constants["Loud"]
    assert finder.resolve_reference("tom.eat", ctx).super_method().name == "eat"
    assert finder.resolve_reference("Animal#chew", ctx).signature() == "chew(food, &block)"
    assert finder.resolve_reference("Animal.census", ctx).source_line == 20
    assert finder.resolve_reference("rex.grab", ctx).aliases() == ["fetch"]

def test_default_file_name(tmp_path):
    path = tmp_path / "tiny.yaml"
    path.write_text("classes:\n  - name: Tiny\n    methods:\n      - {name: go, line: 2}\n", encoding="utf-8")
    model, objects = load_graph_file(str(path))
    assert objects == {}
    assert model.constants["Tiny"].methods["go"].location == SourceLocation("tiny.yaml", 2)

def test_reopening_adds_to_an_entity():
    model, _ = load_graph(textwrap.dedent("""
        classes:
          - name: Open
            methods: [a]
          - name: Open
            methods: [b]
    """))
    assert list(model.constants["Open"].methods) == ["a", "b"]

def test_empty_document():
    model, objects = load_graph("")
    assert objects == {}
    assert "Object" in model.constants

@pytest.mark.parametrize("text", [
    "- just\n- a list\n",
    "classes: {name: NotAList}\n",
    "classes:\n  - methods: [a]\n",
    "classes:\n  - name: A\n    superclass: Missing\n",
    "classes:\n  - name: A\n    include: [Object]\n",
    "classes:\n  - name: A\n    methods:\n      - {name: m, params: [\"splat x\"]}\n",
    "classes:\n  - name: A\n    methods:\n      - {name: m, params: [rest, rest]}\n",
    "classes:\n  - name: A\n    aliases: {b: missing}\n",
    "objects:\n  x: {}\n",
    "objects:\n  x: {class: Kernel}\n",
    "objects: [1, 2]\n",
    "classes:\n  - name: A\n    methods:\n      - {name: m, line: soon}\n",
    "classes: [\n",
])
def test_malformed_graphs(text):
    with pytest.raises(GraphFormatError):
        load_graph(text)

def test_reopening_with_the_same_superclass():
    model, objects = load_graph(textwrap.dedent("""
        modules:
          - name: Helping
            methods: [helper]
        classes:
          - name: Base
          - name: Open
            superclass: Base
          - name: Open
            superclass: Base
            methods: [m]
        objects:
          x: {class: Open, extend: [Helping], aliases: {assist: helper}}
    """))
    assert model.constants["Open"].superclass is model.constants["Base"]
    assert "m" in model.constants["Open"].methods
    x = objects["x"]
    assert x.singleton.methods["assist"] is model.constants["Helping"].methods["helper"]

@pytest.mark.parametrize("text, message", [
    ("classes:\n  - name: B\n  - name: A\n  - name: A\n    superclass: B\n", "superclass mismatch"),
    ("modules:\n  - name: Object\n", "already a class"),
    ("objects:\n  x: {class: Object, aliases: {y: freeze}}\n", "aliases need"),
])
def test_conflicting_graphs(text, message):
    with pytest.raises(GraphFormatError) as exc:
        load_graph(text)
    assert message in str(exc.value)
