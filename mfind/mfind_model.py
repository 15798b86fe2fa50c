"""
An in-memory object model and the adapter that exposes it to the engine.

This is the reference embedding: classes and modules with single
inheritance, included and extended modules, lazily created singleton scopes
and method tables mapping names to Implementation objects. A tiny evaluator
understands `self`, locals, constant paths and calls of zero-argument methods
that carry a Python body.
"""

import itertools
from typing import Any, Callable, Dict, List, Optional, Sequence

from mfind.mfind_adapter import ObjectModelAdapter
from mfind.mfind_datatypes import (
    CallSuffix, EvaluationFailure, ExecutionContext, Lookup, Param,
    ReferenceParseError, Sig, SourceLocation
)
from mfind.mfind_order import ResolutionOrder
from mfind.mfind_reference import parse_reference

_DEFAULT = object()

# =================================================================
# Object graph
# =================================================================

class Implementation:
    """A method body. Its object identity is the callable identity.

    `name` is the name it was defined under; aliases share the same object.
    `body`, when present, is a Python callable taking the receiver and is
    only ever run by the evaluator.
    """
    _serials = itertools.count(1)

    def __init__(self, name: str, params=None, location=None, source: Optional[str] = None,
                 body: Optional[Callable[[Any], Any]] = None, primitive: bool = False):
        self.name = name
        self.sig = Sig([p if isinstance(p, Param) else Param.parse(p) for p in (params or [])])
        if isinstance(location, tuple):
            location = SourceLocation(*location)
        self.location: Optional[SourceLocation] = location
        self.source = source
        self.body = body
        self.primitive = primitive
        self.serial = next(Implementation._serials)

    def __repr__(self) -> str:
        where = f" at {self.location}" if self.location else ""
        return f"<Implementation {self.sig.render(self.name)}{where}>"


class Entity:
    """A class, module or singleton scope."""
    def __init__(self, name: Optional[str] = None, kind: str = "class",
                 superclass: Optional['Entity'] = None, attached: Any = None):
        if kind not in ("class", "module", "singleton"):
            raise ValueError(f"unknown entity kind {kind!r}")
        self.name = name
        self.kind = kind
        self.superclass = superclass
        self.attached = attached
        self.includes: List['Entity'] = []
        self.extends: List['Entity'] = []
        self.methods: Dict[str, Implementation] = {}
        self.singleton: Optional['Entity'] = None

    @property
    def is_module(self) -> bool:
        return self.kind == "module"

    def define_method(self, name: str, params=None, location=None, source: Optional[str] = None,
                      body: Optional[Callable[[Any], Any]] = None, primitive: bool = False) -> Implementation:
        impl = Implementation(name, params, location, source, body, primitive)
        self.methods[name] = impl
        return impl

    def alias_method(self, new_name: str, old_name: str) -> Implementation:
        """Binds new_name to whatever old_name currently resolves to."""
        impl = self.find_method(old_name)
        if impl is None:
            raise KeyError(f"undefined method '{old_name}' for {self!r}")
        self.methods[new_name] = impl
        return impl

    def remove_method(self, name: str):
        if name not in self.methods:
            raise KeyError(f"method '{name}' not defined in {self!r}")
        del self.methods[name]

    def find_method(self, name: str) -> Optional[Implementation]:
        """Own table, then included modules (latest first), then the superclass."""
        if name in self.methods:
            return self.methods[name]
        for mod in reversed(self.includes):
            impl = mod.find_method(name)
            if impl is not None:
                return impl
        if self.superclass is not None:
            return self.superclass.find_method(name)
        return None

    def include(self, *modules: 'Entity'):
        """Mixes modules into instance lookup, preserving order and avoiding duplicates."""
        for mod in modules:
            _require_module(mod)
            if mod not in self.includes:
                self.includes.append(mod)

    def extend(self, *modules: 'Entity'):
        """Mixes modules into this entity's own (singleton) lookup."""
        for mod in modules:
            _require_module(mod)
            if mod not in self.extends:
                self.extends.append(mod)

    def singleton_class(self) -> 'Entity':
        if self.singleton is None:
            self.singleton = Entity(kind="singleton", attached=self)
        return self.singleton

    def define_singleton_method(self, name: str, **kwargs) -> Implementation:
        return self.singleton_class().define_method(name, **kwargs)

    def __repr__(self) -> str:
        if self.kind == "singleton":
            return f"#<Class:{self.attached!r}>"
        if self.name:
            return self.name
        return f"#<{'Module' if self.is_module else 'Class'}:0x{id(self):x}>"


class Instance:
    """A plain value: an instance of a class with an optional singleton scope."""
    def __init__(self, cls: Entity):
        self.cls = cls
        self.singleton: Optional[Entity] = None
        self.ivars: Dict[str, Any] = {}

    def singleton_class(self) -> Entity:
        if self.singleton is None:
            self.singleton = Entity(kind="singleton", attached=self)
        return self.singleton

    def extend(self, *modules: Entity):
        self.singleton_class().include(*modules)

    def define_singleton_method(self, name: str, **kwargs) -> Implementation:
        return self.singleton_class().define_method(name, **kwargs)

    def __repr__(self) -> str:
        return f"#<{self.cls!r}>"


def _require_module(mod):
    if not isinstance(mod, Entity) or not mod.is_module:
        raise TypeError(f"wrong argument type {mod!r} (expected module)")

# =================================================================
# Environment
# =================================================================

class ObjectModel:
    """A complete object graph: the core hierarchy, constants and a main object."""

    BUILTIN_FILE = "(builtin)"

    def __init__(self):
        self.constants: Dict[str, Any] = {}
        self._adapter: Optional['ModelAdapter'] = None

        self.base_object = self.define_class("BaseObject", superclass=None)
        self.kernel = self.define_module("Kernel")
        self.object = self.define_class("Object", superclass=self.base_object)
        self.object.include(self.kernel)
        self.module_class = self.define_class("Module", superclass=self.object)
        self.class_class = self.define_class("Class", superclass=self.module_class)

        self.base_object.define_method("initialize", primitive=True, body=lambda recv: None)
        self.base_object.define_method("__send__", ["req name", "rest args"], primitive=True)
        self.kernel.define_method("method", ["req name"], primitive=True)
        self.kernel.define_method("send", ["req name", "rest args"], primitive=True)
        self.kernel.define_method("describe", primitive=True, body=repr)
        self.kernel.define_method("freeze", primitive=True, body=lambda recv: recv)
        self.module_class.define_method("instance_method", ["req name"], primitive=True)
        self.module_class.define_method("include", ["rest modules"], primitive=True)
        self.class_class.define_method("new", ["rest args", "block"], primitive=True, body=self.new)
        self.class_class.define_method("allocate", primitive=True, body=lambda recv: Instance(recv))
        self.class_class.define_method("superclass", primitive=True, body=lambda recv: recv.superclass)

        self.integer = self.define_class("Integer")
        self.float = self.define_class("Float")
        self.string = self.define_class("String")
        self.boolean = self.define_class("Boolean")
        self.nil = self.define_class("Nil")
        self.list = self.define_class("List")
        self.dict = self.define_class("Dict")
        for cls in (self.list, self.dict, self.string):
            cls.define_method("[]", ["req index"], primitive=True)
            cls.define_method("size", primitive=True, body=len)
        self.dict.define_method("has_key?", ["req key"], primitive=True)
        for alias in ("key?", "include?", "member?"):
            self.dict.alias_method(alias, "has_key?")
        self.list.alias_method("length", "size")

        self.main = Instance(self.object)

    @property
    def adapter(self) -> 'ModelAdapter':
        if self._adapter is None:
            self._adapter = ModelAdapter(self)
        return self._adapter

    # --- building ------------------------------------------------------------

    def define_class(self, name: Optional[str] = None, superclass=_DEFAULT,
                     namespace: Optional[Entity] = None) -> Entity:
        if superclass is _DEFAULT:
            superclass = self.object
        entity = Entity(self._qualify(name, namespace), kind="class", superclass=superclass)
        self._register(entity)
        return entity

    def define_module(self, name: Optional[str] = None, namespace: Optional[Entity] = None) -> Entity:
        entity = Entity(self._qualify(name, namespace), kind="module")
        self._register(entity)
        return entity

    def _qualify(self, name: Optional[str], namespace: Optional[Entity]) -> Optional[str]:
        if name and namespace is not None and namespace.name:
            return f"{namespace.name}::{name}"
        return name

    def _register(self, entity: Entity):
        if entity.name:
            self.constants[entity.name] = entity

    def new(self, entity) -> Instance:
        """Instantiates entity and runs its initialize body, if any."""
        if not isinstance(entity, Entity) or entity.kind != "class":
            raise TypeError(f"cannot instantiate {entity!r}")
        obj = Instance(entity)
        init = entity.find_method("initialize")
        if init is not None and init.body is not None:
            init.body(obj)
        return obj

    def class_of(self, value) -> Entity:
        match value:
            case Instance():
                return value.cls
            case Entity(kind="module"):
                return self.module_class
            case Entity():
                return self.class_class
            case None:
                return self.nil
            case bool():
                return self.boolean
            case int():
                return self.integer
            case float():
                return self.float
            case str():
                return self.string
            case list():
                return self.list
            case dict():
                return self.dict
            case _:
                return self.object

    # --- contexts ------------------------------------------------------------

    def binding_for(self, value, **local_vars) -> ExecutionContext:
        """A context whose self is value, as if evaluating inside its body."""
        return ExecutionContext(receiver=value, locals=dict(local_vars))

    def top_level_context(self, **local_vars) -> ExecutionContext:
        return ExecutionContext(receiver=self.main, locals=dict(local_vars), top_level=True)

    def capture(self, receiver, impl: Implementation, lexical_owner: Optional[Entity] = None,
                parent: Optional[ExecutionContext] = None, **local_vars) -> ExecutionContext:
        """The context of a frame running impl on receiver."""
        return ExecutionContext(
            receiver=receiver,
            location=impl.location,
            lexical_owner=lexical_owner,
            method_name=impl.name,
            locals=dict(local_vars),
            parent=parent,
        )

# =================================================================
# Adapter and evaluator
# =================================================================

class ModelEvaluator:
    """Evaluates `self`, locals, constant paths and zero-argument calls."""
    def __init__(self, model: ObjectModel, order: ResolutionOrder):
        self.model = model
        self.order = order

    def evaluate(self, expression: str, context: ExecutionContext) -> Any:
        try:
            nodes = parse_reference(expression).unwrap()
        except ReferenceParseError as e:
            raise EvaluationFailure(expression, e.message) from e
        value = self._name(nodes[0].text, context)
        for node in nodes[1:]:
            if isinstance(node, CallSuffix):
                value = self._send(value, node.op)
            elif (isinstance(node, Lookup) and node.sep == '::' and isinstance(value, Entity)
                  and f"{value.name}::{node.name}" in self.model.constants):
                value = self.model.constants[f"{value.name}::{node.name}"]
            else:
                value = self._send(value, node.name)
        return value

    def _name(self, name: str, context: ExecutionContext) -> Any:
        match name:
            case "self":
                return context.receiver
            case "nil":
                return None
            case "true":
                return True
            case "false":
                return False
        if name in context.locals:
            return context.locals[name]
        if name in self.model.constants:
            return self.model.constants[name]
        try:
            return self._send(context.receiver, name)
        except EvaluationFailure:
            raise EvaluationFailure(name, f"undefined local variable or method '{name}'")

    def _send(self, value, name: str) -> Any:
        for owner in self.order.order_for(value):
            impl = owner.methods.get(name)
            if impl is None:
                continue
            if impl.body is None:
                raise EvaluationFailure(name, f"'{name}' cannot be run here")
            return impl.body(value)
        raise EvaluationFailure(name, f"undefined method '{name}' for {value!r}")


class ModelAdapter(ObjectModelAdapter):
    """Exposes an ObjectModel through the engine's adapter interface."""
    def __init__(self, model: ObjectModel):
        self.model = model
        self.evaluator = ModelEvaluator(model, ResolutionOrder(self))

    def nominal_class_of(self, value):
        return self.model.class_of(value)

    def singleton_scope_of(self, value) -> Optional[Entity]:
        if isinstance(value, (Entity, Instance)):
            return value.singleton
        return None

    def superclass_of(self, entity) -> Optional[Entity]:
        if entity.kind != "singleton":
            return entity.superclass
        attached = entity.attached
        if not isinstance(attached, Entity):
            return self.model.class_of(attached)
        # Nearest existing singleton scope up the chain; scopes are not created here.
        anc = attached.superclass
        while anc is not None:
            if anc.singleton is not None:
                return anc.singleton
            anc = anc.superclass
        return self.model.class_of(attached)

    def included_modules_of(self, entity) -> Sequence[Entity]:
        return list(entity.includes)

    def extended_modules_of(self, entity) -> Sequence[Entity]:
        return list(entity.extends)

    def method_defined_on(self, entity, name: str) -> Optional[Implementation]:
        return entity.methods.get(name)

    def method_names_on(self, entity) -> List[str]:
        return list(entity.methods)

    def source_location_of(self, impl) -> Optional[SourceLocation]:
        return impl.location

    def parameters_of(self, impl) -> List[Param]:
        return list(impl.sig.params)

    def is_entity(self, value) -> bool:
        return isinstance(value, Entity)

    def lookup_entity(self, name: str) -> Optional[Entity]:
        found = self.model.constants.get(name)
        return found if isinstance(found, Entity) else None

    def evaluate(self, expression: str, context: ExecutionContext) -> Any:
        try:
            return self.evaluator.evaluate(expression, context)
        except EvaluationFailure:
            raise
        except Exception as e:
            raise EvaluationFailure(expression, f"{type(e).__name__}: {e}") from e

    def construct(self, entity) -> Instance:
        try:
            return self.model.new(entity)
        except TypeError as e:
            raise EvaluationFailure("new", str(e)) from e
        except Exception as e:
            raise EvaluationFailure("new", f"{type(e).__name__}: {e}") from e

    def source_text_of(self, impl) -> Optional[str]:
        return impl.source

    def defined_name_of(self, impl) -> Optional[str]:
        return impl.name

    def definition_serial_of(self, impl) -> int:
        return impl.serial

    def entity_name(self, entity) -> Optional[str]:
        return repr(entity)
