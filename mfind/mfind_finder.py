"""
The query surface of the lookup engine.

A MethodFinder wraps one ObjectModelAdapter and answers every question
against the object graph as it is at call time.
"""
from typing import Any, Dict, List, Optional

from mfind.mfind_adapter import ObjectModelAdapter
from mfind.mfind_context import ContextMatcher
from mfind.mfind_datatypes import ExecutionContext
from mfind.mfind_method import AliasIndex, MethodHandle
from mfind.mfind_order import ResolutionOrder
from mfind.mfind_resolver import ReferenceResolver


class MethodFinder:
    """Resolution orders, reference lookup and context matching for one object model."""

    def __init__(self, adapter: ObjectModelAdapter):
        self.adapter = adapter
        self.order = ResolutionOrder(adapter)
        self.alias_index = AliasIndex(adapter)
        self.resolver = ReferenceResolver(self)
        self.matcher = ContextMatcher(self)

    # --- resolution orders ---------------------------------------------------

    def resolution_order(self, entity_or_value) -> List[Any]:
        return self.order.order_for(entity_or_value)

    def instance_resolution_order(self, entity) -> List[Any]:
        return self.order.instance_order(entity)

    # --- references ----------------------------------------------------------

    def resolve_reference(self, text, context: ExecutionContext, options: Optional[Dict] = None) -> Optional[MethodHandle]:
        """Resolve "Entity#meth", "value.meth", "Outer::Inner.meth", ... or None."""
        return self.resolver.resolve(text, context, options)

    def resolve_reference_strict(self, text, context: ExecutionContext, options: Optional[Dict] = None) -> MethodHandle:
        return self.resolver.resolve_strict(text, context, options)

    # --- contexts ------------------------------------------------------------

    def method_handle_from_context(self, context: ExecutionContext, reject_top_level: bool = False) -> Optional[MethodHandle]:
        return self.matcher.match(context, reject_top_level=reject_top_level)

    def caller_method(self, context: ExecutionContext, depth: int = 1) -> Optional[MethodHandle]:
        return self.matcher.match(context.caller(depth), reject_top_level=True)

    # --- direct lookups ------------------------------------------------------

    def from_entity(self, entity, name: str) -> Optional[MethodHandle]:
        """The unbound instance method name as seen from entity, or None."""
        for owner in self.order.instance_order(entity):
            impl = self.adapter.method_defined_on(owner, name)
            if impl is not None:
                return MethodHandle(self, owner, name, impl, origin=entity)
        return None

    def from_value(self, value, name: str) -> Optional[MethodHandle]:
        """The method name bound to value, or None."""
        for owner in self.order.order_for(value):
            impl = self.adapter.method_defined_on(owner, name)
            if impl is not None:
                return MethodHandle(self, owner, name, impl, receiver=value)
        return None

    def all_from_entity(self, entity) -> List[MethodHandle]:
        """One unbound handle per instance method name, attributed to its nearest owner."""
        out: List[MethodHandle] = []
        seen = set()
        for owner in self.order.instance_order(entity):
            for name in self.adapter.method_names_on(owner):
                if name in seen:
                    continue
                impl = self.adapter.method_defined_on(owner, name)
                if impl is None:
                    continue
                seen.add(name)
                out.append(MethodHandle(self, owner, name, impl, origin=entity))
        return out

    def all_from_value(self, value) -> List[MethodHandle]:
        out: List[MethodHandle] = []
        seen = set()
        for owner in self.order.order_for(value):
            for name in self.adapter.method_names_on(owner):
                if name in seen:
                    continue
                impl = self.adapter.method_defined_on(owner, name)
                if impl is None:
                    continue
                seen.add(name)
                out.append(MethodHandle(self, owner, name, impl, receiver=value))
        return out
