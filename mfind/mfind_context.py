"""
Recovers the method a captured execution context was running in.
"""
from typing import Optional, TYPE_CHECKING

from mfind.mfind_datatypes import ExecutionContext, dbg
from mfind.mfind_method import MethodHandle, DisownedMethod

if TYPE_CHECKING:
    from mfind.mfind_finder import MethodFinder


class _Candidate:
    __slots__ = ("position", "owner", "name", "impl", "canonical", "serial")

    def __init__(self, position, owner, name, impl, canonical, serial):
        self.position = position
        self.owner = owner
        self.name = name
        self.impl = impl
        self.canonical = canonical
        self.serial = serial

    def rank(self):
        # Bound under its own name beats an orphaned alias, then the newest
        # definition, then the earliest point in the scan.
        return (self.canonical, self.serial, -self.position)


class ContextMatcher:
    """Finds the directly defined method whose source location is the context's.

    Only adapter primitives are consulted. Methods defined inside the object
    model (a custom `describe` or `method`, say) are never called.
    """
    def __init__(self, finder: 'MethodFinder'):
        self.finder = finder
        self.adapter = finder.adapter

    def match(self, context: Optional[ExecutionContext], reject_top_level: bool = False) -> Optional[MethodHandle]:
        if context is None:
            return None
        if reject_top_level and context.top_level:
            return None
        if context.location is None:
            return self._disowned(context)

        receiver = context.receiver
        best = self._best(self.finder.order.order_for(receiver), context)
        if best is not None:
            return MethodHandle(self.finder, best.owner, best.name, best.impl, receiver=receiver)

        hint = context.lexical_owner
        if hint is not None and self.adapter.is_entity(hint):
            best = self._best(self.finder.order.instance_order(hint), context)
            if best is not None:
                return MethodHandle(self.finder, best.owner, best.name, best.impl, origin=hint)

        return self._disowned(context)

    def _best(self, ancestors, context: ExecutionContext) -> Optional[_Candidate]:
        candidates = []
        for position, entity in enumerate(ancestors):
            for name in self.adapter.method_names_on(entity):
                impl = self.adapter.method_defined_on(entity, name)
                if impl is None:
                    continue
                loc = self.adapter.source_location_of(impl)
                if loc is None or loc != context.location:
                    continue
                candidates.append(_Candidate(
                    position, entity, name, impl,
                    canonical=self.adapter.defined_name_of(impl) == name,
                    serial=self.adapter.definition_serial_of(impl),
                ))
        if not candidates:
            return None
        best = max(candidates, key=_Candidate.rank)
        if len(candidates) > 1:
            dbg("context match at", context.location, "picked", best.name,
                "over", [c.name for c in candidates if c is not best])
        return best

    def _disowned(self, context: ExecutionContext) -> Optional[MethodHandle]:
        if context.top_level or not context.method_name:
            return None
        return DisownedMethod(self.finder, context.receiver, context.method_name)
