"""
Linearizes the ancestry of entities and values into resolution orders.
"""
from typing import Any, List

from mfind.mfind_adapter import ObjectModelAdapter
from mfind.mfind_datatypes import ResolutionCycleError


class _Linearization:
    """An ordered, duplicate-free list of entities under construction."""
    def __init__(self):
        self.entries: List[Any] = []
        self._seen: set = set()

    def add(self, entity) -> bool:
        if id(entity) in self._seen:
            return False
        self._seen.add(id(entity))
        self.entries.append(entity)
        return True

    def __contains__(self, entity) -> bool:
        return id(entity) in self._seen


class ResolutionOrder:
    """Computes the search path used to find a method by name.

    Orders are recomputed on every call; the object graph may change between
    two queries and nothing here may outlive one of them.
    """
    def __init__(self, adapter: ObjectModelAdapter):
        self.adapter = adapter

    def instance_order(self, entity) -> List[Any]:
        """[entity], its included modules (latest first), then its superclass's order."""
        out = _Linearization()
        self._expand_instance(entity, out, expanding=set())
        return out.entries

    def order_for(self, value) -> List[Any]:
        """The full lookup path for a method called on value."""
        if self.adapter.is_entity(value):
            return self._entity_value_order(value)
        out = _Linearization()
        singleton = self.adapter.singleton_scope_of(value)
        if singleton is not None:
            self._add_scope(singleton, [], out)
        self._expand_instance(self.adapter.nominal_class_of(value), out, expanding=set())
        return out.entries

    def _entity_value_order(self, entity) -> List[Any]:
        # Singleton scopes of the entity and of each superclass, each followed
        # by the modules extended into it, then the instance order of the
        # entity's own class.
        out = _Linearization()
        for anc in self._superclass_chain(entity):
            extended = list(self.adapter.extended_modules_of(anc))
            singleton = self.adapter.singleton_scope_of(anc)
            if singleton is not None:
                self._add_scope(singleton, extended, out)
            else:
                self._expand_modules(extended, out, expanding=set())
        self._expand_instance(self.adapter.nominal_class_of(entity), out, expanding=set())
        return out.entries

    def _add_scope(self, singleton, extended, out: _Linearization):
        out.add(singleton)
        mixins = list(self.adapter.included_modules_of(singleton)) + list(extended)
        self._expand_modules(mixins, out, expanding={id(singleton)})

    def _expand_instance(self, entity, out: _Linearization, expanding: set):
        for anc in self._superclass_chain(entity):
            if id(anc) in expanding:
                raise ResolutionCycleError(f"{anc!r} is its own ancestor")
            out.add(anc)
            expanding.add(id(anc))
            try:
                self._expand_modules(self.adapter.included_modules_of(anc), out, expanding)
            finally:
                expanding.discard(id(anc))

    def _expand_modules(self, modules, out: _Linearization, expanding: set):
        for mod in reversed(list(modules)):
            # Already reachable from an earlier point: first occurrence wins.
            if mod in out:
                continue
            self._expand_instance(mod, out, expanding)

    def _superclass_chain(self, entity) -> List[Any]:
        chain = []
        seen = set()
        cur = entity
        while cur is not None:
            if id(cur) in seen:
                raise ResolutionCycleError(f"superclass chain of {entity!r} loops at {cur!r}")
            seen.add(id(cur))
            chain.append(cur)
            cur = self.adapter.superclass_of(cur)
        return chain
