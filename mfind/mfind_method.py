"""
Method handles: a named implementation found on an owner, optionally bound
to a receiver, plus the alias index used to find its other names.
"""
from typing import Any, List, Optional, TYPE_CHECKING

from mfind.mfind_datatypes import Param, Sig, SourceLocation

if TYPE_CHECKING:
    from mfind.mfind_finder import MethodFinder

_UNBOUND = object()


class AliasIndex:
    """Groups the names directly defined on an owner by implementation identity."""
    def __init__(self, adapter):
        self.adapter = adapter

    def names_for(self, owner, impl) -> List[str]:
        """All names on owner currently bound to impl, in definition order."""
        names = []
        for name in self.adapter.method_names_on(owner):
            other = self.adapter.method_defined_on(owner, name)
            if other is not None and self.adapter.same_implementation(other, impl):
                names.append(name)
        return names

    def aliases_of(self, owner, impl, name: str) -> List[str]:
        return [n for n in self.names_for(owner, impl) if n != name]


class MethodHandle:
    """A method found by name on an owner entity.

    Unbound handles come from instance lookups (`Entity#meth`); bound handles
    carry the receiver they were looked up on (`value.meth`).
    """
    def __init__(self, finder: 'MethodFinder', owner, name: str, impl,
                 receiver: Any = _UNBOUND, origin=None):
        self.finder = finder
        self._owner = owner
        self._name = name
        self._impl = impl
        self._receiver = receiver
        # Entity an unbound lookup started from; super walks its order.
        self._origin = origin

    # --- basic accessors ---------------------------------------------------

    @property
    def name(self) -> str:
        return self._name

    @property
    def owner(self):
        return self._owner

    @property
    def implementation(self):
        return self._impl

    @property
    def is_bound(self) -> bool:
        return self._receiver is not _UNBOUND

    @property
    def receiver(self):
        """The bound receiver, or None for an unbound handle."""
        return self._receiver if self.is_bound else None

    @property
    def parameters(self) -> List[Param]:
        return list(self.finder.adapter.parameters_of(self._impl))

    @property
    def source_location(self) -> Optional[SourceLocation]:
        return self.finder.adapter.source_location_of(self._impl)

    @property
    def source_file(self) -> Optional[str]:
        loc = self.source_location
        return loc.file if loc else None

    @property
    def source_line(self) -> Optional[int]:
        loc = self.source_location
        return loc.line if loc else None

    # --- derived views -----------------------------------------------------

    def signature(self) -> str:
        """E.g. "fetch(key, default=?, *rest, &block)"."""
        return Sig(self.parameters).render(self._name)

    def source(self) -> str:
        text = self.finder.adapter.source_text_of(self._impl)
        return text if text is not None else "unknown"

    def aliases(self) -> List[str]:
        return self.finder.alias_index.aliases_of(self._owner, self._impl, self._name)

    def super_method(self, times: int = 1) -> Optional['MethodHandle']:
        """The next same-named method past owner in the relevant resolution order."""
        if self.is_bound:
            ancestors = self.finder.order.order_for(self._receiver)
        else:
            ancestors = self.finder.order.instance_order(self._origin if self._origin is not None else self._owner)
        adapter = self.finder.adapter
        current = self._owner
        found = None
        for _ in range(times):
            pos = _index_of(ancestors, current)
            if pos is None:
                return None
            found = None
            for entity in ancestors[pos + 1:]:
                impl = adapter.method_defined_on(entity, self._name)
                if impl is not None:
                    found = (entity, impl)
                    break
            if found is None:
                return None
            current = found[0]
        if found is None:
            return self
        entity, impl = found
        return MethodHandle(self.finder, entity, self._name, impl, self._receiver, self._origin)

    def with_receiver(self, receiver) -> 'MethodHandle':
        return MethodHandle(self.finder, self._owner, self._name, self._impl, receiver, self._origin)

    def unbind(self) -> 'MethodHandle':
        return MethodHandle(self.finder, self._owner, self._name, self._impl, _UNBOUND, self._origin)

    # --- identity ------------------------------------------------------------

    def __eq__(self, other):
        if not isinstance(other, MethodHandle):
            return NotImplemented
        if self.is_bound != other.is_bound:
            return False
        if self.is_bound and self._receiver is not other._receiver:
            return False
        return (
            self._owner is other._owner
            and self._name == other._name
            and self.finder.adapter.same_implementation(self._impl, other._impl)
        )

    def __hash__(self):
        return hash((id(self._owner), self._name))

    def __repr__(self) -> str:
        owner_name = self.finder.adapter.entity_name(self._owner) or repr(self._owner)
        sep = "." if self.is_bound else "#"
        return f"<MethodHandle {owner_name}{sep}{self.signature()}>"


class DisownedMethod(MethodHandle):
    """A method whose context survives but whose definition is gone.

    Produced when a context names the method it was captured in but no live
    definition matches any more (e.g. the method was removed while running).
    """
    def __init__(self, finder: 'MethodFinder', receiver, name: str):
        super().__init__(finder, None, name, None, receiver)

    @property
    def parameters(self) -> List[Param]:
        return []

    @property
    def source_location(self) -> Optional[SourceLocation]:
        return None

    def source(self) -> str:
        return "unknown"

    def aliases(self) -> List[str]:
        return []

    def super_method(self, times: int = 1) -> Optional[MethodHandle]:
        return None

    def __eq__(self, other):
        if not isinstance(other, DisownedMethod):
            return NotImplemented
        return self._name == other._name and self._receiver is other._receiver

    def __hash__(self):
        return hash(('disowned', self._name))

    def __repr__(self) -> str:
        return f"<DisownedMethod {self._name}>"


def _index_of(entries, entity) -> Optional[int]:
    for i, e in enumerate(entries):
        if e is entity:
            return i
    return None
