"""
The interface the lookup engine uses to read a host object graph.

The engine never touches host objects directly. Everything it knows about
entities, values and method implementations comes through an
ObjectModelAdapter supplied by the embedding environment.
"""

from abc import ABC, abstractmethod
from typing import Any, Iterable, List, Optional, Sequence

from mfind.mfind_datatypes import EvaluationFailure, ExecutionContext, Param, SourceLocation


class ObjectModelAdapter(ABC):
    """The required base class for any object graph exposed to the engine.

    Entities and implementations are opaque: the engine only compares them by
    identity and hands them back to the adapter.
    """

    # --- ancestry ---------------------------------------------------------

    @abstractmethod
    def nominal_class_of(self, value: Any) -> Any: raise NotImplementedError
    @abstractmethod
    def singleton_scope_of(self, value: Any) -> Optional[Any]: raise NotImplementedError
    @abstractmethod
    def superclass_of(self, entity: Any) -> Optional[Any]: raise NotImplementedError
    @abstractmethod
    def included_modules_of(self, entity: Any) -> Sequence[Any]: raise NotImplementedError
    @abstractmethod
    def extended_modules_of(self, entity: Any) -> Sequence[Any]: raise NotImplementedError

    # --- method tables ----------------------------------------------------

    @abstractmethod
    def method_defined_on(self, entity: Any, name: str) -> Optional[Any]:
        """Returns the implementation bound to name directly on entity, or None."""
        raise NotImplementedError

    @abstractmethod
    def method_names_on(self, entity: Any) -> Iterable[str]:
        """Returns the names directly defined on entity, in definition order."""
        raise NotImplementedError

    @abstractmethod
    def source_location_of(self, impl: Any) -> Optional[SourceLocation]: raise NotImplementedError
    @abstractmethod
    def parameters_of(self, impl: Any) -> List[Param]: raise NotImplementedError

    # --- naming and evaluation --------------------------------------------

    @abstractmethod
    def is_entity(self, value: Any) -> bool: raise NotImplementedError

    @abstractmethod
    def lookup_entity(self, name: str) -> Optional[Any]:
        """Returns the entity registered under name (e.g. "Outer::Inner"), or None."""
        raise NotImplementedError

    @abstractmethod
    def evaluate(self, expression: str, context: ExecutionContext) -> Any:
        """Evaluates expression in context. Raises EvaluationFailure on error."""
        raise NotImplementedError

    # --- optional primitives ----------------------------------------------

    def same_implementation(self, a: Any, b: Any) -> bool:
        return a is b

    def construct(self, entity: Any) -> Any:
        raise EvaluationFailure("new", "construction is not supported by this object model")

    def source_text_of(self, impl: Any) -> Optional[str]:
        return None

    def defined_name_of(self, impl: Any) -> Optional[str]:
        """The name an implementation was originally defined under, if recorded."""
        return None

    def definition_serial_of(self, impl: Any) -> int:
        """A number that grows with every definition; later definitions compare higher."""
        return 0

    def entity_name(self, entity: Any) -> Optional[str]:
        return None
