"""
Resolves parsed method references against a running environment.
"""
from typing import Any, Dict, List, Optional, TYPE_CHECKING

from mfind.mfind_datatypes import (
    Lookup, CallSuffix, RefNode, ExecutionContext,
    ResolutionError, MethodNotFound, EvaluationFailure, render_nodes, dbg
)
from mfind.mfind_method import MethodHandle
from mfind.mfind_reference import parse_reference

if TYPE_CHECKING:
    from mfind.mfind_finder import MethodFinder


def _is_new(node: RefNode) -> bool:
    return isinstance(node, CallSuffix) and node.op == 'new'


def normalize_lookup_mode(options: Optional[Dict]) -> Optional[str]:
    """
    Returns one of 'instance' | 'methods' | None based on the options dict.
    Accepts kebab-case ('instance-methods') and snake_case keys.
    """
    opts = dict(options or {})
    for key in ('instance-methods', 'instance_methods', 'instance'):
        if opts.get(key) is True:
            return 'instance'
    if opts.get('methods') is True:
        return 'methods'
    return None


def normalize_super_depth(options: Optional[Dict]) -> int:
    depth = (options or {}).get('super', 0)
    if depth is True:
        return 1
    try:
        depth = int(depth or 0)
    except (TypeError, ValueError):
        return 0
    return max(depth, 0)


class ReferenceResolver:
    """Turns reference text into a MethodHandle.

    `resolve` is safe to call on partial input: every failure collapses to
    None. The only side effects are those the reference asks for (`new`).
    """
    def __init__(self, finder: 'MethodFinder'):
        self.finder = finder
        self.adapter = finder.adapter

    def resolve(self, text, context: ExecutionContext, options: Optional[Dict] = None) -> Optional[MethodHandle]:
        try:
            return self.resolve_strict(text, context, options)
        except ResolutionError as e:
            dbg("resolve", repr(text), "->", f"{type(e).__name__}: {e}")
            return None

    def resolve_strict(self, text, context: ExecutionContext, options: Optional[Dict] = None) -> MethodHandle:
        """Like resolve, but raises the ResolutionError that stopped it."""
        nodes = parse_reference(text).unwrap()
        handle = self._resolve_nodes(nodes, context, normalize_lookup_mode(options))
        depth = normalize_super_depth(options)
        if depth:
            zuper = handle.super_method(depth)
            if zuper is None:
                raise MethodNotFound(f"super of {render_nodes(nodes)}")
            handle = zuper
        return handle

    # --- steps ---------------------------------------------------------------

    def _resolve_nodes(self, nodes: List[RefNode], context: ExecutionContext, mode: Optional[str]) -> MethodHandle:
        if len(nodes) == 1:
            return self._resolve_bare(nodes[0].text, context, mode)

        *left, last = nodes
        target = self._evaluate_left(left, context)

        if isinstance(last, CallSuffix):
            # Only `[]` can end a reference; a trailing `.new` stays a Lookup.
            return self._value_method(target, last.op)

        match last.sep:
            case '#':
                return self._instance_method(target, last.name)
            case '.':
                return self._value_method(target, last.name)
            case '::':
                if self.adapter.is_entity(target):
                    try:
                        return self._instance_method(target, last.name)
                    except MethodNotFound:
                        pass
                return self._value_method(target, last.name)
        raise MethodNotFound(render_nodes(nodes))

    def _resolve_bare(self, name: str, context: ExecutionContext, mode: Optional[str]) -> MethodHandle:
        receiver = context.receiver
        if mode == 'instance':
            return self._instance_method(receiver, name)
        if mode == 'methods':
            return self._value_method(receiver, name)
        if self.adapter.is_entity(receiver):
            try:
                return self._instance_method(receiver, name)
            except MethodNotFound:
                pass
        return self._value_method(receiver, name)

    def _evaluate_left(self, left: List[RefNode], context: ExecutionContext) -> Any:
        value, consumed = self._entity_prefix(left)
        # Everything up to the last step that runs code goes to the evaluator
        # in one piece, so no step (and no `new`) is evaluated twice.
        runs_code = [i for i, n in enumerate(left) if i >= consumed and not _is_new(n)]
        if runs_code:
            last = runs_code[-1]
            value = self.adapter.evaluate(render_nodes(left[:last + 1]), context)
            consumed = last + 1

        for _ in left[consumed:]:
            if not self.adapter.is_entity(value):
                raise EvaluationFailure(render_nodes(left), "new needs an entity on its left")
            value = self.adapter.construct(value)
        return value

    def _entity_prefix(self, left: List[RefNode]):
        """The longest `::`-joined prefix of left naming an entity, and its length."""
        found, consumed = None, 0
        prefix = left[0].text
        for i, node in enumerate(left):
            if i > 0:
                if not (isinstance(node, Lookup) and node.sep == '::'):
                    break
                prefix = f"{prefix}::{node.name}"
            entity = self.adapter.lookup_entity(prefix)
            if entity is not None:
                found, consumed = entity, i + 1
        return found, consumed

    # --- lookups -------------------------------------------------------------

    def _instance_method(self, entity, name: str) -> MethodHandle:
        if not self.adapter.is_entity(entity):
            raise MethodNotFound(name)
        handle = self.finder.from_entity(entity, name)
        if handle is None:
            raise MethodNotFound(name)
        return handle

    def _value_method(self, value, name: str) -> MethodHandle:
        handle = self.finder.from_value(value, name)
        if handle is None:
            raise MethodNotFound(name)
        return handle
