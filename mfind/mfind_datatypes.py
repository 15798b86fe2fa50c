"""
Defines the core data types for the mfind lookup engine.

This module provides the small value types every other component trades in:
source locations, parameter descriptors and signatures, the nodes produced by
the reference parser, captured execution contexts, and the error taxonomy.
"""

import os
import sys
from dataclasses import dataclass, field
from typing import List, Dict, Any, Optional

# =================================================================
# Errors
# =================================================================

class ResolutionError(Exception):
    """Base class for every failure that collapses to "not found"."""
    pass


class ReferenceParseError(ResolutionError):
    def __init__(self, text: str, message: str):
        super().__init__(f"cannot parse reference {text!r}: {message}")
        self.text = text
        self.message = message


class MethodNotFound(ResolutionError):
    def __init__(self, key: str):
        super().__init__(key)
        self.key = key


class EvaluationFailure(ResolutionError):
    def __init__(self, expression: str, message: str = ""):
        super().__init__(f"{expression}: {message}" if message else expression)
        self.expression = expression
        self.message = message


class ResolutionCycleError(AssertionError):
    """Raised when an ancestry walk meets an entity it is still expanding."""
    pass


def dbg(*parts):
    if os.environ.get("MFIND_DEBUG"):
        try:
            print("[DBG]", *parts, file=sys.stderr)
        except Exception:
            pass

# =================================================================
# Source locations and signatures
# =================================================================

@dataclass(frozen=True)
class SourceLocation:
    file: str
    line: int

    def __str__(self) -> str:
        return f"{self.file}:{self.line}"


PARAM_KINDS = ('req', 'opt', 'rest', 'keyreq', 'key', 'block')


class Param:
    """One parameter descriptor: a kind and an (optional) name."""
    def __init__(self, kind: str, name: Optional[str] = None):
        if kind not in PARAM_KINDS:
            raise ValueError(f"unknown parameter kind {kind!r}")
        self.kind = kind
        self.name = name

    @classmethod
    def parse(cls, spec: str) -> 'Param':
        """Builds a Param from the "kind name" shorthand, e.g. "opt option"."""
        parts = spec.split()
        if len(parts) == 1:
            return cls(parts[0])
        if len(parts) == 2:
            return cls(parts[0], parts[1])
        raise ValueError(f"malformed parameter {spec!r}")

    def __repr__(self) -> str:
        return f"Param({self.kind!r}, {self.name!r})"

    def __eq__(self, other):
        return isinstance(other, Param) and self.kind == other.kind and self.name == other.name

    def __hash__(self):
        return hash((self.kind, self.name))


class Sig:
    """An ordered parameter list with at most one rest and one block parameter."""
    def __init__(self, params: Optional[List[Param]] = None):
        self.params: List[Param] = list(params or [])
        for kind in ('rest', 'block'):
            if sum(1 for p in self.params if p.kind == kind) > 1:
                raise ValueError(f"a signature takes at most one {kind} parameter")

    def render(self, name: str) -> str:
        rendered = []
        for i, p in enumerate(self.params):
            pname = p.name or ('block' if p.kind == 'block' else f"arg{i + 1}")
            match p.kind:
                case 'req':
                    rendered.append(pname)
                case 'opt':
                    rendered.append(f"{pname}=?")
                case 'rest':
                    rendered.append(f"*{pname}")
                case 'keyreq':
                    rendered.append(f"{pname}:")
                case 'key':
                    rendered.append(f"{pname}:?")
                case 'block':
                    rendered.append(f"&{pname}")
        return f"{name}({', '.join(rendered)})"

    def __len__(self) -> int:
        return len(self.params)

    def __repr__(self) -> str:
        return f"Sig({self.params!r})"

    def __eq__(self, other):
        return isinstance(other, Sig) and self.params == other.params

# =================================================================
# Reference parse nodes
# =================================================================

class RefNode:
    """Abstract base class for the nodes of a parsed reference."""

    def to_str_repr(self) -> str:
        raise NotImplementedError


class Name(RefNode):
    """The leading segment of a reference: an entity name or an expression."""
    def __init__(self, text: str):
        self.text = text

    def to_str_repr(self) -> str:
        return self.text

    def __repr__(self) -> str:
        return f"Name<{self.text!r}>"

    def __eq__(self, other):
        return isinstance(other, Name) and self.text == other.text

    def __hash__(self):
        return hash(('name', self.text))


class Lookup(RefNode):
    """A separator followed by a method name: `#meth`, `.meth` or `::meth`."""
    def __init__(self, sep: str, name: str):
        self.sep = sep
        self.name = name

    def to_str_repr(self) -> str:
        return f"{self.sep}{self.name}"

    def __repr__(self) -> str:
        return f"Lookup<{self.sep}{self.name}>"

    def __eq__(self, other):
        return isinstance(other, Lookup) and self.sep == other.sep and self.name == other.name

    def __hash__(self):
        return hash(('lookup', self.sep, self.name))


class CallSuffix(RefNode):
    """Applies `new` or `[]` to the value on its left."""
    def __init__(self, op: str, sep: str = ""):
        self.op = op
        self.sep = sep

    def to_str_repr(self) -> str:
        return f"{self.sep}{self.op}"

    def __repr__(self) -> str:
        return f"CallSuffix<{self.sep}{self.op}>"

    def __eq__(self, other):
        return isinstance(other, CallSuffix) and self.op == other.op

    def __hash__(self):
        return hash(('call', self.op))


def render_nodes(nodes: List[RefNode]) -> str:
    return "".join(n.to_str_repr() for n in nodes)


@dataclass
class ParseResult:
    """The structured result of parsing a reference."""
    status: str
    text: str
    nodes: List[RefNode] = field(default_factory=list)
    error_message: Optional[str] = None

    def unwrap(self) -> List[RefNode]:
        if self.status != 'success':
            raise ReferenceParseError(self.text, self.error_message or "malformed reference")
        return self.nodes

# =================================================================
# Execution contexts
# =================================================================

@dataclass
class ExecutionContext:
    """A captured snapshot of a running frame.

    `receiver` is the value `self` was bound to, `location` the source position
    the frame was captured at, `lexical_owner` the entity whose body the code
    was written in (when known) and `method_name` the name the running method
    was defined under. `parent` links to the calling frame.
    """
    receiver: Any
    location: Optional[SourceLocation] = None
    lexical_owner: Any = None
    method_name: Optional[str] = None
    locals: Dict[str, Any] = field(default_factory=dict)
    parent: Optional['ExecutionContext'] = None
    top_level: bool = False

    def caller(self, depth: int = 1) -> Optional['ExecutionContext']:
        ctx = self
        for _ in range(depth):
            if ctx is None:
                return None
            ctx = ctx.parent
        return ctx
