from mfind.mfind_datatypes import (
    ResolutionError, ReferenceParseError, MethodNotFound, EvaluationFailure, ResolutionCycleError,
    SourceLocation, Param, Sig, ExecutionContext, ParseResult
)
from mfind.mfind_adapter import ObjectModelAdapter
from mfind.mfind_order import ResolutionOrder
from mfind.mfind_reference import parse_reference
from mfind.mfind_method import MethodHandle, DisownedMethod, AliasIndex
from mfind.mfind_finder import MethodFinder
from mfind.mfind_model import ObjectModel, ModelAdapter, Entity, Instance, Implementation
from mfind.mfind_loader import load_graph, load_graph_file, GraphFormatError
