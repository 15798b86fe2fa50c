"""
Command line front end: load a graph file and resolve method references in it.

    mfind zoo.yaml Animal#eat rex.fress

Each resolved reference prints one line; failures go to stderr and make the
exit status 1.
"""
import sys
from pathlib import Path

from mfind.mfind_datatypes import ResolutionError
from mfind.mfind_finder import MethodFinder
from mfind.mfind_loader import GraphFormatError, load_graph_file

USAGE = "usage: mfind GRAPH.yaml REFERENCE [REFERENCE ...]"


def describe(handle) -> str:
    """One line per resolved method: signature, owner and location."""
    owner = handle.finder.adapter.entity_name(handle.owner) or "?"
    where = str(handle.source_location) if handle.source_location else "(no source location)"
    kind = "bound" if handle.is_bound else "unbound"
    line = f"{handle.signature()}  {owner}  {where}  [{kind}]"
    aliases = handle.aliases()
    if aliases:
        line += f"  aliases: {', '.join(aliases)}"
    return line


def run(graph_path: str, references) -> int:
    """Resolve each reference against the graph and print the results."""
    try:
        model, objects = load_graph_file(graph_path)
    except FileNotFoundError:
        print(f"Error: file not found: {graph_path}", file=sys.stderr)
        return 1
    except GraphFormatError as e:
        print(f"Error: {Path(graph_path).name}: {e}", file=sys.stderr)
        return 1

    finder = MethodFinder(model.adapter)
    context = model.top_level_context(**objects)
    failed = 0
    for ref in references:
        try:
            handle = finder.resolve_reference_strict(ref, context)
        except ResolutionError as e:
            failed += 1
            print(f"{ref}: not found ({type(e).__name__}: {e})", file=sys.stderr)
            continue
        print(f"{ref}: {describe(handle)}")
    return 1 if failed else 0


def main():
    args = sys.argv[1:]
    if args and args[0] in ("-h", "--help"):
        print(USAGE)
        raise SystemExit(0)
    if len(args) < 2:
        print(USAGE, file=sys.stderr)
        raise SystemExit(2)
    raise SystemExit(run(args[0], args[1:]))


if __name__ == "__main__":
    main()
