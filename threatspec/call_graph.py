"""Loader for caller/callee edge lists produced by a static call-graph tool."""

import logging
import re
from pathlib import Path
from typing import IO, Iterable, Optional

from .schemas import CallSite

logger = logging.getLogger(__name__)

GRAPH_PATTERN = re.compile(
    r'^(?P<caller>.+?)\t--(?P<tag>.+?)-(?P<line>\d+):(?P<column>\d+)-->\t(?P<callee>.+?)\s*$'
)
SUFFIX_PATTERN = re.compile(r'(\$\d+)+')

# caller -> callee -> call sites, in first-seen order
CallGraph = dict[str, dict[str, list[CallSite]]]


class CallGraphError(Exception):
    """Raised when a call-graph file cannot be opened."""
    pass


def strip_suffix(name: str) -> str:
    """Remove synthetic `$<digits>` disambiguation suffixes from a node name."""
    return SUFFIX_PATTERN.sub('', name)


def parse_call_graph(lines: Iterable[str]) -> CallGraph:
    """Build the adjacency mapping. Lines that are not edges are ignored."""
    graph: CallGraph = {}
    for line in lines:
        match = GRAPH_PATTERN.match(line.rstrip('\r\n'))
        if not match:
            if line.strip():
                logger.debug("Skipping call graph line: %r", line)
            continue
        caller = strip_suffix(match.group('caller'))
        callee = strip_suffix(match.group('callee'))
        site = CallSite(line=int(match.group('line')), column=int(match.group('column')))
        graph.setdefault(caller, {}).setdefault(callee, []).append(site)
    return graph


def load_call_graph(source: Optional[str | Path | IO[str]]) -> CallGraph:
    """Load a call graph from a path or an open text stream. None yields an empty graph."""
    if source is None:
        return {}
    if isinstance(source, (str, Path)):
        try:
            with open(source, 'r', encoding='utf-8') as f:
                return parse_call_graph(f.read().split('\n'))
        except OSError as e:
            raise CallGraphError(f"Cannot read call graph {source}: {e}")
    return parse_call_graph(source.read().split('\n'))
