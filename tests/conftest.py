"""
Shared pytest fixtures for threatspec tests.

Provides annotated source snippets and a matching call-graph edge list:
- server.Handle (Go method) mitigates WebApp spoofing and exposes Database
- db.Query exposes Database and sends rows back to WebApp
"""

import sys
from pathlib import Path
import pytest

# Add repository root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from threatspec.analyzer import ThreatSpecAnalyzer
from threatspec.parser import ThreatSpecParser


GO_SOURCE = """package server

// ThreatSpec webapp for server.Handle
// Mitigates Internet:WebApp against spoofing with mutual TLS (RFC-8705)
// Exposes Internal:Database to injection with raw SQL
func (s *Server) Handle(w http.ResponseWriter, r *http.Request) {
    db.Query(r)
}

// ThreatSpec webapp for db.Query
// Exposes Internal:Database to injection with string concatenation
// Does query execution for Internal:Database
// Sends rows from Internal:Database to Internet:WebApp
func Query(r *http.Request) {
}
// Tests server.Handle for spoofing
"""

CALL_GRAPH = (
    "server.Handle\t--static-7:5-->\tdb.Query$1\n"
    "server.Handle$1$2\t--static-9:3-->\tfmt.Println\n"
    "main.main\t--static-3:2-->\tserver.Handle\n"
)


@pytest.fixture
def go_source():
    """Annotated Go source with two functions."""
    return GO_SOURCE


@pytest.fixture
def call_graph_text():
    """Call graph edges for GO_SOURCE, including unannotated nodes."""
    return CALL_GRAPH


@pytest.fixture
def parser(go_source):
    """Parser that has consumed GO_SOURCE as server.go."""
    p = ThreatSpecParser()
    p.parse('server.go', go_source)
    return p


@pytest.fixture
def analysis(parser):
    """Analysis result for GO_SOURCE."""
    return ThreatSpecAnalyzer().analyze(parser)


@pytest.fixture
def source_file(tmp_path, go_source):
    """GO_SOURCE written to disk."""
    path = tmp_path / 'server.go'
    path.write_text(go_source, encoding='utf-8')
    return path


@pytest.fixture
def call_graph_file(tmp_path, call_graph_text):
    """CALL_GRAPH written to disk."""
    path = tmp_path / 'callgraph.txt'
    path.write_text(call_graph_text, encoding='utf-8')
    return path
