"""
Unit tests for threatspec/dfd_generator.py

Only DOT and Mermaid sources are checked; no Graphviz binary is needed.
"""

import pytest

from threatspec.call_graph import parse_call_graph
from threatspec.dfd_generator import DFDGenerator, generate_dfd
from threatspec.risk import RiskGraph, build_risk_graph


@pytest.fixture
def risk_graph(analysis, call_graph_text):
    """Risk graph for the shared fixture."""
    return build_risk_graph(analysis.functions, parse_call_graph(call_graph_text.split('\n')),
                            analysis.components)


class TestGenerateDot:
    """Tests for DOT output"""

    def test_graph_attributes(self, risk_graph):
        """Test digraph layout attributes"""
        source = generate_dfd(risk_graph)
        assert source.startswith('digraph G {')
        assert 'rankdir=LR' in source
        assert 'overlap=scalexy' in source
        assert 'compound=true' in source

    def test_rankdir_override(self, risk_graph):
        """Test rankdir is configurable"""
        assert 'rankdir=TB' in DFDGenerator(risk_graph, rankdir='TB').generate_dot()

    def test_zone_clusters(self, risk_graph):
        """Test each zone is a dashed cluster labelled with the raw zone"""
        source = generate_dfd(risk_graph)
        assert 'subgraph cluster_internet {' in source
        assert 'subgraph cluster_internal {' in source
        assert 'label=Internet' in source
        assert 'style=dashed' in source

    def test_component_nodes(self, risk_graph):
        """Test nodes are boxes colored by risk"""
        source = generate_dfd(risk_graph)
        assert '"internet-webapp" [label=WebApp color=darkgreen shape=box]' in source
        assert '"internal-database" [label=Database color=red shape=box]' in source

    def test_edge_labels(self, risk_graph):
        """Test edges carry HTML-like labels and escalated colors"""
        source = generate_dfd(risk_graph)
        assert '"internet-webapp" -> "internal-database" [label=<<font color="red">db.Query</font>> color=red]' in source
        assert '<font color="blue">rows</font>' in source
        assert 'color=blue' in source

    def test_label_text_is_escaped(self):
        """Test subjects with markup characters are escaped in labels"""
        from threatspec.parser import ThreatSpecParser
        from threatspec.analyzer import ThreatSpecAnalyzer
        parser = ThreatSpecParser()
        parser.parse('a.go', "// ThreatSpec m for f\n// Sends <token> & key from A to B\n")
        result = ThreatSpecAnalyzer().analyze(parser)
        source = generate_dfd(build_risk_graph(result.functions, {}, result.components))
        assert '&lt;token&gt; &amp; key' in source

    def test_empty_graph(self):
        """Test an empty model still yields a valid digraph"""
        source = generate_dfd(RiskGraph())
        assert source.startswith('digraph G {')
        assert source.rstrip().endswith('}')


class TestWrite:
    """Tests for writing text formats"""

    def test_write_dot(self, risk_graph, tmp_path):
        """Test dot output goes to <output>.dot"""
        path = DFDGenerator(risk_graph).write(str(tmp_path / 'risk'), 'dot')
        assert path == str(tmp_path / 'risk.dot')
        assert 'digraph G' in (tmp_path / 'risk.dot').read_text(encoding='utf-8')

    def test_write_mermaid(self, risk_graph, tmp_path):
        """Test mermaid output goes to <output>.mmd"""
        path = DFDGenerator(risk_graph).write(str(tmp_path / 'risk'), 'mermaid')
        assert path.endswith('risk.mmd')

    def test_unknown_format(self, risk_graph, tmp_path):
        """Test an unsupported format raises ValueError"""
        with pytest.raises(ValueError):
            DFDGenerator(risk_graph).write(str(tmp_path / 'risk'), 'gif')


class TestMermaid:
    """Tests for Mermaid output"""

    def test_mermaid_structure(self, risk_graph):
        """Test clusters, nodes, edges and styles"""
        text = DFDGenerator(risk_graph).to_mermaid()
        lines = text.split('\n')
        assert lines[0] == 'flowchart LR'
        assert '    subgraph cluster_internet["Internet"]' in lines
        assert '        internet_webapp["WebApp"]' in lines
        assert '    internet_webapp -->|db.Query| internal_database' in lines
        assert '    style internal_database stroke:red,stroke-width:2px' in lines
        assert '    linkStyle 0 stroke:red' in lines
        assert '    linkStyle 2 stroke:blue' in lines

    def test_oval_nodes(self):
        """Test SendReceive-only endpoints use the stadium shape"""
        from threatspec.parser import ThreatSpecParser
        from threatspec.analyzer import ThreatSpecAnalyzer
        parser = ThreatSpecParser()
        parser.parse('a.go', "// ThreatSpec m for f\n// Sends x from A to B\n")
        result = ThreatSpecAnalyzer().analyze(parser)
        text = DFDGenerator(build_risk_graph(result.functions, {}, result.components)).to_mermaid()
        assert '        a_a(["A"])' in text.split('\n')
