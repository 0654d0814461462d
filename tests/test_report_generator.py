"""
Unit tests for threatspec/report_generator.py
"""

import pytest

from threatspec.analyzer import ThreatSpecAnalyzer
from threatspec.parser import ThreatSpecParser
from threatspec.report_generator import ReportGenerator, generate_report, provenance
from threatspec.schemas import Occurrence


EXPECTED_MARKDOWN = """# ThreatSpec Report for webapp

# Analysis
* Functions found: 2
* Functions covered: 100.0% (2)
* Functions tested: 50.0% (1)

# Components
## Internet WebApp
### Threat: spoofing
* Mitigation: mutual TLS (server.Handle in server.go:6)

## Internal Database
### Threat: injection
* Exposure: raw SQL (server.Handle in server.go:6)
* Exposure: string concatenation (db.Query in server.go:14)

"""


class TestProvenance:
    """Tests for the provenance filter"""

    def test_with_location(self):
        """Test function, file and line are shown"""
        assert provenance(Occurrence(text='x', function='f', file='a.go', line=3)) == 'f in a.go:3'

    def test_without_location(self):
        """Test missing file and line render empty"""
        assert provenance(Occurrence(text='x', function='f')) == 'f in :'


class TestMarkdownReport:
    """Tests for the plain text report"""

    def test_full_report(self, analysis):
        """Test the complete report text for the shared fixture"""
        assert generate_report(analysis) == EXPECTED_MARKDOWN

    def test_title_override(self, analysis):
        """Test an explicit title replaces the model names"""
        report = ReportGenerator().generate(analysis, title='Payments')
        assert report.startswith('# ThreatSpec Report for Payments\n')

    def test_empty_analysis(self):
        """Test an empty run reports zero percentages and no components"""
        report = generate_report(ThreatSpecAnalyzer().analyze(ThreatSpecParser()))
        assert report.startswith('# ThreatSpec Report for ...\n')
        assert '* Functions covered: 0.0% (0)' in report
        assert '* Functions tested: 0.0% (0)' in report
        assert report.endswith('# Components\n')

    def test_deterministic(self, go_source):
        """Test identical input produces byte-identical reports"""
        def render():
            parser = ThreatSpecParser()
            parser.parse('server.go', go_source)
            return generate_report(ThreatSpecAnalyzer().analyze(parser))

        assert render() == render()

    def test_markdown_is_not_html_escaped(self):
        """Test markup characters pass through the text report"""
        parser = ThreatSpecParser()
        parser.parse('a.go', "// ThreatSpec m for f\n// Exposes A to <xss> with a & b\n")
        report = generate_report(ThreatSpecAnalyzer().analyze(parser))
        assert '### Threat: <xss>' in report
        assert '* Exposure: a & b (f in :)' in report


class TestHtmlReport:
    """Tests for the HTML report"""

    def test_html_report(self, analysis):
        """Test HTML report content and embedded diagram"""
        html = ReportGenerator().generate(analysis, 'html', diagram_mermaid='flowchart LR\n    a -->|x| b')
        assert '<title>ThreatSpec Report for webapp</title>' in html
        assert 'Functions covered: 100.0% (2)' in html
        assert '<div class="mermaid">flowchart LR\n    a -->|x| b</div>' in html
        assert 'Actions: query execution' in html
        assert '[RFC-8705]' in html

    def test_html_escapes_annotation_text(self):
        """Test annotation text is escaped in HTML"""
        parser = ThreatSpecParser()
        parser.parse('a.go', "// Does x for A\n// ThreatSpec m for f\n// Exposes A to <xss> with a & b\n")
        html = ReportGenerator().generate(ThreatSpecAnalyzer().analyze(parser), 'html')
        assert 'Threat: &lt;xss&gt;' in html
        assert 'Orphaned annotations' in html
        assert 'a.go:1 // Does x for A' in html

    def test_unknown_format(self, analysis):
        """Test unsupported formats raise ValueError"""
        with pytest.raises(ValueError):
            ReportGenerator().generate(analysis, 'pdf')

    def test_generate_to_file(self, analysis, tmp_path):
        """Test writing the report creates parent folders"""
        path = ReportGenerator().generate_to_file(analysis, tmp_path / 'out' / 'report.md')
        assert path.read_text(encoding='utf-8') == EXPECTED_MARKDOWN
