"""Text and HTML report generator for analyzed annotations."""

from pathlib import Path
from typing import Optional
from jinja2 import Environment, FileSystemLoader, select_autoescape
from markupsafe import Markup

from .analyzer import AnalysisResult
from .schemas import Occurrence


def provenance(occurrence: Occurrence) -> str:
    """`function in file:line`, with empty file/line when no signature was found."""
    file = occurrence.file or ''
    line = occurrence.line if occurrence.line is not None else ''
    return f'{occurrence.function} in {file}:{line}'


class ReportGenerator:
    """Generates coverage reports from an analysis result."""

    TEMPLATES = {
        'markdown': 'report.md',
        'html': 'report.html',
    }

    def __init__(self, template_dir: Optional[Path] = None):
        if template_dir is None:
            template_dir = Path(__file__).parent / 'templates'
        self.env = Environment(
            loader=FileSystemLoader(template_dir),
            autoescape=select_autoescape(['html', 'xml']),
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
        )
        self.env.filters['provenance'] = provenance

    def _title(self, result: AnalysisResult, title: Optional[str]) -> str:
        if title:
            return title
        return ', '.join(result.models) if result.models else '...'

    def generate(self, result: AnalysisResult, output_format: str = 'markdown',
                 title: Optional[str] = None, diagram_mermaid: Optional[str] = None) -> str:
        if output_format not in self.TEMPLATES:
            raise ValueError(f"Unsupported report format: {output_format}")
        context = {
            'title': self._title(result, title),
            'coverage': result.coverage,
            'components': list(result.components.values()),
            'orphans': result.orphans,
            'diagram': Markup(diagram_mermaid) if diagram_mermaid else '',
        }
        template = self.env.get_template(self.TEMPLATES[output_format])
        return template.render(**context)

    def generate_to_file(self, result: AnalysisResult, output_path: Path, output_format: str = 'markdown',
                         title: Optional[str] = None, diagram_mermaid: Optional[str] = None) -> Path:
        content = self.generate(result, output_format, title, diagram_mermaid)
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with open(output_path, 'w', encoding='utf-8') as f:
            f.write(content)
        return output_path


def generate_report(result: AnalysisResult, output_format: str = 'markdown', title: Optional[str] = None) -> str:
    """Generate a report from an analysis result."""
    return ReportGenerator().generate(result, output_format, title)
