"""ThreatSpec - Command Line Interface."""

import logging
import sys
from pathlib import Path
from typing import Optional
import click
from graphviz import ExecutableNotFound

from .analyzer import AnalysisResult, ThreatSpecAnalyzer
from .call_graph import CallGraph, CallGraphError, load_call_graph
from .config import ThreatSpecConfig, ThreatSpecConfigError, load_config
from .dfd_generator import DFDGenerator
from .parser import ThreatSpecParseError, ThreatSpecParser, load_sources
from .report_generator import ReportGenerator
from .risk import RiskGraph, build_risk_graph

FILES_ARGUMENT = click.argument('files', nargs=-1, required=True, type=click.Path(dir_okay=False))
CONFIG_OPTION = click.option('--config', '-c', 'config_path', type=click.Path(), help='Path to a .threatspec.yaml file')
VERBOSE_OPTION = click.option('--verbose', '-v', is_flag=True, help='Enable verbose logging')
CALL_GRAPH_OPTION = click.option(
    '--call-graph', '-g', type=click.Path(allow_dash=True),
    help="Call graph edge list ('-' for stdin). Read from stdin when omitted and stdin is piped.",
)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format='[%(levelname)s] %(message)s',
        stream=sys.stderr,
    )


def _fail(message: str) -> None:
    click.echo(click.style(message, fg='red'), err=True)
    sys.exit(1)


def _load(files: tuple[str, ...], config_path: Optional[str]) -> tuple[ThreatSpecConfig, ThreatSpecParser, AnalysisResult]:
    try:
        config = load_config(config_path)
        parser = load_sources(files)
    except (ThreatSpecConfigError, ThreatSpecParseError) as e:
        _fail(f'Failed to load: {e}')
    return config, parser, ThreatSpecAnalyzer().analyze(parser)


def _read_call_graph(call_graph: Optional[str]) -> CallGraph:
    try:
        if call_graph is None:
            stdin = click.get_text_stream('stdin')
            return {} if stdin.isatty() else load_call_graph(stdin)
        if call_graph == '-':
            return load_call_graph(click.get_text_stream('stdin'))
        return load_call_graph(call_graph)
    except CallGraphError as e:
        _fail(f'Failed to load call graph: {e}')


def _emit_report(result: AnalysisResult, config: ThreatSpecConfig, risk_graph: Optional[RiskGraph] = None) -> None:
    diagram = None
    if risk_graph is not None and config.report.format == 'html':
        diagram = DFDGenerator(risk_graph, config.diagram.rankdir).to_mermaid()
    generator = ReportGenerator()
    if config.report.output:
        output_path = generator.generate_to_file(
            result, Path(config.report.output), config.report.format, config.title, diagram
        )
        click.echo(click.style(f'Report generated: {output_path}', fg='green'), err=True)
    else:
        click.echo(generator.generate(result, config.report.format, config.title, diagram), nl=False)


def _emit_diagram(risk_graph: RiskGraph, config: ThreatSpecConfig) -> None:
    generator = DFDGenerator(risk_graph, config.diagram.rankdir)
    try:
        output_file = generator.write(config.diagram.output, config.diagram.format)
    except ExecutableNotFound as e:
        _fail(f'Failed to render diagram, is Graphviz installed? {e}')
    click.echo(click.style(f'Diagram generated: {output_file}', fg='green'), err=True)


def _apply_overrides(config: ThreatSpecConfig, report_format: Optional[str] = None,
                     report_output: Optional[str] = None, diagram_format: Optional[str] = None,
                     diagram_output: Optional[str] = None) -> ThreatSpecConfig:
    if report_format:
        config.report.format = report_format
    if report_output:
        config.report.output = report_output
    if diagram_format:
        config.diagram.format = diagram_format
    if diagram_output:
        config.diagram.output = diagram_output
    return config


@click.group()
@click.version_option(version='1.0.0')
def cli():
    """ThreatSpec - threat modeling from annotated source code."""
    pass


@cli.command()
@FILES_ARGUMENT
@CALL_GRAPH_OPTION
@click.option('--report-format', type=click.Choice(['markdown', 'html']), help='Report format')
@click.option('--report-output', type=click.Path(), help='Report file (default: stdout)')
@click.option('--diagram-format', type=click.Choice(['png', 'svg', 'pdf', 'dot', 'mermaid']), help='Diagram format')
@click.option('--diagram-output', type=click.Path(), help='Diagram output path without extension')
@click.option('--no-diagram', is_flag=True, help='Skip the diagram')
@CONFIG_OPTION
@VERBOSE_OPTION
def run(files, call_graph, report_format, report_output, diagram_format, diagram_output,
        no_diagram, config_path, verbose):
    """Parse FILES, print the report and render the risk diagram."""
    _configure_logging(verbose)
    config, parser, result = _load(files, config_path)
    config = _apply_overrides(config, report_format, report_output, diagram_format, diagram_output)

    risk_graph = build_risk_graph(result.functions, _read_call_graph(call_graph), result.components)
    _emit_report(result, config, risk_graph)
    if config.diagram.enabled and not no_diagram:
        _emit_diagram(risk_graph, config)


@cli.command()
@FILES_ARGUMENT
@click.option('--format', '-f', 'report_format', type=click.Choice(['markdown', 'html']), help='Report format')
@click.option('--output', '-o', type=click.Path(), help='Report file (default: stdout)')
@CONFIG_OPTION
@VERBOSE_OPTION
def report(files, report_format, output, config_path, verbose):
    """Print the coverage report for FILES."""
    _configure_logging(verbose)
    config, parser, result = _load(files, config_path)
    config = _apply_overrides(config, report_format=report_format, report_output=output)
    _emit_report(result, config)


@cli.command()
@FILES_ARGUMENT
@CALL_GRAPH_OPTION
@click.option('--format', '-f', 'diagram_format', type=click.Choice(['png', 'svg', 'pdf', 'dot', 'mermaid']),
              help='Diagram format')
@click.option('--output', '-o', type=click.Path(), help='Diagram output path without extension')
@CONFIG_OPTION
@VERBOSE_OPTION
def graph(files, call_graph, diagram_format, output, config_path, verbose):
    """Render the component risk diagram for FILES."""
    _configure_logging(verbose)
    config, parser, result = _load(files, config_path)
    config = _apply_overrides(config, diagram_format=diagram_format, diagram_output=output)
    risk_graph = build_risk_graph(result.functions, _read_call_graph(call_graph), result.components)
    _emit_diagram(risk_graph, config)


@cli.command()
@FILES_ARGUMENT
@VERBOSE_OPTION
def summary(files, verbose):
    """List every annotated function found in FILES."""
    _configure_logging(verbose)
    _config, parser, result = _load(files, None)

    for function in parser.declarations:
        click.echo(click.style(f'{function.function}', fg='cyan') + f' ({function.model})')
        if function.file:
            click.echo(f'  Defined: {function.file}:{function.line_number}  {function.code}')
        click.echo(f'  Mitigations: {len(function.mitigations)}, Exposures: {len(function.exposures)}, '
                   f'Does: {len(function.does)}, Sends/Receives: {len(function.sendreceives)}, '
                   f'Tests: {len(function.tests)}')

    if result.orphans:
        click.echo(click.style(f'{len(result.orphans)} orphaned annotation(s)', fg='yellow'))


if __name__ == '__main__':
    cli()
