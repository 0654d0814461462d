"""Component risk diagram generator."""

from pathlib import Path
from graphviz import Digraph
from markupsafe import escape

from .risk import Edge, Node, RiskGraph


class DFDGenerator:
    """Renders a resolved RiskGraph with Graphviz, or as Mermaid text."""

    RENDER_FORMATS = ('png', 'svg', 'pdf')
    TEXT_FORMATS = ('dot', 'mermaid')

    MERMAID_SHAPES = {
        'box': ('[', ']'),
        'oval': ('([', '])'),
    }

    def __init__(self, risk_graph: RiskGraph, rankdir: str = 'LR'):
        self.graph = risk_graph
        self.rankdir = rankdir

    def _node_attrs(self, node: Node) -> dict[str, str]:
        attrs = {'label': node.label, 'shape': node.shape}
        if node.color:
            attrs['color'] = node.color
        return attrs

    def _edge_label(self, edge: Edge) -> str:
        entries = [f'<font color="{entry.color}">{escape(entry.text)}</font>' for entry in edge.labels]
        return '<' + '<br/>\n'.join(entries) + '>'

    def generate(self, output_format: str = 'png') -> tuple[str, Digraph]:
        graph = Digraph(name='G', format=output_format, engine='dot')
        graph.attr(rankdir=self.rankdir, overlap='scalexy', nodesep='0.6', compound='true')

        for cluster in self.graph.clusters.values():
            with graph.subgraph(name=cluster.name) as subgraph:
                subgraph.attr(label=cluster.label, style='dashed')
                for key in cluster.nodes:
                    subgraph.node(key, **self._node_attrs(self.graph.nodes[key]))

        for edge in self.graph.edges:
            graph.edge(edge.source, edge.dest, label=self._edge_label(edge), color=edge.color)

        return graph.source, graph

    def generate_dot(self) -> str:
        source, _ = self.generate()
        return source

    def render_to_file(self, output_path: str, output_format: str = 'png') -> str:
        _, graph = self.generate(output_format)
        return graph.render(output_path, cleanup=True)

    def write(self, output_path: str, output_format: str = 'png') -> str:
        """Write the diagram in any supported format and return the file written."""
        if output_format in self.RENDER_FORMATS:
            return self.render_to_file(output_path, output_format)
        if output_format == 'dot':
            content = self.generate_dot()
        elif output_format == 'mermaid':
            content = self.to_mermaid()
        else:
            raise ValueError(f"Unsupported diagram format: {output_format}")
        path = Path(f'{output_path}.{"mmd" if output_format == "mermaid" else "dot"}')
        path.write_text(content, encoding='utf-8')
        return str(path)

    def to_mermaid(self) -> str:
        lines = [f'flowchart {self.rankdir}']
        styles = []
        for cluster in self.graph.clusters.values():
            lines.append(f'    subgraph {self._mermaid_id(cluster.name)}["{self._safe_label(cluster.label)}"]')
            for key in cluster.nodes:
                node = self.graph.nodes[key]
                opening, closing = self.MERMAID_SHAPES.get(node.shape, ('[', ']'))
                node_id = self._mermaid_id(key)
                lines.append(f'        {node_id}{opening}"{self._safe_label(node.label)}"{closing}')
                if node.color:
                    styles.append(f'    style {node_id} stroke:{node.color},stroke-width:2px')
            lines.append('    end')
        for index, edge in enumerate(self.graph.edges):
            label = '<br/>'.join(self._safe_label(entry.text) for entry in edge.labels)
            lines.append(f'    {self._mermaid_id(edge.source)} -->|{label}| {self._mermaid_id(edge.dest)}')
            styles.append(f'    linkStyle {index} stroke:{edge.color}')
        lines.extend(styles)
        return '\n'.join(lines)

    def _mermaid_id(self, value: str) -> str:
        safe = ''.join(ch if ch.isalnum() else '_' for ch in value.strip())
        if not safe:
            return 'NODE'
        if safe[0].isdigit():
            return f'N_{safe}'
        return safe

    def _safe_label(self, text: str) -> str:
        """Escape special characters in Mermaid labels."""
        if not text:
            return ""
        return text.replace('"', "'").replace('(', '').replace(')', '').replace('[', '').replace(']', '').replace('|', '-').replace('<', '').replace('>', '')


def generate_dfd(risk_graph: RiskGraph, rankdir: str = 'LR') -> str:
    """Generate DOT source for a risk graph."""
    return DFDGenerator(risk_graph, rankdir).generate_dot()
