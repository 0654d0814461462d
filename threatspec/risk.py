"""
Graph merge and risk engine.

Joins the annotated functions with the call graph: for every annotated
caller with call-graph successors that are themselves annotated, each
component the caller touches is linked to each component the callee
touches. Components and edges are then classified by their exposure and
mitigation tallies. SendReceive facts become edges of their own,
independent of the call graph.

The result is a fully resolved node/edge/cluster model; rendering it is
left to dfd_generator.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Optional

from .call_graph import CallGraph
from .components import component_key, normalize
from .schemas import ComponentRecord, Function, SendReceive

logger = logging.getLogger(__name__)


class Risk(str, Enum):
    NEUTRAL = 'neutral'
    MITIGATED = 'mitigated'
    PARTIALLY_MITIGATED = 'partially_mitigated'
    EXPOSED = 'exposed'


# Escalation order, lowest first
RISK_PRECEDENCE = [Risk.NEUTRAL, Risk.MITIGATED, Risk.PARTIALLY_MITIGATED, Risk.EXPOSED]

NODE_COLORS = {
    Risk.EXPOSED: 'red',
    Risk.PARTIALLY_MITIGATED: 'orange',
    Risk.MITIGATED: 'darkgreen',
    Risk.NEUTRAL: None,
}
LABEL_COLORS = {**NODE_COLORS, Risk.NEUTRAL: 'black'}
DIRECTION_COLORS = {'sends': 'blue', 'receives': 'purple'}


def classify(exposures: int, mitigations: int) -> Risk:
    if exposures > 0:
        return Risk.PARTIALLY_MITIGATED if mitigations > 0 else Risk.EXPOSED
    return Risk.MITIGATED if mitigations > 0 else Risk.NEUTRAL


def escalate(risks: Iterable[Risk]) -> Risk:
    """Highest risk of the set: exposed > partially mitigated > mitigated > neutral."""
    return max(risks, key=RISK_PRECEDENCE.index, default=Risk.NEUTRAL)


@dataclass(frozen=True)
class CalleeTag:
    """One call-graph contribution to an edge: the callee and its own counts."""
    callee: str
    mitigations: int
    exposures: int

    @property
    def risk(self) -> Risk:
        return classify(self.exposures, self.mitigations)


@dataclass
class MergeResult:
    """Component-to-component interactions plus global per-component tallies."""
    edges: dict[str, dict[str, list[CalleeTag]]] = field(default_factory=dict)
    mitigations: dict[str, int] = field(default_factory=dict)
    exposures: dict[str, int] = field(default_factory=dict)

    def risk(self, key: str) -> Risk:
        return classify(self.exposures.get(key, 0), self.mitigations.get(key, 0))


@dataclass
class Cluster:
    """A zone grouping component nodes."""
    key: str
    label: str
    nodes: list[str] = field(default_factory=list)

    @property
    def name(self) -> str:
        return f'cluster_{self.key}'


@dataclass
class Node:
    key: str
    label: str
    cluster: str
    shape: str
    risk: Optional[Risk] = None

    @property
    def color(self) -> Optional[str]:
        return NODE_COLORS[self.risk] if self.risk else None


@dataclass
class LabelEntry:
    text: str
    color: str


@dataclass
class Edge:
    source: str
    dest: str
    kind: str  # 'call', 'sends' or 'receives'
    labels: list[LabelEntry]
    color: str
    risk: Optional[Risk] = None


@dataclass
class RiskGraph:
    """Fully resolved diagram model in insertion order."""
    clusters: dict[str, Cluster] = field(default_factory=dict)
    nodes: dict[str, Node] = field(default_factory=dict)
    edges: list[Edge] = field(default_factory=list)


def _tally(counts: dict[str, int], key: str) -> None:
    counts[key] = counts.get(key, 0) + 1


def _touched_components(function: Function, result: MergeResult) -> list[str]:
    """Component keys a function declares, tallying its mitigations and exposures."""
    keys = []
    for mitigation in function.mitigations:
        key = component_key(mitigation.zone, mitigation.component)
        keys.append(key)
        _tally(result.mitigations, key)
    for exposure in function.exposures:
        key = component_key(exposure.zone, exposure.component)
        keys.append(key)
        _tally(result.exposures, key)
    for does in function.does:
        keys.append(component_key(does.zone, does.component))
    return list(dict.fromkeys(keys))


def merge_call_graph(functions: dict[str, Function], call_graph: CallGraph) -> MergeResult:
    """
    Cross-join caller components with callee components along call-graph edges.

    Tallies grow once per function visit (a callee is visited once per
    calling function, whatever the number of call sites). Tags are kept
    per (caller, callee) pair and may repeat across callers.
    """
    result = MergeResult()
    for caller_name, caller in functions.items():
        successors = call_graph.get(caller_name)
        if successors is None:
            continue
        sources = _touched_components(caller, result)
        for callee_name in successors:
            callee = functions.get(callee_name)
            if callee is None:
                logger.debug("Call graph node %s is not annotated", callee_name)
                continue
            dests = _touched_components(callee, result)
            tag = CalleeTag(callee=callee_name, mitigations=len(callee.mitigations),
                            exposures=len(callee.exposures))
            for source in sources:
                for dest in dests:
                    result.edges.setdefault(source, {}).setdefault(dest, []).append(tag)
    return result


class RiskGraphBuilder:
    """Resolves merge results and SendReceive facts into a RiskGraph."""

    def __init__(self, components: dict[str, ComponentRecord]):
        self.components = components
        self.graph = RiskGraph()

    def _cluster(self, zone: str) -> Cluster:
        key = normalize(zone)
        if key not in self.graph.clusters:
            self.graph.clusters[key] = Cluster(key=key, label=zone)
        return self.graph.clusters[key]

    def _node(self, key: str, zone: str, label: str, shape: str, risk: Optional[Risk] = None) -> Node:
        if key not in self.graph.nodes:
            cluster = self._cluster(zone)
            cluster.nodes.append(key)
            self.graph.nodes[key] = Node(key=key, label=label, cluster=cluster.key, shape=shape, risk=risk)
        return self.graph.nodes[key]

    def _component_node(self, key: str, merge: MergeResult) -> Node:
        component = self.components[key]
        return self._node(key, component.zone, component.component, 'box', merge.risk(key))

    def add_call_edges(self, merge: MergeResult) -> None:
        for source, dests in merge.edges.items():
            self._component_node(source, merge)
            for dest, tags in dests.items():
                self._component_node(dest, merge)
                labels = list(dict.fromkeys(
                    (tag.callee, LABEL_COLORS[tag.risk]) for tag in tags
                ))
                risk = escalate(tag.risk for tag in tags)
                self.graph.edges.append(Edge(
                    source=source, dest=dest, kind='call',
                    labels=[LabelEntry(text=text, color=color) for text, color in labels],
                    color=LABEL_COLORS[risk], risk=risk,
                ))

    def add_sendreceive(self, sr: SendReceive) -> None:
        source = component_key(sr.from_zone, sr.from_component)
        dest = component_key(sr.to_zone, sr.to_component)
        self._node(source, sr.from_zone, sr.from_component, 'oval')
        self._node(dest, sr.to_zone, sr.to_component, 'oval')
        color = DIRECTION_COLORS[sr.direction]
        self.graph.edges.append(Edge(
            source=source, dest=dest, kind=sr.direction,
            labels=[LabelEntry(text=sr.subject, color=color)], color=color,
        ))


def build_risk_graph(functions: dict[str, Function], call_graph: CallGraph,
                     components: dict[str, ComponentRecord]) -> RiskGraph:
    """Merge annotations with the call graph and resolve the diagram model."""
    builder = RiskGraphBuilder(components)
    builder.add_call_edges(merge_call_graph(functions, call_graph))
    for function in functions.values():
        for sr in function.sendreceives:
            builder.add_sendreceive(sr)
    return builder.graph
