"""Threat model analyzer - component index and coverage from parsed annotations."""

from dataclasses import dataclass, field

from .components import component_key
from .parser import Orphan, ThreatSpecParser
from .schemas import ComponentRecord, CoverageSummary, Function, Occurrence, ThreatRecord


@dataclass
class AnalysisResult:
    """Complete analysis of a set of parsed source files."""
    models: list[str]
    functions: dict[str, Function]
    components: dict[str, ComponentRecord]
    coverage: CoverageSummary
    orphans: list[Orphan] = field(default_factory=list)


def percentage(numerator: int, denominator: int) -> float:
    """Percentage rounded to 2 decimals; 0.0 when the denominator is zero."""
    if denominator == 0:
        return 0.0
    return round(100 * numerator / denominator, 2)


class ThreatSpecAnalyzer:
    """Aggregates function-scoped annotations into per-component threat records."""

    def _component(self, components: dict[str, ComponentRecord], zone: str, name: str) -> ComponentRecord:
        key = component_key(zone, name)
        if key not in components:
            components[key] = ComponentRecord(key=key, zone=zone, component=name)
        return components[key]

    def _threat(self, component: ComponentRecord, threat: str) -> ThreatRecord:
        if threat not in component.threats:
            component.threats[threat] = ThreatRecord(name=threat)
        return component.threats[threat]

    def build_components(self, functions: dict[str, Function]) -> dict[str, ComponentRecord]:
        components: dict[str, ComponentRecord] = {}
        for name, function in functions.items():
            for mitigation in function.mitigations:
                component = self._component(components, mitigation.zone, mitigation.component)
                self._threat(component, mitigation.threat).mitigations.append(Occurrence(
                    text=mitigation.mitigation, ref=mitigation.ref, function=name,
                    file=function.file, line=function.line_number,
                ))
            for exposure in function.exposures:
                component = self._component(components, exposure.zone, exposure.component)
                self._threat(component, exposure.threat).exposures.append(Occurrence(
                    text=exposure.exposure, ref=exposure.ref, function=name,
                    file=function.file, line=function.line_number,
                ))
            for does in function.does:
                component = self._component(components, does.zone, does.component)
                component.actions.append(does.action)
        return components

    def coverage(self, parser: ThreatSpecParser) -> CoverageSummary:
        # tested is keyed by raw test-target name, covered by function record
        found = len(parser.functions_found)
        covered = len(parser.functions_covered)
        tested = len(parser.functions_tested)
        return CoverageSummary(
            found=found, covered=covered, tested=tested,
            covered_percent=percentage(covered, found),
            tested_percent=percentage(tested, covered),
        )

    def analyze(self, parser: ThreatSpecParser) -> AnalysisResult:
        models = []
        for function in parser.declarations:
            if function.model not in models:
                models.append(function.model)
        return AnalysisResult(
            models=models,
            functions=parser.functions,
            components=self.build_components(parser.functions),
            coverage=self.coverage(parser),
            orphans=list(parser.orphans),
        )
