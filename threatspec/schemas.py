"""Pydantic models for annotation records and analysis results."""

from typing import Optional
from pydantic import BaseModel, Field

from .components import parse_component


class Mitigation(BaseModel):
    """A control reducing a component's exposure to a threat."""
    component: str
    zone: str
    threat: str
    mitigation: str
    ref: Optional[str] = None
    raw: str = ''

    @classmethod
    def from_annotation(cls, component: str, threat: str, mitigation: str,
                        ref: Optional[str], raw: str) -> 'Mitigation':
        name, zone = parse_component(component)
        return cls(component=name, zone=zone, threat=threat, mitigation=mitigation, ref=ref, raw=raw)


class Exposure(BaseModel):
    """A gap increasing a component's exposure to a threat."""
    component: str
    zone: str
    threat: str
    exposure: str
    ref: Optional[str] = None
    raw: str = ''

    @classmethod
    def from_annotation(cls, component: str, threat: str, exposure: str,
                        ref: Optional[str], raw: str) -> 'Exposure':
        name, zone = parse_component(component)
        return cls(component=name, zone=zone, threat=threat, exposure=exposure, ref=ref, raw=raw)


class Does(BaseModel):
    """An action a function performs for a component. Carries no risk."""
    action: str
    component: str
    zone: str
    ref: Optional[str] = None
    raw: str = ''

    @classmethod
    def from_annotation(cls, action: str, component: str, ref: Optional[str], raw: str) -> 'Does':
        name, zone = parse_component(component)
        return cls(action=action, component=name, zone=zone, ref=ref, raw=raw)


class SendReceive(BaseModel):
    """A directed data flow between two components."""
    direction: str = Field(..., pattern=r'^(sends|receives)$')
    subject: str
    from_component: str
    from_zone: str
    to_component: str
    to_zone: str
    raw: str = ''

    @classmethod
    def from_annotation(cls, direction: str, subject: str, from_component: str,
                        to_component: str, raw: str) -> 'SendReceive':
        from_name, from_zone = parse_component(from_component)
        to_name, to_zone = parse_component(to_component)
        return cls(
            direction=direction.lower(), subject=subject,
            from_component=from_name, from_zone=from_zone,
            to_component=to_name, to_zone=to_zone, raw=raw,
        )


class Test(BaseModel):
    """A test covering a function/threat pair."""
    __test__ = False  # not a pytest test class

    function: str
    threat: str
    ref: Optional[str] = None
    raw: str = ''


class Function(BaseModel):
    """An annotated function, identified by its declared name."""
    model: str
    function: str
    raw: str = ''
    mitigations: list[Mitigation] = Field(default_factory=list)
    exposures: list[Exposure] = Field(default_factory=list)
    does: list[Does] = Field(default_factory=list)
    sendreceives: list[SendReceive] = Field(default_factory=list)
    tests: list[Test] = Field(default_factory=list)

    # Filled in when a matching code signature is found
    code: Optional[str] = None
    file: Optional[str] = None
    line_number: Optional[int] = None


class CallSite(BaseModel):
    """Location of a call in the caller's source."""
    line: int
    column: int


class Occurrence(BaseModel):
    """A mitigation or exposure text with the function it was declared on."""
    text: str
    ref: Optional[str] = None
    function: str
    file: Optional[str] = None
    line: Optional[int] = None


class ThreatRecord(BaseModel):
    """All mitigations and exposures recorded against one threat."""
    name: str
    mitigations: list[Occurrence] = Field(default_factory=list)
    exposures: list[Occurrence] = Field(default_factory=list)


class ComponentRecord(BaseModel):
    """A component synthesized from annotations, keyed by component_key."""
    key: str
    zone: str
    component: str
    threats: dict[str, ThreatRecord] = Field(default_factory=dict)
    actions: list[str] = Field(default_factory=list)


class CoverageSummary(BaseModel):
    """Function coverage counts and percentages."""
    found: int
    covered: int
    tested: int
    covered_percent: float
    tested_percent: float
