"""
Annotation grammar matcher.

Each source line is tried against an ordered list of recognizers and the
first match wins. Matching is stateless: the result is one of the
annotation dataclasses below (or None), and it is up to the parser to
apply it to the model.
"""

import re
from dataclasses import dataclass
from typing import Callable, Optional, Union

# Optional leading whitespace, then a single-line comment marker
_LEADER = r'^\s*(?://|#)\s*'
_REF = r'\s*(?:\((?P<ref>.*?)\))?\s*$'


@dataclass(frozen=True)
class FunctionDecl:
    """`ThreatSpec <model> for <function>`"""
    model: str
    function: str


@dataclass(frozen=True)
class MitigationAnnotation:
    """`Mitigates <component> against <threat> with <mitigation> (<ref>)`"""
    component: str
    threat: str
    mitigation: str
    ref: Optional[str] = None


@dataclass(frozen=True)
class ExposureAnnotation:
    """`Exposes <component> to <threat> with <exposure> (<ref>)`"""
    component: str
    threat: str
    exposure: str
    ref: Optional[str] = None


@dataclass(frozen=True)
class DoesAnnotation:
    """`Does <action> for <component> (<ref>)`"""
    action: str
    component: str
    ref: Optional[str] = None


@dataclass(frozen=True)
class SendReceiveAnnotation:
    """`Sends|Receives <subject> from <component> to <component>`"""
    direction: str
    subject: str
    from_component: str
    to_component: str


@dataclass(frozen=True)
class TestAnnotation:
    """`Tests <function> for <threat> (<ref>)`"""
    __test__ = False  # not a pytest test class

    function: str
    threat: str
    ref: Optional[str] = None


@dataclass(frozen=True)
class CodeSignature:
    """A `func name(...) {` definition line."""
    code: str
    function: str


Annotation = Union[
    FunctionDecl, MitigationAnnotation, ExposureAnnotation, DoesAnnotation,
    SendReceiveAnnotation, TestAnnotation, CodeSignature,
]


FUNCTION_PATTERN = re.compile(_LEADER + r'ThreatSpec (?P<model>.+?) for (?P<function>.+?)\s*$')
MITIGATION_PATTERN = re.compile(
    _LEADER + r'Mitigates (?P<component>.+?) against (?P<threat>.+?) with (?P<mitigation>.+?)' + _REF
)
EXPOSURE_PATTERN = re.compile(
    _LEADER + r'Exposes (?P<component>.+?) to (?P<threat>.+?) with (?P<exposure>.+?)' + _REF
)
DOES_PATTERN = re.compile(_LEADER + r'Does (?P<action>.+?) for (?P<component>.+?)' + _REF)
SENDRECEIVE_PATTERN = re.compile(
    _LEADER + r'(?P<direction>Sends|Receives) (?P<subject>.+?) from (?P<from_component>.+?) '
    r'to (?P<to_component>.+?)\s*$'
)
TEST_PATTERN = re.compile(_LEADER + r'Tests (?P<function>.+?) for (?P<threat>.+?)' + _REF)
CODE_SIGNATURE_PATTERN = re.compile(r'^\s*func\s+(?P<code>(?P<function>.+?)\(.*?)\s*\{\s*$')


def _fields(*names: str) -> Callable[[re.Match], dict]:
    return lambda match: {name: match.group(name) for name in names}


# Annotations first: a signature line must never shadow an annotation.
MATCHERS: tuple[tuple[str, re.Pattern, Callable[[re.Match], dict], type], ...] = (
    ('function', FUNCTION_PATTERN, _fields('model', 'function'), FunctionDecl),
    ('mitigation', MITIGATION_PATTERN, _fields('component', 'threat', 'mitigation', 'ref'),
     MitigationAnnotation),
    ('exposure', EXPOSURE_PATTERN, _fields('component', 'threat', 'exposure', 'ref'), ExposureAnnotation),
    ('does', DOES_PATTERN, _fields('action', 'component', 'ref'), DoesAnnotation),
    ('sendreceive', SENDRECEIVE_PATTERN, _fields('direction', 'subject', 'from_component', 'to_component'),
     SendReceiveAnnotation),
    ('test', TEST_PATTERN, _fields('function', 'threat', 'ref'), TestAnnotation),
    ('signature', CODE_SIGNATURE_PATTERN, _fields('code', 'function'), CodeSignature),
)

KINDS: dict[type, str] = {variant: kind for kind, _pattern, _extract, variant in MATCHERS}


def match_line(line: str) -> Optional[Annotation]:
    """Return the first annotation recognized on the line, or None."""
    line = line.rstrip('\r\n')
    for _kind, pattern, extract, variant in MATCHERS:
        match = pattern.match(line)
        if match:
            return variant(**extract(match))
    return None


def signature_matches(signature_name: str, function_name: str) -> bool:
    """
    Heuristic link between a code signature and an annotated function.

    Annotation names may be dotted (`Server.Handle`) while signature lines
    carry a bare name, possibly after a receiver (`(s *Server) Handle`).
    The last whitespace-delimited token of the signature name is compared
    with the last dot-delimited segment of the annotated name.
    """
    tokens = signature_name.split()
    if not tokens:
        return False
    return tokens[-1] == function_name.split('.')[-1]
