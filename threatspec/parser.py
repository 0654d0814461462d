"""Builds the function-scoped threat model from annotated source files."""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional

from .grammar import (
    KINDS, CodeSignature, DoesAnnotation, ExposureAnnotation, FunctionDecl,
    MitigationAnnotation, SendReceiveAnnotation, TestAnnotation, match_line,
    signature_matches,
)
from .schemas import Does, Exposure, Function, Mitigation, SendReceive, Test

logger = logging.getLogger(__name__)


class ThreatSpecParseError(Exception):
    """Raised when a source file cannot be read."""
    pass


@dataclass
class Orphan:
    """An annotation found before any `ThreatSpec ... for ...` line."""
    file: str
    line_number: int
    kind: str
    raw: str


@dataclass
class ParseContext:
    """Per-file parse state. The current function never crosses files."""
    file: str
    current: Optional[Function] = None


class ThreatSpecParser:
    """
    Accumulates annotations into Function records.

    Annotations attach to the most recently declared function of the file
    being parsed. `functions` maps declared name to the latest record with
    that name; `declarations` keeps every record in declaration order.
    """

    def __init__(self):
        self.functions: dict[str, Function] = {}
        self.declarations: list[Function] = []
        self.orphans: list[Orphan] = []
        self.functions_found: dict[str, int] = {}
        self.functions_covered: dict[int, int] = {}
        self.functions_tested: dict[str, int] = {}

    def parse(self, file: str, text: str) -> None:
        context = ParseContext(file=str(file))
        for line_number, line in enumerate(text.split('\n'), start=1):
            self.consume_line(context, line_number, line)

    def parse_file(self, path: str | Path) -> None:
        path = Path(path)
        try:
            text = path.read_text(encoding='utf-8')
        except FileNotFoundError:
            raise ThreatSpecParseError(f"Source file does not exist: {path}")
        except (OSError, UnicodeDecodeError) as e:
            raise ThreatSpecParseError(f"Cannot read source file {path}: {e}")
        logger.debug("Parsing %s", path)
        self.parse(str(path), text)

    def consume_line(self, context: ParseContext, line_number: int, line: str) -> ParseContext:
        line = line.rstrip('\r\n')
        annotation = match_line(line)

        if isinstance(annotation, FunctionDecl):
            context.current = Function(model=annotation.model, function=annotation.function, raw=line)
            self.declarations.append(context.current)
        elif isinstance(annotation, CodeSignature):
            self._attach_signature(context, line_number, annotation)
        elif annotation is not None:
            if context.current is None:
                self._orphan(context, line_number, KINDS[type(annotation)], line)
            else:
                self._apply(context.current, annotation, line)

        if context.current is not None:
            self.functions[context.current.function] = context.current
        return context

    def _apply(self, function: Function, annotation, line: str) -> None:
        if isinstance(annotation, MitigationAnnotation):
            function.mitigations.append(Mitigation.from_annotation(
                annotation.component, annotation.threat, annotation.mitigation, annotation.ref, line
            ))
            self._cover(function)
        elif isinstance(annotation, ExposureAnnotation):
            function.exposures.append(Exposure.from_annotation(
                annotation.component, annotation.threat, annotation.exposure, annotation.ref, line
            ))
            self._cover(function)
        elif isinstance(annotation, DoesAnnotation):
            function.does.append(Does.from_annotation(annotation.action, annotation.component, annotation.ref, line))
            self._cover(function)
        elif isinstance(annotation, SendReceiveAnnotation):
            function.sendreceives.append(SendReceive.from_annotation(
                annotation.direction, annotation.subject, annotation.from_component,
                annotation.to_component, line
            ))
            self._cover(function)
        elif isinstance(annotation, TestAnnotation):
            # Keyed by the raw target name, which need not be a declared function
            self.functions_tested[annotation.function] = self.functions_tested.get(annotation.function, 0) + 1
            function.tests.append(Test(function=annotation.function, threat=annotation.threat,
                                       ref=annotation.ref, raw=line))

    def _cover(self, function: Function) -> None:
        key = id(function)
        self.functions_covered[key] = self.functions_covered.get(key, 0) + 1

    def _attach_signature(self, context: ParseContext, line_number: int, signature: CodeSignature) -> None:
        self.functions_found[signature.function] = self.functions_found.get(signature.function, 0) + 1
        current = context.current
        if current is not None and signature_matches(signature.function, current.function):
            current.code = signature.code
            current.file = context.file
            current.line_number = line_number
            logger.debug("Matched %s to %s:%d", current.function, context.file, line_number)

    def _orphan(self, context: ParseContext, line_number: int, kind: str, line: str) -> None:
        self.orphans.append(Orphan(file=context.file, line_number=line_number, kind=kind, raw=line))
        logger.warning("Orphaned: %s (%s:%d)", line, context.file, line_number)


def load_sources(paths: Iterable[str | Path]) -> ThreatSpecParser:
    """Parse source files in the order given."""
    parser = ThreatSpecParser()
    for path in paths:
        parser.parse_file(path)
    return parser
