"""Application scanner: drives the extractors over a whole program.

Order matters: parameters and responses first, then the definitions
fixed point, then routes (which reference all three by name), then meta.
"""

import logging

from pydantic import BaseModel

from swagger_scan.errors import DuplicateDefinitionError, UnresolvedReferenceError
from swagger_scan.parser.base import SwaggerDocument
from swagger_scan.parser.validators import RX_META, RX_MODEL
from swagger_scan.program import CompilationUnit, Program
from swagger_scan.scanner.classifier import ProgramClassifier
from swagger_scan.scanner.meta import MetaParser
from swagger_scan.scanner.parameters import ParameterParser
from swagger_scan.scanner.responses import ResponseParser
from swagger_scan.scanner.routes import RoutesParser
from swagger_scan.scanner.schema import PendingDeclaration, SchemaParser, find_annotation, infer_name

logger = logging.getLogger("swagger_scan.scanner.app")


class ScanOptions(BaseModel):
    """Module path filters for the initial classification."""

    includes: list[str] = []
    excludes: list[str] = []


def scan_application(
    program: Program,
    base: SwaggerDocument | None = None,
    options: ScanOptions | None = None,
) -> SwaggerDocument:
    """Scan ``program`` and merge the result into a copy of ``base``."""
    return AppScanner(program, base, options).parse()


class AppScanner:
    """Global context of one scan."""

    def __init__(
        self,
        program: Program,
        base: SwaggerDocument | None = None,
        options: ScanOptions | None = None,
    ):
        options = options or ScanOptions()
        self.program = program
        self.document = base.model_copy(deep=True) if base is not None else SwaggerDocument()
        self.definitions = self.document.definitions
        self.responses = self.document.responses
        self.operations = self.document.operations_by_id()
        self.existing_ids = set(self.operations)
        self.classifier = ProgramClassifier(options.includes, options.excludes)
        self.discovered: list[PendingDeclaration] = []
        self.origins: dict[str, tuple[str, str]] = {}
        self.registered: list[str] = []

    def parse(self) -> SwaggerDocument:
        cp = self.classifier.classify(self.program)

        for unit in cp.parameters:
            self._parse_parameters(unit)

        response_parser = ResponseParser(self.program)
        for unit in cp.responses:
            response_parser.parse(unit, self.responses)
        self.discovered.extend(response_parser.post_decls)

        for unit in cp.models:
            self._seed_models(unit)
        self.process_discovered()

        routes = RoutesParser(self.document, self.operations, self.definitions, self.responses)
        for unit in cp.operations:
            routes.parse(unit)
        self._check_registrations(routes.routed)

        for unit in cp.meta:
            for block in unit.comment_blocks():
                if find_annotation(block, RX_META) is not None:
                    MetaParser(self.document).parse(block)

        logger.info(
            f"Scanned {len(self.program.units)} units: {len(self.document.paths)} paths, "
            f"{len(self.definitions)} definitions, {len(self.responses)} responses"
        )
        return self.document

    def process_discovered(self) -> None:
        """Resolve pending declarations until no new ones turn up."""
        passes = 0
        while self.discovered:
            queue = [d for d in self.discovered if self._claim(d)]
            self.discovered = []
            for pending in queue:
                parser = SchemaParser(self.program, self.definitions)
                parser.parse(pending)
                self.discovered.extend(parser.post_decls)
            passes += 1
        logger.debug(f"Definitions settled after {passes} passes")

    def _claim(self, pending: PendingDeclaration) -> bool:
        """True when ``pending`` still needs resolving.

        Each definition name belongs to the first declaration that claimed it;
        names already in the base document are left as they are.
        """
        origin = (pending.unit.module, pending.decl.name)
        owner = self.origins.get(pending.name)
        if owner is None:
            if pending.name in self.definitions:
                return False
            self.origins[pending.name] = origin
            return True
        if owner != origin:
            raise DuplicateDefinitionError(
                f"definition {pending.name!r} is claimed by {owner[0]}.{owner[1]} and {origin[0]}.{origin[1]}"
            )
        return False

    def _parse_parameters(self, unit: CompilationUnit) -> None:
        parser = ParameterParser(self.program)
        self.registered.extend(parser.parse(unit, self.operations))
        self.discovered.extend(parser.post_decls)

    def _seed_models(self, unit: CompilationUnit) -> None:
        for decl in unit.declarations:
            if find_annotation(decl.doc, RX_MODEL) is not None:
                self.discovered.append(PendingDeclaration(unit, decl, infer_name(self.program, unit, decl)))

    def _check_registrations(self, routed: set[str]) -> None:
        for op_id in self.registered:
            if op_id not in routed and op_id not in self.existing_ids:
                raise UnresolvedReferenceError("operation", op_id, "parameters registered for an operation no route declares")
