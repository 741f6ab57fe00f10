"""Route extractor for ``+swagger:route`` directives."""

import logging
from functools import partial

from swagger_scan.errors import DirectiveValueError, DuplicateDefinitionError
from swagger_scan.parser.base import HTTP_METHODS, Operation, PathItem, Response, Schema, SwaggerDocument
from swagger_scan.parser.sectioned import SectionedParser, multi_line, single_line
from swagger_scan.parser.validators import (
    RX_CONSUMES,
    RX_PRODUCES,
    RX_ROUTE,
    MultiLineDropEmpty,
    SetResponses,
    SetSchemes,
    SetSecurity,
)
from swagger_scan.program import CompilationUnit
from swagger_scan.scanner.schema import join_description, join_title

logger = logging.getLogger("swagger_scan.scanner.routes")


class RoutesParser:
    """Places operations on the document paths.

    ``operations`` indexes operations by id; parameter sets registered
    earlier live there and get picked up by the route naming their id.
    """

    def __init__(
        self,
        document: SwaggerDocument,
        operations: dict[str, Operation],
        definitions: dict[str, Schema],
        responses: dict[str, Response],
    ):
        self.document = document
        self.operations = operations
        self.definitions = definitions
        self.responses = responses
        self.routed: set[str] = set()

    def parse(self, unit: CompilationUnit) -> None:
        for block in unit.comment_blocks():
            lines = [line for text in block for line in text.split("\n")]
            for i, line in enumerate(lines):
                match = RX_ROUTE.search(line.rstrip())
                if match:
                    self._route(match, lines[i + 1:])

    def _route(self, match, body: list[str]) -> None:
        method, path, tag_phrase, op_id = match.groups()
        method = method.lower()
        if method not in HTTP_METHODS:
            raise DirectiveValueError(f"unknown HTTP method {match.group(1)!r} for operation {op_id!r}")
        if op_id in self.routed:
            raise DuplicateDefinitionError(f"operation id {op_id!r} is used by more than one route")
        self.routed.add(op_id)

        op = self.operations.setdefault(op_id, Operation(id=op_id))
        op.add_tags(tag_phrase.split())

        SectionedParser(
            taggers=[
                multi_line("consumes", MultiLineDropEmpty(RX_CONSUMES, partial(setattr, op, "consumes"))),
                multi_line("produces", MultiLineDropEmpty(RX_PRODUCES, partial(setattr, op, "produces"))),
                single_line("schemes", SetSchemes(partial(setattr, op, "schemes"))),
                multi_line("security", SetSecurity(partial(setattr, op, "security"))),
                multi_line("responses", SetResponses(self.definitions, self.responses, op.set_responses)),
            ],
            set_title=lambda lines: setattr(op, "summary", join_title(lines)),
            set_description=lambda lines: setattr(op, "description", join_description(lines)),
        ).parse(body)

        self.document.detach_operation(op_id)
        item = self.document.paths.setdefault(path, PathItem())
        setattr(item, method, op)
        logger.debug(f"Routed {method.upper()} {path} to {op_id}")
