"""Response extractor for ``+swagger:response`` declarations.

The declaration's comment is the response description. A field marked
``in: body`` supplies the schema; every other field is a header.
"""

import logging

from swagger_scan.errors import DuplicateDefinitionError
from swagger_scan.parser.base import Header, Response, Schema
from swagger_scan.parser.sectioned import SectionedParser, single_line
from swagger_scan.parser.validators import (
    RX_RESPONSE,
    RX_STRFMT,
    SetCollectionFormat,
    SetLocation,
    SetMaximum,
    SetMaxItems,
    SetMaxLength,
    SetMinimum,
    SetMinItems,
    SetMinLength,
    SetMultipleOf,
    SetPattern,
    SetUnique,
)
from swagger_scan.program import CompilationUnit, FieldDecl, Program, TypeDecl
from swagger_scan.scanner.schema import (
    AnnotationParser,
    PendingDeclaration,
    TypeResolver,
    find_annotation,
    join_description,
    to_schema,
    to_simple_type,
)

logger = logging.getLogger("swagger_scan.scanner.responses")


class ResponseParser:
    """Adds the unit's annotated responses to the document responses."""

    def __init__(self, program: Program):
        self.resolver = TypeResolver(program)
        self.seen: set[str] = set()

    @property
    def post_decls(self) -> list[PendingDeclaration]:
        return self.resolver.discovered

    def parse(self, unit: CompilationUnit, responses: dict[str, Response]) -> None:
        for decl in unit.declarations:
            match = find_annotation(decl.doc, RX_RESPONSE)
            if match is None:
                continue
            name = match.group(1) or decl.name
            if name in self.seen:
                raise DuplicateDefinitionError(f"response {name!r} is declared more than once")
            self.seen.add(name)
            if name in responses:
                logger.debug(f"Keeping response {name} from the base document over {unit.module}.{decl.name}")
                continue
            responses[name] = self._response(unit, decl)
            logger.debug(f"Registered response {name} from {unit.module}.{decl.name}")

    def _response(self, unit: CompilationUnit, decl: TypeDecl) -> Response:
        resp = Response()
        SectionedParser(
            annotation=AnnotationParser(RX_RESPONSE),
            set_description=lambda lines: setattr(resp, "description", "\n".join(lines)),
        ).parse(decl.doc)

        for field in decl.fields:
            self._member(unit, resp, field)
        return resp

    def _member(self, unit: CompilationUnit, resp: Response, field: FieldDecl) -> None:
        header = Header()
        locations: list[str] = []
        formats: list[str] = []
        SectionedParser(
            taggers=[
                single_line("in", SetLocation(locations.append)),
                single_line("maximum", SetMaximum(header)),
                single_line("minimum", SetMinimum(header)),
                single_line("multipleOf", SetMultipleOf(header)),
                single_line("maxLength", SetMaxLength(header)),
                single_line("minLength", SetMinLength(header)),
                single_line("pattern", SetPattern(header)),
                single_line("collectionFormat", SetCollectionFormat(header)),
                single_line("maxItems", SetMaxItems(header)),
                single_line("minItems", SetMinItems(header)),
                single_line("unique", SetUnique(header)),
            ],
            annotation=AnnotationParser(RX_STRFMT, formats.append),
            set_description=lambda lines: setattr(header, "description", join_description(lines)),
        ).parse(field.doc)

        if locations and locations[-1] == "body":
            schema = Schema()
            if formats:
                schema.typed("string", formats[-1])
            else:
                to_schema(self.resolver.resolve(unit, field.type), schema)
            header.transfer_to(schema)
            resp.schema_ = schema
            return

        if formats:
            header.typed("string", formats[-1])
        else:
            to_simple_type(self.resolver.resolve(unit, field.type), header, f"response header {field.name!r}")
        resp.headers[field.name] = header
