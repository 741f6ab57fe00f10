"""Parameter extractor for ``+swagger:parameters`` declarations.

Every field of an annotated record becomes one parameter of each
operation id named by the annotation.
"""

import logging

from swagger_scan.parser.base import Operation, Parameter, Schema
from swagger_scan.parser.sectioned import SectionedParser, single_line
from swagger_scan.parser.validators import (
    RX_PARAMETERS,
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
    SetRequiredParam,
    SetUnique,
)
from swagger_scan.program import CompilationUnit, FieldDecl, Program
from swagger_scan.scanner.schema import (
    AnnotationParser,
    PendingDeclaration,
    TypeResolver,
    find_annotation,
    join_description,
    to_schema,
    to_simple_type,
)

logger = logging.getLogger("swagger_scan.scanner.parameters")


class ParameterParser:
    """Registers annotated parameter sets on operations, keyed by operation id."""

    def __init__(self, program: Program):
        self.resolver = TypeResolver(program)

    @property
    def post_decls(self) -> list[PendingDeclaration]:
        return self.resolver.discovered

    def parse(self, unit: CompilationUnit, operations: dict[str, Operation]) -> list[str]:
        """Attach the unit's parameter sets to ``operations``; return the ids named."""
        registered = []
        for decl in unit.declarations:
            match = find_annotation(decl.doc, RX_PARAMETERS)
            if match is None:
                continue
            op_ids = match.group(1).split()
            params = [self._parameter(unit, field) for field in decl.fields]
            for op_id in op_ids:
                op = operations.setdefault(op_id, Operation(id=op_id))
                for param in params:
                    op.set_parameter(param.model_copy(deep=True))
                registered.append(op_id)
            logger.debug(f"Registered {len(params)} parameters from {unit.module}.{decl.name} for {op_ids}")
        return registered

    def _parameter(self, unit: CompilationUnit, field: FieldDecl) -> Parameter:
        param = Parameter(name=field.name, location="query")
        formats: list[str] = []
        SectionedParser(
            taggers=[
                single_line("in", SetLocation(param.set_location)),
                single_line("required", SetRequiredParam(param)),
                single_line("maximum", SetMaximum(param)),
                single_line("minimum", SetMinimum(param)),
                single_line("multipleOf", SetMultipleOf(param)),
                single_line("maxLength", SetMaxLength(param)),
                single_line("minLength", SetMinLength(param)),
                single_line("pattern", SetPattern(param)),
                single_line("collectionFormat", SetCollectionFormat(param)),
                single_line("maxItems", SetMaxItems(param)),
                single_line("minItems", SetMinItems(param)),
                single_line("unique", SetUnique(param)),
            ],
            annotation=AnnotationParser(RX_STRFMT, formats.append),
            set_description=lambda lines: setattr(param, "description", join_description(lines)),
        ).parse(field.doc)

        if param.location == "body":
            schema = Schema()
            if formats:
                schema.typed("string", formats[-1])
            else:
                to_schema(self.resolver.resolve(unit, field.type), schema)
            param.transfer_to(schema)
            param.schema_ = schema
            return param

        if formats:
            param.typed("string", formats[-1])
        else:
            to_simple_type(self.resolver.resolve(unit, field.type), param, f"parameter {field.name!r}")
        if param.location == "path":
            param.required = True
        return param
