"""Schema resolver: turns record declarations into definitions.

Field types are classified by ``TypeResolver.resolve`` into one of the
``ResolvedType`` variants. Records reached through a field are not
expanded in place; they become a ``$ref`` and a ``PendingDeclaration``
that the scanner resolves on a later pass.
"""

import logging
import re
from typing import NamedTuple, Union

from swagger_scan.errors import DirectiveValueError, UnresolvedTypeError
from swagger_scan.parser.base import Header, Parameter, Schema
from swagger_scan.parser.sectioned import SectionedParser, single_line
from swagger_scan.parser.validators import (
    RX_MODEL,
    RX_STRFMT,
    SetMaximum,
    SetMaxItems,
    SetMaxLength,
    SetMinimum,
    SetMinItems,
    SetMinLength,
    SetMultipleOf,
    SetPattern,
    SetReadOnly,
    SetRequiredSchema,
    SetUnique,
    ValueParser,
)
from swagger_scan.program import (
    ArrayType,
    BasicType,
    CompilationUnit,
    NamedType,
    Program,
    SelectorType,
    TypeDecl,
    TypeExpr,
)

logger = logging.getLogger("swagger_scan.scanner.schema")

PRIMITIVES = {
    "bool": ("boolean", None),
    "str": ("string", None),
    "string": ("string", None),
    "rune": ("string", None),
    "int8": ("integer", "int8"),
    "int16": ("integer", "int16"),
    "int32": ("integer", "int32"),
    "int": ("integer", "int64"),
    "int64": ("integer", "int64"),
    "uint8": ("integer", "uint8"),
    "uint16": ("integer", "uint16"),
    "uint32": ("integer", "uint32"),
    "uint": ("integer", "uint64"),
    "uint64": ("integer", "uint64"),
    "float32": ("number", "float"),
    "float64": ("number", "double"),
    "float": ("number", "double"),
}


class PendingDeclaration(NamedTuple):
    """A record discovered through a reference, with its definition name."""

    unit: CompilationUnit
    decl: TypeDecl
    name: str


class Primitive(NamedTuple):
    type: str
    format: str | None = None


class Formatted(NamedTuple):
    """A string type carrying a ``strfmt`` format name."""

    format: str


class Reference(NamedTuple):
    name: str


class ArrayOf(NamedTuple):
    elem: "ResolvedType"


class Untyped(NamedTuple):
    kind: str


ResolvedType = Union[Primitive, Formatted, Reference, ArrayOf, Untyped]


class AnnotationParser(ValueParser):
    """Matches one ``+swagger:`` marker and hands its capture to a setter."""

    def __init__(self, rx: re.Pattern, setter=None):
        self.rx = rx
        self.setter = setter

    def parse(self, lines):
        if self.setter is None:
            return
        for line in lines:
            match = self.rx.search(line)
            if match:
                self.setter(match.group(1) if self.rx.groups else None)


def find_annotation(doc, rx: re.Pattern) -> re.Match | None:
    for block in doc or ():
        for line in block.split("\n"):
            match = rx.search(line.rstrip())
            if match:
                return match
    return None


def strfmt_name(doc) -> str | None:
    match = find_annotation(doc, RX_STRFMT)
    return match.group(1) if match else None


def definition_ref(name: str) -> str:
    return f"#/definitions/{name}"


def join_title(lines: list[str]) -> str | None:
    return " ".join(line.strip() for line in lines) or None


def join_description(lines: list[str]) -> str | None:
    return "\n".join(lines) or None


def infer_name(program: Program, unit: CompilationUnit, decl: TypeDecl) -> str:
    """Definition name of a declaration.

    A ``+swagger:model <name>`` annotation wins; otherwise the identifier,
    prefixed with its module path when several modules declare it.
    """
    match = find_annotation(decl.doc, RX_MODEL)
    if match and match.group(1):
        return match.group(1)
    if len(program.record_modules(decl.name)) > 1:
        return f"{unit.module}.{decl.name}"
    return decl.name


def to_schema(resolved: ResolvedType, target: Schema | None = None) -> Schema:
    """Write a resolved type onto a schema."""
    target = target if target is not None else Schema()
    if isinstance(resolved, Primitive):
        target.typed(resolved.type, resolved.format)
    elif isinstance(resolved, Formatted):
        target.typed("string", resolved.format)
    elif isinstance(resolved, Reference):
        target.set_ref(definition_ref(resolved.name))
    elif isinstance(resolved, ArrayOf):
        target.typed("array")
        target.items = to_schema(resolved.elem)
    return target


def to_simple_type(resolved: ResolvedType, target: Parameter | Header, what: str) -> None:
    """Write a resolved type onto a non-body parameter or a header."""
    if isinstance(resolved, Primitive):
        target.typed(resolved.type, resolved.format)
    elif isinstance(resolved, Formatted):
        target.typed("string", resolved.format)
    elif isinstance(resolved, ArrayOf):
        if isinstance(resolved.elem, (Reference, ArrayOf)):
            raise DirectiveValueError(f"{what} can only hold an array of simple values")
        target.typed("array")
        target.items = to_schema(resolved.elem)
    elif isinstance(resolved, Reference):
        raise DirectiveValueError(f"{what} refers to model {resolved.name!r} and must be in: body")


class TypeResolver:
    """Classifies type expressions, collecting records that still need a definition."""

    def __init__(self, program: Program):
        self.program = program
        self.discovered: list[PendingDeclaration] = []

    def resolve(self, unit: CompilationUnit, expr: TypeExpr) -> ResolvedType:
        return self._resolve(unit, expr, frozenset())

    def _resolve(self, unit, expr, seen) -> ResolvedType:
        if isinstance(expr, BasicType):
            return self._primitive(expr.name)
        if isinstance(expr, ArrayType):
            return ArrayOf(self._resolve(unit, expr.elem, seen))

        if isinstance(expr, NamedType):
            found = self.program.find_declaration(unit.module, expr.name)
            if found is None:
                if expr.name in PRIMITIVES:
                    return self._primitive(expr.name)
                raise UnresolvedTypeError(f"no declaration {expr.name!r} in module {unit.module!r}")
        elif isinstance(expr, SelectorType):
            module = unit.imports.get(expr.qualifier)
            if module is None:
                raise UnresolvedTypeError(f"no import found for {expr.qualifier!r} in module {unit.module!r}")
            if not self.program.has_module(module):
                raise UnresolvedTypeError(f"no module found for {module!r}")
            found = self.program.find_declaration(module, expr.name)
            if found is None:
                raise UnresolvedTypeError(f"no declaration {expr.name!r} in module {module!r}")
        else:
            raise UnresolvedTypeError(f"unsupported type expression {expr!r}")

        return self._resolve_declaration(*found, seen)

    def _resolve_declaration(self, unit, decl, seen) -> ResolvedType:
        fmt = strfmt_name(decl.doc)
        if fmt:
            return Formatted(fmt)

        if decl.kind == "record":
            name = infer_name(self.program, unit, decl)
            self.discovered.append(PendingDeclaration(unit, decl, name))
            return Reference(name)

        key = (unit.module, decl.name)
        if key in seen:
            raise UnresolvedTypeError(f"alias cycle through {unit.module}.{decl.name}")
        if decl.target is None:
            return Untyped(decl.name)
        return self._resolve(unit, decl.target, seen | {key})

    def _primitive(self, name: str) -> ResolvedType:
        if name in PRIMITIVES:
            return Primitive(*PRIMITIVES[name])
        logger.debug(f"Leaving unsupported primitive {name!r} untyped")
        return Untyped(name)


class SchemaParser:
    """Builds the definition of one pending declaration."""

    def __init__(self, program: Program, definitions: dict[str, Schema]):
        self.definitions = definitions
        self.resolver = TypeResolver(program)

    @property
    def post_decls(self) -> list[PendingDeclaration]:
        return self.resolver.discovered

    def parse(self, pending: PendingDeclaration) -> None:
        if pending.name in self.definitions:
            return

        schema = Schema()
        # mark present before expanding fields so cycles end in a $ref
        self.definitions[pending.name] = schema

        decl = pending.decl
        SectionedParser(
            annotation=AnnotationParser(RX_MODEL),
            set_title=lambda lines: setattr(schema, "title", join_title(lines)),
            set_description=lambda lines: setattr(schema, "description", join_description(lines)),
        ).parse(decl.doc)

        if decl.kind == "alias":
            if decl.target is not None:
                to_schema(self.resolver.resolve(pending.unit, decl.target), schema)
            logger.debug(f"Resolved alias definition {pending.name}")
            return

        schema.typed("object")
        for field in decl.fields:
            schema.properties[field.name] = self._field_schema(pending.unit, schema, field)
        logger.debug(f"Resolved definition {pending.name} with {len(decl.fields)} properties")

    def _field_schema(self, unit, owner: Schema, field) -> Schema:
        prop = Schema()
        formats: list[str] = []
        SectionedParser(
            taggers=[
                single_line("maximum", SetMaximum(prop)),
                single_line("minimum", SetMinimum(prop)),
                single_line("multipleOf", SetMultipleOf(prop)),
                single_line("maxLength", SetMaxLength(prop)),
                single_line("minLength", SetMinLength(prop)),
                single_line("pattern", SetPattern(prop)),
                single_line("maxItems", SetMaxItems(prop)),
                single_line("minItems", SetMinItems(prop)),
                single_line("unique", SetUnique(prop)),
                single_line("required", SetRequiredSchema(owner, field.name)),
                single_line("readOnly", SetReadOnly(prop)),
            ],
            annotation=AnnotationParser(RX_STRFMT, formats.append),
            set_title=lambda lines: setattr(prop, "title", join_title(lines)),
            set_description=lambda lines: setattr(prop, "description", join_description(lines)),
        ).parse(field.doc)

        if formats:
            prop.typed("string", formats[-1])
        else:
            to_schema(self.resolver.resolve(unit, field.type), prop)
        return prop
