"""Immutable snapshot of the program being scanned.

The scanner never loads source itself; it walks these models, which a
loader (see ``swagger_scan.loader``) or a test builds up front.
"""

from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


class BasicType(_Frozen):
    """A built-in kind such as ``bool``, ``str`` or ``int32``."""

    kind: Literal["basic"] = "basic"
    name: str


class NamedType(_Frozen):
    """A declaration in the same module."""

    kind: Literal["named"] = "named"
    name: str


class SelectorType(_Frozen):
    """A declaration in another module, reached through an import alias."""

    kind: Literal["selector"] = "selector"
    qualifier: str
    name: str


class ArrayType(_Frozen):
    kind: Literal["array"] = "array"
    elem: "TypeExpr"


TypeExpr = Annotated[
    Union[BasicType, NamedType, SelectorType, ArrayType],
    Field(discriminator="kind"),
]

ArrayType.model_rebuild()


class FieldDecl(_Frozen):
    name: str
    type: TypeExpr
    doc: tuple[str, ...] = ()


class TypeDecl(_Frozen):
    """A named record (fields) or alias (target) declaration."""

    name: str
    kind: Literal["record", "alias"] = "record"
    doc: tuple[str, ...] = ()
    fields: tuple[FieldDecl, ...] = ()
    target: TypeExpr | None = None


class CompilationUnit(_Frozen):
    """One source file: its leading comment, free comments and declarations."""

    module: str
    path: str = ""
    doc: tuple[str, ...] = ()
    comments: tuple[tuple[str, ...], ...] = ()
    declarations: tuple[TypeDecl, ...] = ()
    imports: dict[str, str] = {}  # alias -> module path

    def declaration(self, name: str) -> TypeDecl | None:
        for decl in self.declarations:
            if decl.name == name:
                return decl
        return None

    def comment_blocks(self) -> list[tuple[str, ...]]:
        """Every comment in the unit: leading doc, declaration docs, free comments."""
        blocks = []
        if self.doc:
            blocks.append(self.doc)
        for decl in self.declarations:
            if decl.doc:
                blocks.append(decl.doc)
        blocks.extend(c for c in self.comments if c)
        return blocks


class Program(_Frozen):
    """The whole loaded program."""

    root: str
    units: tuple[CompilationUnit, ...] = ()

    def module_units(self, module: str) -> list[CompilationUnit]:
        return [u for u in self.units if u.module == module]

    def has_module(self, module: str) -> bool:
        return any(u.module == module for u in self.units)

    def find_declaration(self, module: str, name: str) -> tuple[CompilationUnit, TypeDecl] | None:
        for unit in self.module_units(module):
            decl = unit.declaration(name)
            if decl is not None:
                return unit, decl
        return None

    def record_modules(self, name: str) -> set[str]:
        """Modules that declare a record called ``name``."""
        return {
            unit.module
            for unit in self.units
            for decl in unit.declarations
            if decl.name == name and decl.kind == "record"
        }
