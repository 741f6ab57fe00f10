"""Build a ``Program`` snapshot from a directory of Python sources.

Classes become records, annotated class attributes their fields and
module level type assignments aliases. Docstrings and ``#`` comment
blocks carry the directives.
"""

import ast
import io
import logging
import tokenize
from pathlib import Path

from swagger_scan.program import (
    ArrayType,
    BasicType,
    CompilationUnit,
    FieldDecl,
    NamedType,
    Program,
    SelectorType,
    TypeDecl,
)

logger = logging.getLogger("swagger_scan.loader")

BUILTIN_TYPES = {"bool", "str", "int", "float", "bytes", "dict", "object"}
SIZED_TYPES = {
    "int8", "int16", "int32", "int64", "uint", "uint8", "uint16", "uint32", "uint64",
    "float32", "float64", "rune", "string",
}
ARRAY_GENERICS = {"list", "List", "Sequence", "set", "Set", "frozenset", "FrozenSet", "tuple", "Tuple", "Iterable"}
UNWRAP_GENERICS = {"Optional", "Annotated", "Final", "Required", "NotRequired"}


def load_program(root: Path) -> Program:
    """Load every ``.py`` file under ``root`` into a Program."""
    root = Path(root).resolve()
    files = sorted(root.rglob("*.py"))
    known = {module_name(root, f) for f in files}
    units = []
    for file_path in files:
        text = file_path.read_text(encoding="utf-8")
        units.append(
            load_unit(
                text,
                module_name(root, file_path),
                str(file_path),
                is_package=file_path.name == "__init__.py",
                known_modules=known,
            )
        )
    logger.debug(f"Loaded {len(units)} units from {root}")
    return Program(root=root.name, units=units)


def module_name(root: Path, file_path: Path) -> str:
    parts = list(file_path.relative_to(root.parent).with_suffix("").parts)
    if parts[-1] == "__init__":
        parts.pop()
    return ".".join(parts)


def load_unit(
    text: str,
    module: str,
    path: str = "",
    is_package: bool = False,
    known_modules: set[str] | None = None,
) -> CompilationUnit:
    """Turn one source text into a compilation unit.

    With ``known_modules`` given, types imported from any other module
    (standard library, third party) are left as basic, untyped names.
    """
    tree = ast.parse(text, filename=path or module)
    comments = _comment_lines(text)
    imports = _imports(tree, module, is_package)
    names = _imported_names(tree, module, is_package)
    builder = _TypeBuilder(imports, names, known_modules)

    declarations = []
    function_docs = []
    documented = set()  # first lines of declarations that own the comment block above them
    for node in tree.body:
        if isinstance(node, ast.ClassDef):
            declarations.append(_record(node, builder, comments))
            documented.add(_first_line(node))
            function_docs.extend(_function_docs(node))
        elif isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef)):
            function_docs.extend(_function_docs(node))
        else:
            alias = _alias(node, builder, comments)
            if alias is not None:
                declarations.append(alias)
                documented.add(node.lineno)

    free_comments = [
        tuple(block) for last, block in _comment_blocks(comments) if last + 1 not in documented
    ]
    free_comments.extend(function_docs)

    doc = ast.get_docstring(tree)
    return CompilationUnit(
        module=module,
        path=path,
        doc=tuple(doc.splitlines()) if doc else (),
        comments=tuple(free_comments),
        declarations=tuple(declarations),
        imports=imports,
    )


def _comment_lines(text: str) -> dict[int, str]:
    """Line number → comment text, for lines holding nothing but a comment."""
    lines = text.splitlines()
    found = {}
    for tok in tokenize.generate_tokens(io.StringIO(text).readline):
        if tok.type != tokenize.COMMENT:
            continue
        row = tok.start[0]
        if lines[row - 1].lstrip().startswith("#"):
            found[row] = tok.string
    return found


def _comment_blocks(comments: dict[int, str]) -> list[tuple[int, list[str]]]:
    """Contiguous comment lines, each block with the number of its last line."""
    blocks, current, last = [], [], None
    for row in sorted(comments):
        if last is not None and row != last + 1:
            blocks.append((last, current))
            current = []
        current.append(comments[row])
        last = row
    if current:
        blocks.append((last, current))
    return blocks


def _first_line(node: ast.ClassDef) -> int:
    return node.decorator_list[0].lineno if node.decorator_list else node.lineno


def _comments_above(comments: dict[int, str], lineno: int) -> list[str]:
    block = []
    row = lineno - 1
    while row in comments:
        block.insert(0, comments[row])
        row -= 1
    return block


def _function_docs(node) -> list[tuple[str, ...]]:
    docs = []
    for child in ast.walk(node):
        if isinstance(child, (ast.FunctionDef, ast.AsyncFunctionDef)):
            doc = ast.get_docstring(child)
            if doc:
                docs.append(tuple(doc.splitlines()))
    return docs


def _resolve_relative(module: str, is_package: bool, level: int, target: str | None) -> str:
    if level == 0:
        return target or ""
    parts = module.split(".")
    if not is_package:
        parts = parts[:-1]
    if level > 1:
        parts = parts[: len(parts) - (level - 1)]
    if target:
        parts.append(target)
    return ".".join(parts)


def _imports(tree: ast.Module, module: str, is_package: bool) -> dict[str, str]:
    """Alias → module path for ``import x.y as z`` and ``from x import y`` (y possibly a module)."""
    imports = {}
    for node in tree.body:
        if isinstance(node, ast.Import):
            for alias in node.names:
                if alias.asname:
                    imports[alias.asname] = alias.name
                else:
                    imports[alias.name] = alias.name
        elif isinstance(node, ast.ImportFrom):
            base = _resolve_relative(module, is_package, node.level, node.module)
            for alias in node.names:
                qualified = f"{base}.{alias.name}" if base else alias.name
                imports[alias.asname or alias.name] = qualified
                # the imported name's own module, for names used directly
                imports.setdefault(base, base)
    return imports


def _imported_names(tree: ast.Module, module: str, is_package: bool) -> dict[str, tuple[str, str]]:
    """Local name → (module, name) for ``from x import Name``."""
    names = {}
    for node in tree.body:
        if isinstance(node, ast.ImportFrom):
            base = _resolve_relative(module, is_package, node.level, node.module)
            for alias in node.names:
                names[alias.asname or alias.name] = (base, alias.name)
    return names


class _TypeBuilder:
    """Converts annotation expressions into ``TypeExpr`` models."""

    def __init__(self, imports: dict[str, str], names: dict[str, tuple[str, str]], known_modules: set[str] | None):
        self.imports = imports
        self.names = names
        self.known_modules = known_modules

    def _external(self, module: str) -> bool:
        return self.known_modules is not None and module not in self.known_modules

    def build(self, node: ast.expr):
        if isinstance(node, ast.Constant) and isinstance(node.value, str):
            return self.build(ast.parse(node.value, mode="eval").body)
        if isinstance(node, ast.Constant) and node.value is None:
            return BasicType(name="None")
        if isinstance(node, ast.Name):
            return self._name(node.id)
        if isinstance(node, ast.Attribute):
            qualifier = ast.unparse(node.value)
            if qualifier in ("typing", "typing_extensions", "builtins"):
                return self._name(node.attr)
            if self._external(self.imports.get(qualifier, qualifier)):
                return BasicType(name=ast.unparse(node))
            return SelectorType(qualifier=qualifier, name=node.attr)
        if isinstance(node, ast.BinOp) and isinstance(node.op, ast.BitOr):
            return self._union([node.left, node.right])
        if isinstance(node, ast.Subscript):
            return self._generic(node)
        return BasicType(name=ast.unparse(node))

    def _name(self, name: str):
        if name in BUILTIN_TYPES or name in SIZED_TYPES:
            return BasicType(name=name)
        if name in self.names:
            module, original = self.names[name]
            if self._external(module):
                return BasicType(name=name)
            return SelectorType(qualifier=module, name=original)
        return NamedType(name=name)

    def _generic(self, node: ast.Subscript):
        origin = node.value.attr if isinstance(node.value, ast.Attribute) else getattr(node.value, "id", "")
        args = node.slice.elts if isinstance(node.slice, ast.Tuple) else [node.slice]
        if origin in ARRAY_GENERICS:
            return ArrayType(elem=self.build(args[0]))
        if origin in UNWRAP_GENERICS:
            return self.build(args[0])
        if origin == "Union":
            return self._union(args)
        return BasicType(name=ast.unparse(node))

    def _union(self, members: list[ast.expr]):
        typed = [m for m in members if not (isinstance(m, ast.Constant) and m.value is None)]
        if len(typed) == 1:
            return self.build(typed[0])
        return BasicType(name=" | ".join(ast.unparse(m) for m in members))


def _attribute_doc(body: list[ast.stmt], index: int) -> list[str]:
    if index + 1 < len(body):
        nxt = body[index + 1]
        if isinstance(nxt, ast.Expr) and isinstance(nxt.value, ast.Constant) and isinstance(nxt.value.value, str):
            return [line.strip() for line in nxt.value.value.strip().splitlines()]
    return []


def _is_class_var(annotation: ast.expr) -> bool:
    target = annotation.value if isinstance(annotation, ast.Subscript) else annotation
    name = target.attr if isinstance(target, ast.Attribute) else getattr(target, "id", "")
    return name == "ClassVar"


def _record(node: ast.ClassDef, builder: _TypeBuilder, comments: dict[int, str]) -> TypeDecl:
    fields = []
    for i, stmt in enumerate(node.body):
        if not isinstance(stmt, ast.AnnAssign) or not isinstance(stmt.target, ast.Name):
            continue
        if _is_class_var(stmt.annotation):
            continue
        doc = _comments_above(comments, stmt.lineno) + _attribute_doc(node.body, i)
        fields.append(FieldDecl(name=stmt.target.id, type=builder.build(stmt.annotation), doc=tuple(doc)))

    doc = ast.get_docstring(node)
    lines = _comments_above(comments, _first_line(node)) + (doc.splitlines() if doc else [])
    return TypeDecl(name=node.name, kind="record", doc=tuple(lines), fields=tuple(fields))


def _alias(node: ast.stmt, builder: _TypeBuilder, comments: dict[int, str]) -> TypeDecl | None:
    if isinstance(node, ast.AnnAssign) and isinstance(node.target, ast.Name) and node.value is not None:
        if ast.unparse(node.annotation).split(".")[-1] != "TypeAlias":
            return None
        name, value = node.target.id, node.value
    elif isinstance(node, ast.Assign) and len(node.targets) == 1 and isinstance(node.targets[0], ast.Name):
        name, value = node.targets[0].id, node.value
    else:
        return None

    if isinstance(value, ast.Call) and getattr(value.func, "id", getattr(value.func, "attr", "")) == "NewType":
        if len(value.args) < 2:
            return None
        value = value.args[1]
    elif not isinstance(value, (ast.Name, ast.Attribute, ast.Subscript)):
        return None
    if not name[:1].isupper():
        return None

    doc = _comments_above(comments, node.lineno)
    return TypeDecl(name=name, kind="alias", doc=tuple(doc), target=builder.build(value))
