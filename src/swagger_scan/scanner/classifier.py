"""Partitions compilation units by the ``+swagger:`` annotations they carry."""

import logging
from fnmatch import fnmatchcase

from swagger_scan.parser.validators import RX_ANNOTATION
from swagger_scan.program import CompilationUnit, Program

logger = logging.getLogger("swagger_scan.scanner.classifier")


def matches_module(module: str, patterns: list[str]) -> bool:
    """Glob match on a dotted module path; a plain path also covers its submodules."""
    for pattern in patterns:
        if fnmatchcase(module, pattern) or module.startswith(pattern + "."):
            return True
    return False


class ClassifiedProgram:
    """Units grouped by the kind of annotation found in their comments."""

    def __init__(self):
        self.meta: list[CompilationUnit] = []
        self.models: list[CompilationUnit] = []
        self.parameters: list[CompilationUnit] = []
        self.responses: list[CompilationUnit] = []
        self.operations: list[CompilationUnit] = []


class ProgramClassifier:
    """Sorts units into meta, model, parameter, response and route buckets.

    ``includes``/``excludes`` only restrict this initial discovery; types
    referenced from a classified unit are resolved wherever they live.
    """

    def __init__(self, includes: list[str] | None = None, excludes: list[str] | None = None):
        self.includes = list(includes or [])
        self.excludes = list(excludes or [])

    def included(self, module: str) -> bool:
        if self.includes and not matches_module(module, self.includes):
            return False
        return not matches_module(module, self.excludes)

    def classify(self, program: Program) -> ClassifiedProgram:
        cp = ClassifiedProgram()
        buckets = {
            "meta": cp.meta,
            "model": cp.models,
            "parameters": cp.parameters,
            "response": cp.responses,
            "route": cp.operations,
        }
        for unit in program.units:
            if not self.included(unit.module):
                logger.debug(f"Skipping filtered module {unit.module}")
                continue
            for kind in sorted(_annotation_kinds(unit)):
                if kind in buckets:
                    buckets[kind].append(unit)

        logger.debug(
            f"Classified {len(cp.meta)} meta, {len(cp.models)} model, {len(cp.parameters)} parameter, "
            f"{len(cp.responses)} response and {len(cp.operations)} route units"
        )
        return cp


def _annotation_kinds(unit: CompilationUnit) -> set[str]:
    kinds = set()
    for block in unit.comment_blocks():
        for text in block:
            for line in text.split("\n"):
                match = RX_ANNOTATION.match(line)
                if match:
                    kinds.add(match.group(1))
    return kinds
