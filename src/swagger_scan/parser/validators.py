"""Directive grammars and the value parsers bound to them.

A value parser recognises one line grammar (``matches``) and applies the
captured value of the lines handed to it to a builder (``parse``).
All keyword grammars are case-insensitive.
"""

import re
from typing import Callable

from swagger_scan.errors import DirectiveValueError, UnresolvedReferenceError
from swagger_scan.parser.base import Response, Schema

_SP = r"[ \t]"
_IDENT = r"[^\W\d_][\w-]*"
_PATH = r"((?:/[\w\-{}.]*)+/?)"
_NUMBER = r"([+-]?[\d.]+)"

# top-level annotations
RX_ANNOTATION = re.compile(rf"[^+]*\+{_SP}*swagger:([\w-]+)")
RX_META = re.compile(r"\+swagger:meta\b")
RX_STRFMT = re.compile(rf"\+swagger:strfmt{_SP}*({_IDENT})$")
RX_MODEL = re.compile(rf"\+swagger:model(?:{_SP}+({_IDENT}))?$")
RX_RESPONSE = re.compile(rf"\+swagger:response(?:{_SP}+({_IDENT}))?$")
RX_PARAMETERS = re.compile(rf"\+swagger:parameters{_SP}+([^\W\d_][\w\- \t]*)$")
RX_ROUTE = re.compile(
    rf"\+swagger:route{_SP}*([^\W\d_]+){_SP}*{_PATH}{_SP}+"
    rf"([^\W\d_][\w\- \t]*){_SP}+({_IDENT})$"
)

# validations
RX_MAXIMUM = re.compile(rf"\bmax(?:imum)?{_SP}*:{_SP}*([<=])?{_SP}*{_NUMBER}$", re.I)
RX_MINIMUM = re.compile(rf"\bmin(?:imum)?{_SP}*:{_SP}*([>=])?{_SP}*{_NUMBER}$", re.I)
RX_MULTIPLE_OF = re.compile(rf"\bmultiple{_SP}*of{_SP}*:{_SP}*{_NUMBER}$", re.I)
RX_MAX_LENGTH = re.compile(rf"\bmax(?:imum)?(?:{_SP}*[-_]?len(?:gth)?){_SP}*:{_SP}*(\d+)$", re.I)
RX_MIN_LENGTH = re.compile(rf"\bmin(?:imum)?(?:{_SP}*[-_]?len(?:gth)?){_SP}*:{_SP}*(\d+)$", re.I)
RX_PATTERN = re.compile(rf"\bpattern{_SP}*:{_SP}*(.*)$", re.I)
RX_COLLECTION_FORMAT = re.compile(rf"\bcollection(?:{_SP}*[-_]?format){_SP}*:{_SP}*(.*)$", re.I)
RX_MAX_ITEMS = re.compile(rf"\bmax(?:imum)?(?:{_SP}*|[-_.])?items{_SP}*:{_SP}*(\d+)$", re.I)
RX_MIN_ITEMS = re.compile(rf"\bmin(?:imum)?(?:{_SP}*|[-_.])?items{_SP}*:{_SP}*(\d+)$", re.I)
RX_UNIQUE = re.compile(rf"\bunique{_SP}*:{_SP}*(\w+)$", re.I)

# flags and locations
RX_IN = re.compile(rf"\b(?:in|source){_SP}*:{_SP}*(query|path|header|body)$", re.I)
RX_REQUIRED = re.compile(rf"\brequired{_SP}*:{_SP}*(\w+)$", re.I)
RX_READ_ONLY = re.compile(rf"\bread(?:{_SP}*|[-_])?only{_SP}*:{_SP}*(\w+)$", re.I)

# operation and document sections
RX_CONSUMES = re.compile(rf"\bconsumes{_SP}*:", re.I)
RX_PRODUCES = re.compile(rf"\bproduces{_SP}*:", re.I)
RX_SECURITY = re.compile(rf"\bsecurity{_SP}*:", re.I)
RX_RESPONSES = re.compile(rf"\bresponses{_SP}*:", re.I)
RX_SCHEMES = re.compile(rf"\bschemes{_SP}*:{_SP}*((?:(?:https?|wss?)[ \t,]*)+)$", re.I)
RX_VERSION = re.compile(rf"\bversion{_SP}*:{_SP}*(.+)$", re.I)
RX_HOST = re.compile(rf"\bhost{_SP}*:{_SP}*(.+)$", re.I)
RX_BASE_PATH = re.compile(rf"\bbase{_SP}*-*path{_SP}*:{_SP}*{_PATH}$", re.I)
RX_LICENSE = re.compile(rf"\blicense{_SP}*:{_SP}*(.+)$", re.I)
RX_CONTACT = re.compile(rf"\bcontact{_SP}*-?(?:info{_SP}*)?:{_SP}*(.+)$", re.I)
RX_TOS = re.compile(rf"\bt(?:erms)?{_SP}*-?of?{_SP}*-?s(?:ervice)?{_SP}*:", re.I)

KNOWN_SCHEMES = ("http", "https", "ws", "wss")


def parse_bool(value: str, line: str) -> bool:
    lowered = value.lower()
    if lowered == "true":
        return True
    if lowered == "false":
        return False
    raise DirectiveValueError(f"invalid boolean {value!r} in directive {line.strip()!r}")


def parse_number(value: str, line: str) -> float:
    try:
        return float(value)
    except ValueError:
        raise DirectiveValueError(f"invalid number {value!r} in directive {line.strip()!r}") from None


def remove_empty_lines(lines: list[str]) -> list[str]:
    return [line for line in lines if line.strip()]


class ValueParser:
    """Matches one directive grammar and applies its value."""

    rx: re.Pattern

    def matches(self, line: str) -> bool:
        return self.rx.search(line) is not None

    def parse(self, lines: list[str]) -> None:
        raise NotImplementedError


class SingleLineParser(ValueParser):
    """Applies every captured line that matches the grammar, in order."""

    def parse(self, lines: list[str]) -> None:
        for line in lines:
            match = self.rx.search(line)
            if match:
                self.apply(match, line)

    def apply(self, match: re.Match, line: str) -> None:
        raise NotImplementedError


class SetMaximum(SingleLineParser):
    rx = RX_MAXIMUM

    def __init__(self, builder):
        self.builder = builder

    def apply(self, match, line):
        self.builder.set_maximum(parse_number(match.group(2), line), match.group(1) == "<")


class SetMinimum(SingleLineParser):
    rx = RX_MINIMUM

    def __init__(self, builder):
        self.builder = builder

    def apply(self, match, line):
        self.builder.set_minimum(parse_number(match.group(2), line), match.group(1) == ">")


class SetMultipleOf(SingleLineParser):
    rx = RX_MULTIPLE_OF

    def __init__(self, builder):
        self.builder = builder

    def apply(self, match, line):
        self.builder.set_multiple_of(parse_number(match.group(1), line))


class _SetInteger(SingleLineParser):
    setter = ""

    def __init__(self, builder):
        self.builder = builder

    def apply(self, match, line):
        getattr(self.builder, self.setter)(int(match.group(1)))


class SetMaxLength(_SetInteger):
    rx = RX_MAX_LENGTH
    setter = "set_max_length"


class SetMinLength(_SetInteger):
    rx = RX_MIN_LENGTH
    setter = "set_min_length"


class SetMaxItems(_SetInteger):
    rx = RX_MAX_ITEMS
    setter = "set_max_items"


class SetMinItems(_SetInteger):
    rx = RX_MIN_ITEMS
    setter = "set_min_items"


class SetPattern(SingleLineParser):
    rx = RX_PATTERN

    def __init__(self, builder):
        self.builder = builder

    def apply(self, match, line):
        if match.group(1):
            self.builder.set_pattern(match.group(1))


class SetUnique(SingleLineParser):
    rx = RX_UNIQUE

    def __init__(self, builder):
        self.builder = builder

    def apply(self, match, line):
        self.builder.set_unique(parse_bool(match.group(1), line))


class SetCollectionFormat(SingleLineParser):
    rx = RX_COLLECTION_FORMAT

    def __init__(self, builder):
        self.builder = builder

    def apply(self, match, line):
        value = match.group(1).strip()
        if value:
            self.builder.set_collection_format(value)


class SetRequiredParam(SingleLineParser):
    rx = RX_REQUIRED

    def __init__(self, param):
        self.param = param

    def apply(self, match, line):
        self.param.set_required(parse_bool(match.group(1), line))


class SetRequiredSchema(SingleLineParser):
    """Adds or removes one field name from the owning schema's required set."""

    rx = RX_REQUIRED

    def __init__(self, schema: Schema, field: str):
        self.schema = schema
        self.field = field

    def apply(self, match, line):
        if parse_bool(match.group(1), line):
            self.schema.add_required(self.field)
        else:
            self.schema.remove_required(self.field)


class SetReadOnly(SingleLineParser):
    rx = RX_READ_ONLY

    def __init__(self, schema: Schema):
        self.schema = schema

    def apply(self, match, line):
        self.schema.set_read_only(parse_bool(match.group(1), line))


class SetLocation(SingleLineParser):
    rx = RX_IN

    def __init__(self, set_location: Callable[[str], None]):
        self.set_location = set_location

    def apply(self, match, line):
        self.set_location(match.group(1).lower())


class SetValue(SingleLineParser):
    """Hands the trimmed first capture group of a grammar to a setter."""

    def __init__(self, rx: re.Pattern, setter: Callable[[str], None]):
        self.rx = rx
        self.setter = setter

    def apply(self, match, line):
        self.setter(match.group(1).strip())


class SetSchemes(SingleLineParser):
    rx = RX_SCHEMES

    def __init__(self, setter: Callable[[list[str]], None]):
        self.setter = setter

    def apply(self, match, line):
        tokens = [t.lower() for t in re.split(r"[\s,]+", match.group(1)) if t]
        self.setter([t for t in tokens if t in KNOWN_SCHEMES])


class MultiLineDropEmpty(ValueParser):
    """Hands all non-blank captured lines to a setter."""

    def __init__(self, rx: re.Pattern, setter: Callable[[list[str]], None]):
        self.rx = rx
        self.setter = setter

    def parse(self, lines):
        self.setter([line.strip() for line in remove_empty_lines(lines)])


class SetSecurity(ValueParser):
    """Each ``name: scope1, scope2`` line becomes ``{name: [scope1, scope2]}``."""

    rx = RX_SECURITY

    def __init__(self, setter: Callable[[list[dict[str, list[str]]]], None]):
        self.setter = setter

    def parse(self, lines):
        if not lines or (len(lines) == 1 and not lines[0]):
            return
        result = []
        for line in lines:
            key, sep, value = line.partition(":")
            key = key.strip()
            if not sep or not key:
                continue
            cleaned = re.sub(r"[^\w\s,:./-]", "", value)
            scopes = [s.strip() for s in cleaned.split(",") if s.strip()]
            result.append({key: scopes})
        self.setter(result)


class SetResponses(ValueParser):
    """Maps ``<code>: <name>`` lines onto response references.

    A name resolves to a known response first and to a known definition
    second, the latter wrapped as an inline response.
    """

    rx = RX_RESPONSES

    def __init__(
        self,
        definitions: dict[str, Schema],
        responses: dict[str, Response],
        setter: Callable[[Response | None, dict[int, Response]], None],
    ):
        self.definitions = definitions
        self.responses = responses
        self.setter = setter

    def parse(self, lines):
        if not lines or (len(lines) == 1 and not lines[0]):
            return
        default = None
        codes: dict[int, Response] = {}
        for line in lines:
            key, sep, value = line.partition(":")
            key = key.strip()
            if not sep or not key:
                continue
            value = value.strip()
            if not value:
                raise DirectiveValueError(f"no name for {key!r} response")

            if key.lower() == "default":
                if default is not None:
                    raise DirectiveValueError("default response assigned twice")
                default = self._lookup(value)
            elif key.isdigit():
                code = int(key)
                if code in codes:
                    raise DirectiveValueError(f"response for status {code} assigned twice")
                codes[code] = self._lookup(value)
        self.setter(default, codes)

    def _lookup(self, name: str) -> Response:
        if name in self.responses:
            return Response(ref=f"#/responses/{name}")
        if name in self.definitions:
            return Response(schema=Schema(ref=f"#/definitions/{name}"))
        raise UnresolvedReferenceError("response", name, "not a known response or definition")
