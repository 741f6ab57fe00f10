"""Meta extractor: document level fields from the ``+swagger:meta`` comment."""

import re
from functools import partial

from swagger_scan.parser.base import Contact, License, SwaggerDocument
from swagger_scan.parser.sectioned import SectionedParser, multi_line, single_line
from swagger_scan.parser.validators import (
    RX_BASE_PATH,
    RX_CONSUMES,
    RX_CONTACT,
    RX_HOST,
    RX_LICENSE,
    RX_META,
    RX_PRODUCES,
    RX_TOS,
    RX_VERSION,
    MultiLineDropEmpty,
    SetSchemes,
    SetSecurity,
    SetValue,
)
from swagger_scan.scanner.schema import AnnotationParser, join_description, join_title

RX_URL = re.compile(r"^[a-z][a-z0-9+.-]*://\S+$", re.I)
RX_EMAIL = re.compile(r"^<?([^\s<>@]+@[^\s<>@]+)>?$")


def parse_license(value: str) -> License:
    """``MIT http://opensource.org/licenses/MIT`` → name + url."""
    name, url = [], None
    for token in value.split():
        if url is None and RX_URL.match(token):
            url = token
        else:
            name.append(token)
    return License(name=" ".join(name) or None, url=url)


def parse_contact(value: str) -> Contact:
    """``John Doe <john@doe.com> http://john.doe.com`` → name + email + url."""
    name, email, url = [], None, None
    for token in value.replace("<", " <").split():
        if url is None and RX_URL.match(token):
            url = token
            continue
        match = RX_EMAIL.match(token)
        if email is None and match:
            email = match.group(1)
            continue
        name.append(token)
    return Contact(name=" ".join(name) or None, email=email, url=url)


class MetaParser:
    """Writes title, description and document settings onto a document."""

    def __init__(self, document: SwaggerDocument):
        self.document = document

    def parse(self, doc) -> None:
        document = self.document
        info = document.info

        def set_license(value):
            info.license = parse_license(value)

        def set_contact(value):
            info.contact = parse_contact(value)

        def set_terms(lines):
            info.terms_of_service = "\n".join(lines) or None

        def set_title(lines):
            if lines:
                info.title = join_title(lines)

        def set_description(lines):
            if lines:
                info.description = join_description(lines)

        SectionedParser(
            taggers=[
                multi_line("consumes", MultiLineDropEmpty(RX_CONSUMES, partial(setattr, document, "consumes"))),
                multi_line("produces", MultiLineDropEmpty(RX_PRODUCES, partial(setattr, document, "produces"))),
                single_line("schemes", SetSchemes(partial(setattr, document, "schemes"))),
                multi_line("security", SetSecurity(partial(setattr, document, "security"))),
                single_line("version", SetValue(RX_VERSION, partial(setattr, info, "version"))),
                single_line("host", SetValue(RX_HOST, partial(setattr, document, "host"))),
                single_line("basePath", SetValue(RX_BASE_PATH, partial(setattr, document, "base_path"))),
                single_line("license", SetValue(RX_LICENSE, set_license)),
                single_line("contact", SetValue(RX_CONTACT, set_contact)),
                multi_line("termsOfService", MultiLineDropEmpty(RX_TOS, set_terms)),
            ],
            annotation=AnnotationParser(RX_META),
            set_title=set_title,
            set_description=set_description,
        ).parse(doc)
