"""Sectioned comment parser.

Splits one documentation block into a header (title + description) and
named tag sections, each handed to the value parser bound to it.
"""

import re
import unicodedata
from enum import Enum
from typing import Callable, Iterable

from swagger_scan.parser.validators import RX_ANNOTATION, ValueParser

RX_STRIP_COMMENTS = re.compile(r"^(?:[^\w+]|_)*")


class TagParser:
    """A named section of a comment, bound to its value parser."""

    def __init__(self, name: str, parser: ValueParser, multi_line: bool = False):
        self.name = name
        self.parser = parser
        self.multi_line = multi_line
        self.lines: list[str] = []

    def matches(self, line: str) -> bool:
        return self.parser.matches(line)

    def parse(self, lines: list[str]) -> None:
        self.parser.parse(lines)


def single_line(name: str, parser: ValueParser) -> TagParser:
    return TagParser(name, parser, multi_line=False)


def multi_line(name: str, parser: ValueParser) -> TagParser:
    return TagParser(name, parser, multi_line=True)


def cleanup(lines: Iterable[str]) -> list[str]:
    """Strip comment decoration and drop the blank lines around the content."""
    uncommented = [RX_STRIP_COMMENTS.sub("", line) for line in lines]
    content = [i for i, line in enumerate(uncommented) if line.strip()]
    if not content:
        return []
    return uncommented[content[0]:content[-1] + 1]


def ends_with_punctuation(line: str) -> bool:
    line = line.rstrip()
    return bool(line) and unicodedata.category(line[-1]) == "Po"


def split_title(header: list[str]) -> tuple[list[str], list[str]]:
    """Split a cleaned header into (title, description).

    A blank line separates the two; without one, a first line ending in
    punctuation is the title on its own; otherwise everything is description.
    """
    for i, line in enumerate(header):
        if not line.strip():
            return header[:i], header[i + 1:]
    if header and ends_with_punctuation(header[0]):
        return header[:1], header[1:]
    return [], header


class State(Enum):
    HEADER = "collecting-header"
    TAG = "collecting-tag"
    IDLE = "idle"


class SectionedParser:
    """Feeds comment lines through a header/tag state machine.

    ``annotation`` restricts which ``+swagger:`` marker may appear in the
    block; any other marker ends the section. Once a tag has been seen the
    header is closed for good.
    """

    def __init__(
        self,
        taggers: Iterable[TagParser] = (),
        annotation: ValueParser | None = None,
        set_title: Callable[[list[str]], None] | None = None,
        set_description: Callable[[list[str]], None] | None = None,
    ):
        self.taggers = list(taggers)
        self.annotation = annotation
        self.set_title = set_title
        self.set_description = set_description
        self.header: list[str] = []
        self.title: list[str] = []
        self.description: list[str] = []
        self.matched: dict[str, TagParser] = {}

    def _match_tag(self, line: str) -> TagParser | None:
        for tagger in self.taggers:
            if tagger.matches(line):
                return tagger
        return None

    def _capture(self, tagger: TagParser, line: str) -> None:
        self.matched.setdefault(tagger.name, tagger).lines.append(line)

    def parse(self, doc: Iterable[str] | None) -> None:
        state = State.HEADER
        current: TagParser | None = None

        for line in _lines(doc):
            if RX_ANNOTATION.search(line):
                if self.annotation is None or not self.annotation.matches(line):
                    break
                self.annotation.parse([line])
                if self.header and state is State.HEADER:
                    state = State.IDLE
                continue

            tagger = self._match_tag(line)
            if tagger is not None:
                if tagger.multi_line:
                    # the matching line itself carries no content
                    current, state = tagger, State.TAG
                    self.matched.setdefault(tagger.name, tagger)
                else:
                    self._capture(tagger, line)
                    current, state = None, State.IDLE
                continue

            if state is State.HEADER:
                self.header.append(line)
            elif state is State.TAG:
                self._capture(current, line)

        self._collect_title_description()
        if self.set_title is not None:
            self.set_title(self.title)
        if self.set_description is not None:
            self.set_description(self.description)
        for tagger in self.matched.values():
            tagger.parse(cleanup(tagger.lines))

    def _collect_title_description(self) -> None:
        header = cleanup(self.header)
        if self.set_title is None:
            self.description = header
            return
        self.title, self.description = split_title(header)


def _lines(doc: Iterable[str] | None) -> Iterable[str]:
    if not doc:
        return
    for block in doc:
        for line in block.split("\n"):
            yield line.rstrip()
