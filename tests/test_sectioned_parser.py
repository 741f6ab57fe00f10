from swagger_scan.parser.sectioned import SectionedParser, cleanup, multi_line, single_line, split_title
from swagger_scan.parser.validators import RX_CONSUMES, RX_MODEL, MultiLineDropEmpty, SetMaximum
from swagger_scan.parser.base import Schema
from swagger_scan.scanner.schema import AnnotationParser


def _parse(lines, taggers=(), annotation=None, with_title=True):
    result = {}
    parser = SectionedParser(
        taggers=taggers,
        annotation=annotation,
        set_title=(lambda t: result.__setitem__("title", t)) if with_title else None,
        set_description=lambda d: result.__setitem__("description", d),
    )
    parser.parse(lines)
    return parser, result


class TestTitleDescription:
    def test_blank_line_splits_title(self):
        title, desc = split_title(["Widget is a thing.", "", "It has parts."])
        assert title == ["Widget is a thing."]
        assert desc == ["It has parts."]

    def test_no_blank_no_punctuation_is_description_only(self):
        title, desc = split_title(["free text", "more text"])
        assert title == []
        assert desc == ["free text", "more text"]

    def test_first_line_with_punctuation_is_title(self):
        title, desc = split_title(["Lists widgets.", "Every widget is returned"])
        assert title == ["Lists widgets."]
        assert desc == ["Every widget is returned"]

    def test_multi_line_title_before_blank(self):
        title, desc = split_title(["Widget is", "a thing", "", "Really"])
        assert title == ["Widget is", "a thing"]
        assert desc == ["Really"]

    def test_parser_reports_title_and_description(self):
        _, result = _parse(["// Widget is a thing.", "//", "// It has parts."])
        assert result["title"] == ["Widget is a thing."]
        assert result["description"] == ["It has parts."]

    def test_without_title_setter_everything_is_description(self):
        parser, result = _parse(["Widget is a thing.", "", "It has parts."], with_title=False)
        assert parser.title == []
        assert result["description"] == ["Widget is a thing.", "", "It has parts."]


class TestCleanup:
    def test_strips_comment_markers(self):
        assert cleanup(["// hello", "#  world", "  * item"]) == ["hello", "world", "item"]

    def test_drops_surrounding_blank_lines(self):
        assert cleanup(["", "//", "text", "", "more", "  ", ""]) == ["text", "", "more"]

    def test_keeps_annotation_marker(self):
        assert cleanup(["// +swagger:meta"]) == ["+swagger:meta"]

    def test_all_blank(self):
        assert cleanup(["", "   "]) == []


class TestTagSections:
    def test_multi_line_tag_skips_matching_line(self):
        captured = []
        _parse(
            ["Consumes: ignored/type", "application/json", "application/xml"],
            taggers=[multi_line("consumes", MultiLineDropEmpty(RX_CONSUMES, captured.extend))],
        )
        assert captured == ["application/json", "application/xml"]

    def test_single_line_tag_is_its_own_content(self):
        schema = Schema()
        _parse(["maximum: <10"], taggers=[single_line("maximum", SetMaximum(schema))])
        assert schema.maximum == 10
        assert schema.exclusive_maximum is True

    def test_header_closed_after_first_tag(self):
        schema = Schema()
        _, result = _parse(
            ["A number.", "maximum: 5", "more words", "and more"],
            taggers=[single_line("maximum", SetMaximum(schema))],
        )
        assert result["title"] == ["A number."]
        assert result["description"] == []
        assert schema.maximum == 5

    def test_multi_line_collects_until_next_tag(self):
        consumes = []
        schema = Schema()
        _parse(
            ["Consumes:", "application/json", "", "Max: 3", "text/plain"],
            taggers=[
                multi_line("consumes", MultiLineDropEmpty(RX_CONSUMES, consumes.extend)),
                single_line("maximum", SetMaximum(schema)),
            ],
        )
        assert consumes == ["application/json"]
        assert schema.maximum == 3

    def test_other_annotation_terminates_block(self):
        schema = Schema()
        _, result = _parse(
            ["A model.", "+swagger:route GET /x x getX", "maximum: 4"],
            taggers=[single_line("maximum", SetMaximum(schema))],
            annotation=AnnotationParser(RX_MODEL),
        )
        assert result["title"] == ["A model."]
        assert schema.maximum is None

    def test_no_annotation_parser_terminates_on_any_marker(self):
        _, result = _parse(["Some text", "+swagger:meta", "more text"])
        assert result["description"] == ["Some text"]

    def test_matching_annotation_is_consumed(self):
        names = []
        _, result = _parse(
            ["+swagger:model widget", "A widget.", "", "With parts."],
            annotation=AnnotationParser(RX_MODEL, names.append),
        )
        assert names == ["widget"]
        assert result["title"] == ["A widget."]
        assert result["description"] == ["With parts."]

    def test_annotation_after_header_closes_it(self):
        _, result = _parse(
            ["A widget.", "+swagger:model", "trailing text"],
            annotation=AnnotationParser(RX_MODEL),
        )
        assert result["title"] == ["A widget."]
        assert result["description"] == []

    def test_empty_doc(self):
        _, result = _parse(None)
        assert result == {"title": [], "description": []}
