import pytest

from swagger_scan.errors import DirectiveValueError, UnresolvedReferenceError
from swagger_scan.parser.base import Header, Parameter, Response, Schema
from swagger_scan.parser.validators import (
    RX_IN,
    RX_VERSION,
    SetCollectionFormat,
    SetMaximum,
    SetMaxItems,
    SetMaxLength,
    SetMinimum,
    SetMinItems,
    SetMinLength,
    SetMultipleOf,
    SetPattern,
    SetReadOnly,
    SetRequiredParam,
    SetRequiredSchema,
    SetResponses,
    SetSchemes,
    SetSecurity,
    SetUnique,
    SetValue,
)


class TestBounds:
    def test_exclusive_maximum(self):
        schema = Schema()
        parser = SetMaximum(schema)
        assert parser.matches("Maximum: <10")
        parser.parse(["Maximum: <10"])
        assert schema.maximum == 10
        assert schema.exclusive_maximum is True

    def test_inclusive_maximum(self):
        schema = Schema()
        SetMaximum(schema).parse(["Max: 10"])
        assert schema.maximum == 10
        assert schema.exclusive_maximum is False

    def test_exclusive_minimum_signed_decimal(self):
        param = Parameter()
        SetMinimum(param).parse(["minimum: > -2.5"])
        assert param.minimum == -2.5
        assert param.exclusive_minimum is True

    def test_explicit_inclusive_marker(self):
        schema = Schema()
        SetMinimum(schema).parse(["min: =3"])
        assert schema.minimum == 3
        assert schema.exclusive_minimum is False

    def test_malformed_number_is_an_error(self):
        schema = Schema()
        with pytest.raises(DirectiveValueError):
            SetMaximum(schema).parse(["maximum: 1.2.3"])

    def test_multiple_of(self):
        header = Header()
        parser = SetMultipleOf(header)
        assert parser.matches("Multiple Of: 5")
        parser.parse(["multipleOf: +0.5"])
        assert header.multiple_of == 0.5

    def test_maximum_does_not_match_length(self):
        assert not SetMaximum(Schema()).matches("maxLength: 10")


class TestLengthsAndItems:
    def test_lengths(self):
        schema = Schema()
        SetMaxLength(schema).parse(["Max Length: 20"])
        SetMinLength(schema).parse(["min-len: 2"])
        assert schema.max_length == 20
        assert schema.min_length == 2

    def test_items(self):
        schema = Schema()
        SetMaxItems(schema).parse(["maxItems: 9"])
        SetMinItems(schema).parse(["Minimum Items: 1"])
        assert schema.max_items == 9
        assert schema.min_items == 1

    def test_negative_length_does_not_match(self):
        assert not SetMinLength(Schema()).matches("minLength: -1")

    def test_pattern_is_verbatim(self):
        schema = Schema()
        SetPattern(schema).parse([r"Pattern: ^\w+[0-9]{2}$"])
        assert schema.pattern == r"^\w+[0-9]{2}$"

    def test_unique(self):
        schema = Schema()
        SetUnique(schema).parse(["unique: TRUE"])
        assert schema.unique_items is True

    def test_unique_bad_boolean(self):
        with pytest.raises(DirectiveValueError):
            SetUnique(Schema()).parse(["unique: sometimes"])

    def test_collection_format(self):
        param = Parameter()
        SetCollectionFormat(param).parse(["collection format: pipes"])
        assert param.collection_format == "pipes"


class TestFlags:
    def test_required_toggles_owner_required_set(self):
        owner = Schema()
        parser = SetRequiredSchema(owner, "name")
        parser.parse(["required: true"])
        parser.parse(["required: true"])
        assert owner.required == ["name"]
        parser.parse(["required: false"])
        assert owner.required == []

    def test_required_lines_apply_in_order(self):
        owner = Schema(required=["id"])
        SetRequiredSchema(owner, "name").parse(["required: true", "required: true", "required: false"])
        assert owner.required == ["id"]

    def test_required_false_leaves_other_fields(self):
        owner = Schema(required=["id", "name"])
        SetRequiredSchema(owner, "name").parse(["Required: false"])
        assert owner.required == ["id"]

    def test_required_param(self):
        param = Parameter()
        SetRequiredParam(param).parse(["required: true"])
        assert param.required is True

    def test_read_only(self):
        schema = Schema()
        parser = SetReadOnly(schema)
        assert parser.matches("read-only: true")
        parser.parse(["ReadOnly: true"])
        assert schema.read_only is True

    def test_location_grammar(self):
        assert RX_IN.search("in: body")
        assert RX_IN.search("Source: header")
        assert not RX_IN.search("within: path")
        assert not RX_IN.search("in: cookie")


class TestSchemes:
    def test_filters_and_splits(self):
        found = []
        SetSchemes(found.extend).parse(["Schemes: http, https,  ws"])
        assert found == ["http", "https", "ws"]

    def test_unknown_scheme_does_not_match(self):
        assert not SetSchemes(print).matches("schemes: ftp")


class TestSecurity:
    def test_lines_become_single_key_mappings(self):
        found = []
        SetSecurity(found.extend).parse(["api_key:", "oauth: read, write", "no colon here"])
        assert found == [{"api_key": []}, {"oauth": ["read", "write"]}]

    def test_empty_input(self):
        found = []
        SetSecurity(found.extend).parse([])
        assert found == []


class TestResponses:
    def _parse(self, lines, responses=None, definitions=None):
        result = {}

        def setter(default, codes):
            result["default"] = default
            result["codes"] = codes

        SetResponses(definitions or {}, responses or {}, setter).parse(lines)
        return result

    def test_maps_codes_and_default(self):
        known = {"widgetResponse": Response(), "errorResponse": Response()}
        result = self._parse(["200: widgetResponse", "default: errorResponse"], responses=known)
        assert result["codes"] == {200: Response(ref="#/responses/widgetResponse")}
        assert result["default"] == Response(ref="#/responses/errorResponse")

    def test_empty_name_is_an_error(self):
        with pytest.raises(DirectiveValueError):
            self._parse(["200:"])

    def test_falls_back_to_definition(self):
        result = self._parse(["201: Widget"], definitions={"Widget": Schema()})
        resp = result["codes"][201]
        assert resp.ref is None
        assert resp.schema_.ref == "#/definitions/Widget"

    def test_response_wins_over_definition(self):
        result = self._parse(
            ["200: Widget"],
            responses={"Widget": Response()},
            definitions={"Widget": Schema()},
        )
        assert result["codes"][200].ref == "#/responses/Widget"

    def test_unknown_name_is_an_error(self):
        with pytest.raises(UnresolvedReferenceError) as exc:
            self._parse(["200: missingResponse"])
        assert exc.value.name == "missingResponse"

    def test_non_numeric_keys_are_ignored(self):
        known = {"ok": Response()}
        result = self._parse(["ok: whatever", "200: ok", "just text"], responses=known)
        assert list(result["codes"]) == [200]
        assert result["default"] is None

    def test_duplicate_status_is_an_error(self):
        known = {"a": Response(), "b": Response()}
        with pytest.raises(DirectiveValueError):
            self._parse(["200: a", "200: b"], responses=known)


class TestSetValue:
    def test_trims_capture(self):
        found = []
        SetValue(RX_VERSION, found.append).parse(["Version: 1.0.2  "])
        assert found == ["1.0.2"]
