from typing import Literal, get_args

import pytest
from pydantic import BaseModel, ValidationError

from deferred_ai.utils.schemas import (
    JsonParser,
    SchemaFormatter,
    SimpleSchemaConverter,
    marshal_llm_to_json,
)


class TestMarshalLlmToJson:
    @pytest.mark.parametrize(
        "text, expected",
        [
            ('Sure! {"a": 1} hope this helps', '{"a": 1}'),
            ('Here: [1, 2] done', "[1, 2]"),
            ('[{"a": 1}]', '[{"a": 1}]'),
            ("no json at all", "no json at all"),
            ('{"a": 1', '{"a": 1'),
        ],
    )
    def test_extracts_outermost_json(self, text, expected):
        assert marshal_llm_to_json(text) == expected


class TestJsonParser:
    def test_parse_valid(self):
        assert JsonParser.parse('{"a": [1, 2]}') == {"a": [1, 2]}

    def test_parse_escapes_raw_newlines(self):
        assert JsonParser.parse('{"text": "line1\nline2\tend"}') == {"text": "line1\nline2\tend"}

    def test_parse_invalid_raises_value_error(self):
        with pytest.raises(ValueError, match="Failed to parse JSON"):
            JsonParser.parse("{broken")

    def test_escape_leaves_structure_alone(self):
        assert JsonParser.escape_control_chars('{\n"a": "x\ny"\n}') == '{\n"a": "x\\ny"\n}'

    @pytest.mark.parametrize(
        "prefix, expected",
        [
            ('{"items": ["a", "b', '{"items": ["a", "b"]}'),
            ('{"a": {"b": 1', '{"a": {"b": 1}}'),
            ('{"a": 1,', '{"a": 1}'),
            ('{"a":', '{"a"}'),
            ('{"a": "x\\', '{"a": "x"}'),
        ],
    )
    def test_repair_incomplete(self, prefix, expected):
        assert JsonParser.repair_incomplete(prefix) == expected

    @pytest.mark.parametrize(
        "prefix, expected",
        [
            ("", None),
            ("Thinking...", None),
            ('{"ti', None),
            ('{"title": "Hel', {"title": "Hel"}),
            ('{"title": "Hello", "bo', {"title": "Hello"}),
            ('{"title": "Hello", "body":', {"title": "Hello"}),
            ('noise {"items": ["a", ', {"items": ["a"]}),
            ('[{"a": 1}, {"b"', [{"a": 1}]),
        ],
    )
    def test_parse_partial(self, prefix, expected):
        assert JsonParser.parse_partial(prefix) == expected


class TestSchemaFormatter:
    def test_simplify_nested_and_optional(self):
        class Address(BaseModel):
            city: str

        class Person(BaseModel):
            name: str
            nickname: str | None = None
            address: Address

        text = SchemaFormatter.simplify(Person.model_json_schema())
        assert text.splitlines() == [
            "Expected JSON structure:",
            "{",
            '  "name": <string> [REQUIRED],',
            '  "nickname": <string | null> [OPTIONAL],',
            '  "address": [REQUIRED] {',
            '    "city": <string> [REQUIRED]',
            "  }",
            "}",
        ]

    def test_enum_and_array_labels(self):
        class Task(BaseModel):
            status: Literal["open", "closed"]
            tags: list[str]

        text = SchemaFormatter.simplify(Task.model_json_schema())
        assert '"status": <"open" | "closed"> [REQUIRED]' in text
        assert '"tags": <array of string> [REQUIRED]' in text

    def test_format_for_llm_wraps_template(self):
        class Item(BaseModel):
            name: str

        text = SchemaFormatter.format_for_llm(Item.model_json_schema())
        assert "Return ONLY a valid JSON object" in text
        assert '"name": <string> [REQUIRED]' in text


class TestSimpleSchemaConverter:
    def test_field_types_from_hints(self):
        model = SimpleSchemaConverter.to_model(
            {
                "title": "The title",
                "score": "Score (number)",
                "votes": "Votes (integer)",
                "done": "Whether done (true/false)",
                "flag": "A flag (boolean)",
                "meta": "Extra data (object)",
            }
        )
        instance = model(title="T", score="1.5", votes=3, done="true", flag=False, meta={"k": 1})
        assert instance.model_dump() == {
            "title": "T",
            "score": 1.5,
            "votes": 3,
            "done": True,
            "flag": False,
            "meta": {"k": 1},
        }

    def test_descriptions_drop_type_hints(self):
        schema = SimpleSchemaConverter.to_model({"score": "Score (number)"}).model_json_schema()
        assert schema["properties"]["score"]["description"] == "Score"

    def test_enum_strings_become_literals(self):
        model = SimpleSchemaConverter.to_model({"status": "open | closed"})
        assert model(status="open").status == "open"
        with pytest.raises(ValidationError):
            model(status="pending")

    def test_true_false_enum_accepts_bool_or_string(self):
        annotation = SimpleSchemaConverter.annotation_for("true | false", "Answer")
        model = SimpleSchemaConverter.to_model({"answer": "true | false"})
        assert bool in get_args(annotation)
        assert model(answer=True).answer is True
        assert model(answer="false").answer in (False, "false")

    def test_lists_and_nested_objects(self):
        model = SimpleSchemaConverter.to_model(
            {"steps": ["A step"], "author": {"name": "Name", "age": "Age (integer)"}, "any": []},
            name="Recipe",
        )
        instance = model(steps=["boil"], author={"name": "Ada", "age": "36"}, any=[1, "x"])
        assert instance.model_dump() == {
            "steps": ["boil"],
            "author": {"name": "Ada", "age": 36},
            "any": [1, "x"],
        }

    def test_list_of_objects(self):
        model = SimpleSchemaConverter.to_model({"steps": [{"title": "Title"}]})
        instance = model.model_validate({"steps": [{"title": "Boil"}]})
        assert instance.model_dump() == {"steps": [{"title": "Boil"}]}

    def test_non_identifier_and_reserved_keys_use_aliases(self):
        model = SimpleSchemaConverter.to_model(
            {"first name": "Name", "_private": "P", "copy": "C", "ok": "Ok"}
        )
        instance = model.model_validate({"first name": "A", "_private": "B", "copy": "C", "ok": "D"})
        assert instance.model_dump(by_alias=True) == {
            "first name": "A",
            "_private": "B",
            "copy": "C",
            "ok": "D",
        }

    def test_non_dict_schema_is_wrapped(self):
        model = SimpleSchemaConverter.to_model(["An item"])
        assert model(value=["a"]).model_dump() == {"value": ["a"]}

    def test_all_fields_required(self):
        model = SimpleSchemaConverter.to_model({"a": "A"})
        with pytest.raises(ValidationError):
            model()
