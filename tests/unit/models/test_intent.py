"""Unit tests for intent models.

Tests for parsing, validation and serialization of intents.
"""

import json

import pytest
from fsagent.core.errors import ErrorKind, IntentParseError, IntentValidationError
from fsagent.models.intent import (
    INTENT_TYPES,
    CopyFileIntent,
    CreateDirectoryIntent,
    CreateFileIntent,
    DeleteDirectoryIntent,
    ListDirectoryIntent,
    ModifyFileIntent,
    ReadFileIntent,
    RenameFileIntent,
    UndoIntent,
    WriteFileIntent,
    intent_to_dict,
    parse_intent,
    parse_intent_list,
)


class TestParseIntent:
    """Tests for parse_intent function."""

    def test_parses_dict(self) -> None:
        """parse_intent returns the matching variant for a dict."""
        intent = parse_intent({"type": "create_file", "path": "a.txt", "content": "hello"})

        assert isinstance(intent, CreateFileIntent)
        assert intent.path == "a.txt"
        assert intent.content == "hello"
        assert intent.overwrite is False

    def test_parses_json_text(self) -> None:
        """parse_intent accepts JSON text."""
        intent = parse_intent('{"type": "create_directory", "path": "notes"}')

        assert isinstance(intent, CreateDirectoryIntent)
        assert intent.recursive is True

    def test_camel_case_aliases(self) -> None:
        """Fields arrive in camelCase and are exposed in snake_case."""
        intent = parse_intent(
            {"type": "copy_file", "sourcePath": "a.txt", "destinationPath": "b.txt"}
        )

        assert isinstance(intent, CopyFileIntent)
        assert intent.source_path == "a.txt"
        assert intent.destination_path == "b.txt"

    def test_snake_case_names_accepted(self) -> None:
        """Python field names are accepted as well as aliases."""
        intent = parse_intent({"type": "read_file", "path": "a.txt", "from_line": 3})

        assert isinstance(intent, ReadFileIntent)
        assert intent.from_line == 3

    def test_global_alias_for_replace_all(self) -> None:
        """modify_file takes its replace-all flag as 'global'."""
        intent = parse_intent(
            {"type": "modify_file", "path": "a.txt", "search": "x", "replace": "y", "global": True}
        )

        assert isinstance(intent, ModifyFileIntent)
        assert intent.replace_all is True

    def test_reasoning_defaults_to_empty(self) -> None:
        """reasoning is optional on every variant."""
        intent = parse_intent({"type": "help"})
        assert intent.reasoning == ""

    def test_extra_fields_ignored(self) -> None:
        """Unknown fields do not fail validation."""
        intent = parse_intent({"type": "undo", "steps": 2, "confidence": 0.9})

        assert isinstance(intent, UndoIntent)
        assert intent.steps == 2

    def test_missing_type_is_parse_failure(self) -> None:
        """A missing type is a parse failure, not a crash."""
        with pytest.raises(IntentParseError) as exc_info:
            parse_intent({"path": "a.txt"})

        assert exc_info.value.kind == ErrorKind.PARSE_FAILURE

    def test_unknown_type_is_parse_failure(self) -> None:
        """An unrecognized type is a parse failure."""
        with pytest.raises(IntentParseError, match="format_disk"):
            parse_intent({"type": "format_disk"})

    def test_malformed_json_is_parse_failure(self) -> None:
        """Text that is not JSON is a parse failure."""
        with pytest.raises(IntentParseError):
            parse_intent("{not json")

    def test_non_object_is_parse_failure(self) -> None:
        """A JSON array is not an intent."""
        with pytest.raises(IntentParseError):
            parse_intent("[1, 2]")

    def test_missing_required_field_is_validation_failure(self) -> None:
        """A known type missing its fields is a validation failure."""
        with pytest.raises(IntentValidationError) as exc_info:
            parse_intent({"type": "write_file", "path": "a.txt"})

        assert exc_info.value.kind == ErrorKind.VALIDATION_FAILURE
        assert "content" in exc_info.value.message

    def test_blank_path_is_validation_failure(self) -> None:
        """Whitespace-only paths are rejected."""
        with pytest.raises(IntentValidationError):
            parse_intent({"type": "delete_file", "path": "   "})

    def test_undo_steps_must_be_positive(self) -> None:
        """undo steps below 1 are rejected."""
        with pytest.raises(IntentValidationError):
            parse_intent({"type": "undo", "steps": 0})

    @pytest.mark.parametrize("new_name", ["sub/b.txt", "..", "a\\b"])
    def test_rename_rejects_paths_as_names(self, new_name: str) -> None:
        """rename_file only takes a plain name."""
        with pytest.raises(IntentValidationError):
            parse_intent({"type": "rename_file", "path": "a.txt", "newName": new_name})


class TestIntentProperties:
    """Tests for intent class-level flags and descriptions."""

    def test_every_type_parses_with_minimal_fields(self) -> None:
        """Each declared type can be built from a minimal payload."""
        minimal = {
            "create_directory": {"path": "d"},
            "create_file": {"path": "f"},
            "write_file": {"path": "f", "content": ""},
            "modify_file": {"path": "f"},
            "truncate_file": {"path": "f"},
            "delete_file": {"path": "f"},
            "delete_directory": {"path": "d"},
            "copy_file": {"sourcePath": "a", "destinationPath": "b"},
            "move_file": {"sourcePath": "a", "destinationPath": "b"},
            "rename_file": {"path": "a", "newName": "b"},
            "read_file": {"path": "f"},
            "list_directory": {},
            "undo": {},
            "help": {},
            "explain": {},
        }
        assert set(minimal) == INTENT_TYPES

        for intent_type, fields in minimal.items():
            assert parse_intent({"type": intent_type, **fields}).type == intent_type

    def test_mutating_flags(self) -> None:
        """Only filesystem changes are mutating."""
        assert CreateFileIntent(path="a").mutating is True
        assert DeleteDirectoryIntent(path="d").mutating is True
        assert ReadFileIntent(path="a").mutating is False
        assert ListDirectoryIntent().mutating is False
        assert UndoIntent().mutating is False

    def test_plannable_flags(self) -> None:
        """Session intents cannot be queued in a plan."""
        assert WriteFileIntent(path="a", content="x").plannable is True
        assert ReadFileIntent(path="a").plannable is True
        assert UndoIntent().plannable is False

    def test_describe(self) -> None:
        """describe names the type and its paths."""
        assert CreateFileIntent(path="a.txt").describe() == "create_file a.txt"
        assert (
            CopyFileIntent(source_path="a", destination_path="b").describe()
            == "copy_file a -> b"
        )
        assert RenameFileIntent(path="a", new_name="b").describe() == "rename_file a -> b"

    def test_intents_are_frozen(self) -> None:
        """Intents cannot be changed after validation."""
        intent = CreateFileIntent(path="a.txt")
        with pytest.raises(Exception):  # noqa: B017
            intent.path = "b.txt"  # type: ignore[misc]


class TestIntentToDict:
    """Tests for intent_to_dict function."""

    def test_uses_aliases(self) -> None:
        """Serialization uses the JSON field names."""
        data = intent_to_dict(ModifyFileIntent(path="a", search="x", replace="y", replace_all=True))

        assert data["type"] == "modify_file"
        assert data["global"] is True
        assert "replace_all" not in data

    def test_output_parses_back(self) -> None:
        """Serialized intents are valid input again."""
        original = CopyFileIntent(source_path="a", destination_path="b", overwrite=True)
        assert parse_intent(json.dumps(intent_to_dict(original))) == original


class TestParseIntentList:
    """Tests for parse_intent_list function."""

    def test_parses_array(self) -> None:
        """A JSON array yields intents in order."""
        intents = parse_intent_list(
            '[{"type": "create_directory", "path": "d"}, {"type": "create_file", "path": "d/f"}]'
        )

        assert [intent.type for intent in intents] == ["create_directory", "create_file"]

    def test_rejects_object(self) -> None:
        """A plan must be an array."""
        with pytest.raises(IntentParseError, match="array"):
            parse_intent_list('{"type": "help"}')

    def test_error_names_entry(self) -> None:
        """Errors name the position of the bad entry."""
        with pytest.raises(IntentValidationError, match="Plan entry 2"):
            parse_intent_list('[{"type": "help"}, {"type": "write_file", "path": "a"}]')

    def test_non_object_entry(self) -> None:
        """Entries must be objects."""
        with pytest.raises(IntentParseError, match="Plan entry 1"):
            parse_intent_list('["create a file"]')
