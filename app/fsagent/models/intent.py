"""Intent models.

An intent is the structured form of one user command: a discriminated union
on the ``type`` field with one variant per operation, each carrying exactly
the fields that operation needs. Intents arrive as JSON (from the translator
or the command line), so field aliases are camelCase.
"""

import json
from collections.abc import Mapping
from typing import Annotated, Any, ClassVar, Literal

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StringConstraints,
    TypeAdapter,
    ValidationError,
    field_validator,
)
from pydantic.alias_generators import to_camel

from fsagent.core.errors import IntentParseError, IntentValidationError

PathStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


class IntentBase(BaseModel):
    """Fields shared by every intent.

    Attributes:
        reasoning: Why the translator chose this intent (display only).
    """

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        alias_generator=to_camel,
        populate_by_name=True,
    )

    # Changes the filesystem and therefore goes through backup/undo bookkeeping
    mutating: ClassVar[bool] = False
    # Can be queued in a plan
    plannable: ClassVar[bool] = True

    type: str
    reasoning: str = ""

    def describe(self) -> str:
        """Short human-readable description, e.g. ``create_file notes.txt``."""
        path = getattr(self, "path", None)
        return f"{self.type} {path}" if path else self.type


class CreateDirectoryIntent(IntentBase):
    """Create a directory."""

    mutating: ClassVar[bool] = True

    type: Literal["create_directory"] = "create_directory"
    path: PathStr
    recursive: bool = True


class CreateFileIntent(IntentBase):
    """Create a file, optionally with initial content."""

    mutating: ClassVar[bool] = True

    type: Literal["create_file"] = "create_file"
    path: PathStr
    content: str = ""
    overwrite: bool = False


class WriteFileIntent(IntentBase):
    """Write content to a file; appends unless overwrite is set."""

    mutating: ClassVar[bool] = True

    type: Literal["write_file"] = "write_file"
    path: PathStr
    content: str
    overwrite: bool = False


class ModifyFileIntent(IntentBase):
    """Literal search/replace inside a file.

    An empty ``search`` replaces the whole file content with ``replace``.
    """

    mutating: ClassVar[bool] = True

    type: Literal["modify_file"] = "modify_file"
    path: PathStr
    search: str = ""
    replace: str = ""
    replace_all: bool = Field(default=False, alias="global")


class TruncateFileIntent(IntentBase):
    """Cut a file down to ``size`` bytes."""

    mutating: ClassVar[bool] = True

    type: Literal["truncate_file"] = "truncate_file"
    path: PathStr
    size: Annotated[int, Field(ge=0)] = 0


class DeleteFileIntent(IntentBase):
    """Delete a single file."""

    mutating: ClassVar[bool] = True

    type: Literal["delete_file"] = "delete_file"
    path: PathStr
    confirm: bool = True


class DeleteDirectoryIntent(IntentBase):
    """Delete a directory; non-empty directories need ``recursive``."""

    mutating: ClassVar[bool] = True

    type: Literal["delete_directory"] = "delete_directory"
    path: PathStr
    recursive: bool = False
    confirm: bool = True


class CopyFileIntent(IntentBase):
    """Copy a file to a new location."""

    mutating: ClassVar[bool] = True

    type: Literal["copy_file"] = "copy_file"
    source_path: PathStr
    destination_path: PathStr
    overwrite: bool = False

    def describe(self) -> str:
        return f"copy_file {self.source_path} -> {self.destination_path}"


class MoveFileIntent(IntentBase):
    """Move a file or directory to a new location."""

    mutating: ClassVar[bool] = True

    type: Literal["move_file"] = "move_file"
    source_path: PathStr
    destination_path: PathStr
    overwrite: bool = False

    def describe(self) -> str:
        return f"move_file {self.source_path} -> {self.destination_path}"


class RenameFileIntent(IntentBase):
    """Rename a file or directory within its parent directory."""

    mutating: ClassVar[bool] = True

    type: Literal["rename_file"] = "rename_file"
    path: PathStr
    new_name: PathStr
    overwrite: bool = False

    @field_validator("new_name")
    @classmethod
    def validate_new_name(cls, v: str) -> str:
        """Reject names that would move the entry to another directory."""
        if "/" in v or "\\" in v or v in (".", ".."):
            msg = f"new name must be a plain file name, got '{v}'"
            raise ValueError(msg)
        return v

    def describe(self) -> str:
        return f"rename_file {self.path} -> {self.new_name}"


class ReadFileIntent(IntentBase):
    """Read a file, optionally a slice of its lines."""

    type: Literal["read_file"] = "read_file"
    path: PathStr
    lines: Annotated[int | None, Field(ge=1)] = None
    from_line: Annotated[int | None, Field(ge=1)] = None


class ListDirectoryIntent(IntentBase):
    """List the entries of a directory."""

    type: Literal["list_directory"] = "list_directory"
    path: PathStr = "."
    detailed: bool = False


class UndoIntent(IntentBase):
    """Undo the most recent operations."""

    plannable: ClassVar[bool] = False

    type: Literal["undo"] = "undo"
    steps: Annotated[int, Field(ge=1)] = 1


class HelpIntent(IntentBase):
    """Show what the agent can do."""

    plannable: ClassVar[bool] = False

    type: Literal["help"] = "help"


class ExplainIntent(IntentBase):
    """Answer a question without touching the filesystem."""

    plannable: ClassVar[bool] = False

    type: Literal["explain"] = "explain"
    message: str = ""


Intent = Annotated[
    CreateDirectoryIntent
    | CreateFileIntent
    | WriteFileIntent
    | ModifyFileIntent
    | TruncateFileIntent
    | DeleteFileIntent
    | DeleteDirectoryIntent
    | CopyFileIntent
    | MoveFileIntent
    | RenameFileIntent
    | ReadFileIntent
    | ListDirectoryIntent
    | UndoIntent
    | HelpIntent
    | ExplainIntent,
    Field(discriminator="type"),
]

INTENT_TYPES: frozenset[str] = frozenset(
    {
        "create_directory",
        "create_file",
        "write_file",
        "modify_file",
        "truncate_file",
        "delete_file",
        "delete_directory",
        "copy_file",
        "move_file",
        "rename_file",
        "read_file",
        "list_directory",
        "undo",
        "help",
        "explain",
    }
)

_INTENT_ADAPTER: TypeAdapter[Intent] = TypeAdapter(Intent)


def _summarize_validation_error(error: ValidationError) -> str:
    """Flatten a pydantic ValidationError into one readable line."""
    parts: list[str] = []
    for item in error.errors():
        # First location element is the discriminator tag
        loc = ".".join(str(part) for part in item["loc"][1:]) or "intent"
        parts.append(f"{loc}: {item['msg']}")
    return "; ".join(parts)


def parse_intent(data: str | Mapping[str, Any]) -> Intent:
    """Validate raw input into an intent.

    Args:
        data: JSON text or an already decoded mapping.

    Returns:
        The validated intent variant.

    Raises:
        IntentParseError: If the input is not a JSON object or its ``type``
            is missing or unknown.
        IntentValidationError: If fields required by the type are missing
            or invalid.
    """
    if isinstance(data, str):
        try:
            payload: object = json.loads(data)
        except json.JSONDecodeError as e:
            raise IntentParseError(f"Intent is not valid JSON: {e.msg}") from e
    else:
        payload = dict(data)

    if not isinstance(payload, dict):
        raise IntentParseError("Intent must be a JSON object")

    intent_type = payload.get("type")
    if not intent_type:
        raise IntentParseError("Intent has no 'type' field")
    if intent_type not in INTENT_TYPES:
        raise IntentParseError(f"Unknown intent type '{intent_type}'")

    try:
        return _INTENT_ADAPTER.validate_python(payload)
    except ValidationError as e:
        raise IntentValidationError(
            f"Invalid {intent_type} intent: {_summarize_validation_error(e)}"
        ) from e


def parse_intent_list(data: str) -> list[Intent]:
    """Parse a JSON array of intents.

    Each element goes through parse_intent so errors name the offending
    position.

    Raises:
        IntentParseError: If the text is not a JSON array or an element has
            no valid type.
        IntentValidationError: If an element has invalid fields.
    """
    try:
        payload: object = json.loads(data)
    except json.JSONDecodeError as e:
        raise IntentParseError(f"Plan file is not valid JSON: {e.msg}") from e
    if not isinstance(payload, list):
        raise IntentParseError("Plan file must contain a JSON array of intents")

    intents: list[Intent] = []
    for index, item in enumerate(payload, start=1):
        if not isinstance(item, dict):
            raise IntentParseError(f"Plan entry {index} is not a JSON object")
        try:
            intents.append(parse_intent(item))
        except IntentValidationError as e:
            raise IntentValidationError(f"Plan entry {index}: {e.message}") from e
        except IntentParseError as e:
            raise IntentParseError(f"Plan entry {index}: {e.message}") from e
    return intents


def intent_to_dict(intent: IntentBase) -> dict[str, Any]:
    """Serialize an intent using its JSON (camelCase) field names."""
    return intent.model_dump(by_alias=True)
