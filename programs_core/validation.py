"""Schema validation for rows crossing the data-access boundary."""

import json
from functools import lru_cache
from pathlib import Path

import jsonschema

from programs_core.models import Agent, FormQuestion, Program, Registration

SCHEMAS_DIR = Path(__file__).resolve().parent.parent / "schemas"


class RecordValidationError(ValueError):
    """Raised when a stored row does not match its schema."""

    def __init__(self, schema_name: str, row_id, error: jsonschema.ValidationError):
        self.schema_name = schema_name
        self.row_id = row_id
        self.error = error
        location = "/".join(str(p) for p in error.absolute_path) or "<root>"
        super().__init__(f"Invalid {schema_name} row {row_id}: {location}: {error.message}")


@lru_cache(maxsize=None)
def _load_schema(name: str) -> dict:
    path = SCHEMAS_DIR / f"{name}.schema.json"
    return json.loads(path.read_text(encoding="utf-8"))


def validate_row(name: str, row: dict) -> None:
    """Validate a raw row against schemas/<name>.schema.json. Raises RecordValidationError."""
    try:
        jsonschema.validate(row, _load_schema(name))
    except jsonschema.ValidationError as e:
        row_id = row.get("id") if isinstance(row, dict) else None
        raise RecordValidationError(name, row_id, e) from e


def parse_program(row: dict) -> Program:
    validate_row("program", row)
    return Program.from_row(row)


def parse_question(row: dict) -> FormQuestion:
    validate_row("form_question", row)
    return FormQuestion.from_row(row)


def parse_registration(row: dict) -> Registration:
    validate_row("registration", row)
    return Registration.from_row(row)


def parse_agent(row: dict) -> Agent:
    validate_row("agent", row)
    return Agent.from_row(row)
