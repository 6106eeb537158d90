import math
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from crud_app.feature.user.schemas import UserWrite

MAX_AGE = 150

REQUIRED_FIELDS_ERROR = "Les champs fullname, study_level et age sont requis"
FULLNAME_ERROR = "Le champ fullname doit être une chaîne non vide"
STUDY_LEVEL_ERROR = "Le champ study_level doit être une chaîne non vide"
AGE_ERROR = "Le champ age doit être un nombre entier positif"
AGE_RANGE_ERROR = "L'âge doit être inférieur à 150 ans"


@dataclass(frozen=True)
class ValidationResult:
    valid: bool
    error: str | None = None


def _is_unset(value: Any) -> bool:
    """Missing, null, false, zero, NaN or the empty string; containers count as set."""
    if value is None or value is False or value == "":
        return True
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value == 0 or math.isnan(value)
    return False


def _is_blank_text(value: Any) -> bool:
    return not isinstance(value, str) or value.strip() == ""


def _is_integer(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return True
    return isinstance(value, float) and value.is_integer()


def validate_user(payload: Mapping[str, Any]) -> ValidationResult:
    """Check a candidate user against the field rules, first failure wins.

    ``age`` only has to be present for the required-fields check, so an
    ``age`` of 0 or null is reported by the positive-integer rule instead.
    """
    fullname = payload.get("fullname")
    study_level = payload.get("study_level")

    if _is_unset(fullname) or _is_unset(study_level) or "age" not in payload:
        return ValidationResult(False, REQUIRED_FIELDS_ERROR)
    if _is_blank_text(fullname):
        return ValidationResult(False, FULLNAME_ERROR)
    if _is_blank_text(study_level):
        return ValidationResult(False, STUDY_LEVEL_ERROR)

    age = payload["age"]
    if not _is_integer(age) or age <= 0:
        return ValidationResult(False, AGE_ERROR)
    if age > MAX_AGE:
        return ValidationResult(False, AGE_RANGE_ERROR)

    return ValidationResult(True)


def normalize_user(payload: Mapping[str, Any]) -> UserWrite:
    """Trimmed values of a payload that already passed :func:`validate_user`."""
    return UserWrite(
        fullname=payload["fullname"].strip(),
        study_level=payload["study_level"].strip(),
        age=int(payload["age"]),
    )
