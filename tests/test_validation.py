import pytest

from crud_app.feature.user.validation import (
    AGE_ERROR,
    AGE_RANGE_ERROR,
    FULLNAME_ERROR,
    REQUIRED_FIELDS_ERROR,
    STUDY_LEVEL_ERROR,
    normalize_user,
    validate_user,
)

VALID = {"fullname": "Ada Lovelace", "study_level": "Master", "age": 36}


def _with(**overrides):  # noqa: ANN003, ANN202
    payload = dict(VALID)
    payload.update(overrides)
    return payload


def _without(key: str) -> dict:
    return {k: v for k, v in VALID.items() if k != key}


def test_valid_payload_passes() -> None:
    result = validate_user(VALID)

    assert result.valid is True
    assert result.error is None


@pytest.mark.parametrize("missing", ["fullname", "study_level", "age"])
def test_missing_field_reports_required_fields(missing: str) -> None:
    result = validate_user(_without(missing))

    assert result.valid is False
    assert result.error == REQUIRED_FIELDS_ERROR


@pytest.mark.parametrize("field", ["fullname", "study_level"])
@pytest.mark.parametrize("empty", ["", None, 0])
def test_falsy_text_reports_required_fields(field: str, empty: object) -> None:
    assert validate_user(_with(**{field: empty})).error == REQUIRED_FIELDS_ERROR


@pytest.mark.parametrize(
    ("payload", "error"),
    [
        (_with(fullname="   "), FULLNAME_ERROR),
        (_with(fullname=42), FULLNAME_ERROR),
        (_with(fullname=["Ada"]), FULLNAME_ERROR),
        (_with(study_level="\t\n"), STUDY_LEVEL_ERROR),
        (_with(study_level=True), STUDY_LEVEL_ERROR),
    ],
)
def test_blank_or_non_text_fields_are_rejected(payload: dict, error: str) -> None:
    assert validate_user(payload).error == error


@pytest.mark.parametrize("age", [0, -1, 12.5, "30", None, True, [30]])
def test_non_positive_or_non_integer_age_is_rejected(age: object) -> None:
    assert validate_user(_with(age=age)).error == AGE_ERROR


def test_age_zero_passes_presence_check_and_fails_positive_rule() -> None:
    assert validate_user(_with(age=0)).error == AGE_ERROR


@pytest.mark.parametrize("age", [151, 200, 10_000])
def test_age_above_upper_bound_is_rejected(age: int) -> None:
    assert validate_user(_with(age=age)).error == AGE_RANGE_ERROR


@pytest.mark.parametrize("age", [1, 150, 30.0])
def test_age_bounds_are_inclusive(age: object) -> None:
    assert validate_user(_with(age=age)).valid is True


def test_first_failing_rule_wins() -> None:
    result = validate_user({"fullname": "  ", "study_level": " ", "age": -5})

    assert result.error == FULLNAME_ERROR


def test_normalize_user_trims_text_and_coerces_integral_age() -> None:
    user = normalize_user({"fullname": "  Ada Lovelace ", "study_level": " Master\n", "age": 36.0})

    assert user.fullname == "Ada Lovelace"
    assert user.study_level == "Master"
    assert user.age == 36
    assert isinstance(user.age, int)


@pytest.mark.parametrize(
    ("payload", "error"),
    [
        (_with(fullname=[]), FULLNAME_ERROR),
        (_with(fullname={}), FULLNAME_ERROR),
        (_with(study_level=[]), STUDY_LEVEL_ERROR),
        (_with(study_level={}), STUDY_LEVEL_ERROR),
    ],
)
def test_empty_containers_count_as_present(payload: dict, error: str) -> None:
    assert validate_user(payload).error == error


@pytest.mark.parametrize("unset", [False, 0.0, float("nan")])
def test_false_zero_and_nan_text_fields_count_as_missing(unset: object) -> None:
    assert validate_user(_with(fullname=unset)).error == REQUIRED_FIELDS_ERROR
