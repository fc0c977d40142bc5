from __future__ import annotations

import enum
from decimal import Decimal
from unittest.mock import patch

import pytest

from arequest.exceptions import ErrorKind, UnsupportedParameterTypeError
from arequest.utils import (
    calculate_sleep_time,
    clean_header_value,
    stringify_value,
    validate_retry_params,
)

##################################################
#     Tests for validate_retry_params           #
##################################################


def test_validate_retry_params_accepts_valid_values() -> None:
    """Test that validate_retry_params accepts valid parameters."""
    validate_retry_params(3, 0.3)
    validate_retry_params(0, 0.0)
    validate_retry_params(10, 1.5, jitter_factor=0.1, timeout=5.0)


def test_validate_retry_params_rejects_negative_max_retries() -> None:
    """Test that validate_retry_params rejects negative max_retries."""
    with pytest.raises(ValueError, match=r"max_retries must be >= 0, got -1"):
        validate_retry_params(-1, 0.3)


def test_validate_retry_params_rejects_negative_backoff_factor() -> None:
    """Test that validate_retry_params rejects negative
    backoff_factor."""
    with pytest.raises(ValueError, match=r"backoff_factor must be >= 0, got -0.5"):
        validate_retry_params(3, -0.5)


def test_validate_retry_params_rejects_negative_jitter_factor() -> None:
    with pytest.raises(ValueError, match=r"jitter_factor must be >= 0, got -0.1"):
        validate_retry_params(3, 0.5, jitter_factor=-0.1)


def test_validate_retry_params_rejects_non_positive_timeout() -> None:
    with pytest.raises(ValueError, match=r"timeout must be > 0, got 0"):
        validate_retry_params(3, 0.5, timeout=0)


def test_validate_retry_params_rejects_both_negative() -> None:
    """Test that validate_retry_params rejects both negative values."""
    with pytest.raises(ValueError, match=r"max_retries must be >= 0"):
        validate_retry_params(-1, -0.5)


##################################################
#     Tests for calculate_sleep_time            #
##################################################


def test_calculate_sleep_time_exponential_backoff() -> None:
    """Test exponential backoff calculation without jitter."""
    assert calculate_sleep_time(0, 1.0) == 1.0
    assert calculate_sleep_time(1, 1.0) == 2.0
    assert calculate_sleep_time(2, 1.0) == 4.0
    assert calculate_sleep_time(3, 0.5) == 4.0


def test_calculate_sleep_time_with_jitter() -> None:
    """Test that jitter is correctly added to sleep time."""
    with patch("arequest.utils.random.uniform", return_value=0.05):
        # Base sleep: 1.0 * 2^0 = 1.0
        # Jitter: 0.05 * 1.0 = 0.05
        assert calculate_sleep_time(0, 1.0, 1.0) == 1.05


def test_calculate_sleep_time_zero_jitter() -> None:
    """Test that zero jitter factor results in no jitter."""
    with patch("arequest.utils.random.uniform") as mock_uniform:
        assert calculate_sleep_time(0, 1.0, 0.0) == 1.0
    mock_uniform.assert_not_called()


##################################################
#     Tests for stringify_value                 #
##################################################


class Color(enum.Enum):
    RED = "red"


def test_stringify_value_str() -> None:
    assert stringify_value("k", "text") == "text"
    assert stringify_value("k", "") == ""


def test_stringify_value_bool() -> None:
    assert stringify_value("k", True) == "true"
    assert stringify_value("k", False) == "false"


def test_stringify_value_numbers() -> None:
    assert stringify_value("k", 42) == "42"
    assert stringify_value("k", 1.5) == "1.5"
    assert stringify_value("k", Decimal("2.50")) == "2.50"


def test_stringify_value_exception() -> None:
    assert stringify_value("k", ValueError("oopß")) == "oopß"


def test_stringify_value_enum() -> None:
    assert stringify_value("k", Color.RED) == "red"


@pytest.mark.parametrize("value", [{"a": 1}, [1, 2], (1,), b"bytes", object()])
def test_stringify_value_unsupported(value: object) -> None:
    with pytest.raises(UnsupportedParameterTypeError) as exc_info:
        stringify_value("key", value)
    assert exc_info.value.key == "key"
    assert exc_info.value.value is value
    assert exc_info.value.is_kind(ErrorKind.UNSUPPORTED_PARAMETER_TYPE)


##################################################
#     Tests for clean_header_value              #
##################################################


def test_clean_header_value_folds_line_breaks() -> None:
    assert clean_header_value("string!\n") == "string!"
    assert clean_header_value("a\r\nb") == "a  b"


def test_clean_header_value_keeps_inner_spaces() -> None:
    assert clean_header_value("  a b  ") == "a b"
