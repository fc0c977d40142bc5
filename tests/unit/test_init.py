r"""Unit tests for package initialization and metadata."""

from __future__ import annotations

from unittest.mock import patch

import arequest


def test_package_version_is_string() -> None:
    """Test that __version__ is a string."""
    assert isinstance(arequest.__version__, str)


def test_package_version_format() -> None:
    """Test that __version__ follows semantic versioning."""
    assert "." in arequest.__version__


def test_package_version_fallback_on_not_installed() -> None:
    """Test that __version__ falls back to '0.0.0' when package is not
    installed."""
    from importlib.metadata import PackageNotFoundError

    with patch("importlib.metadata.version", side_effect=PackageNotFoundError):
        # We need to reload the module to trigger the fallback
        import importlib

        importlib.reload(arequest)
        assert arequest.__version__ == "0.0.0"

        # Reload again to restore normal state
        importlib.reload(arequest)


def test_all_exports_defined() -> None:
    """Test that all items in __all__ are defined in the module."""
    for name in arequest.__all__:
        assert hasattr(arequest, name), f"{name} is in __all__ but not defined in module"


def test_all_exports_count() -> None:
    """Test that __all__ has the expected number of exports."""
    assert len(arequest.__all__) == 15


def test_constants_are_immutable_types() -> None:
    """Test that configuration constants are immutable types."""
    assert isinstance(arequest.DEFAULT_MAX_RETRIES, int)
    assert isinstance(arequest.DEFAULT_BACKOFF_FACTOR, float)
    assert isinstance(arequest.DEFAULT_TIMEOUT, float)
    assert isinstance(arequest.DEFAULT_USER_AGENT, str)


def test_exception_class_is_callable() -> None:
    """Test that HttpRequestError is a callable exception class."""
    exc = arequest.HttpRequestError("test", method="GET", url="http://test.com")
    assert isinstance(exc, Exception)
