"""Tests for Settings."""

from unittest.mock import patch

import pytest
from pydantic import ValidationError

from espec_api.settings import Settings


def test_defaults_and_url_normalization():
    with patch.dict("os.environ", {"UPSTREAM_API_URL": " https://api.example.com/ "}, clear=True):
        settings = Settings(_env_file=None)

    assert settings.upstream_api_url == "https://api.example.com"
    assert settings.request_timeout_seconds == 30.0
    assert settings.default_rejection_reason == "Item reprovado sem observações específicas"
    assert settings.monthly_stats_window == 9


def test_upstream_url_required():
    with patch.dict("os.environ", {}, clear=True):
        with pytest.raises(ValidationError):
            Settings(_env_file=None)


@pytest.mark.parametrize("value", ["0", "-3"], ids=["zero", "negative"])
def test_page_sizes_must_be_positive(value):
    with patch.dict("os.environ", {"UPSTREAM_API_URL": "https://api.example.com", "PENDING_PAGE_SIZE": value}, clear=True):
        with pytest.raises(ValidationError):
            Settings(_env_file=None)


@pytest.mark.parametrize(
    "status,expected",
    [("PENDING", 5), ("approved", 10), ("REJECTED", 10), (None, 10)],
    ids=["pending", "approved_lowercase", "rejected", "no_status"],
)
def test_page_size_for(status, expected):
    with patch.dict("os.environ", {"UPSTREAM_API_URL": "https://api.example.com"}, clear=True):
        settings = Settings(_env_file=None)

    assert settings.page_size_for(status) == expected
