"""Tests for request schema validation."""

import pytest
from pydantic import ValidationError

from linkguard.schemas.link_health import LinkCheckRequest


class TestLinkCheckRequest:

    def test_timeout_defaults_to_detector_settings(self):
        assert LinkCheckRequest(url="https://amzn.to/abc").timeout_seconds is None

    def test_timeout_within_bounds(self):
        assert LinkCheckRequest(url="https://amzn.to/abc", timeout_seconds=60).timeout_seconds == 60

    @pytest.mark.parametrize("timeout", [0, -5, 60.5, 3600])
    def test_timeout_out_of_bounds_rejected(self, timeout):
        """Should reject timeouts that would fail instantly or hold the request open."""
        with pytest.raises(ValidationError):
            LinkCheckRequest(url="https://amzn.to/abc", timeout_seconds=timeout)
