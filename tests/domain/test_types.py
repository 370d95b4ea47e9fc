"""Tests for domain enumerations."""

import pytest

from mailrelay.domain.types import DeliveryState, RejectReason


class TestDeliveryState:
    def test_has_exactly_nine_members(self):
        assert len(DeliveryState) == 9

    def test_string_serialization(self):
        assert str(DeliveryState.DONE) == "done"
        assert str(DeliveryState.ERROR_REPORTED) == "error_reported"

    def test_from_string(self):
        assert DeliveryState("metadata_sent") == DeliveryState.METADATA_SENT

    def test_invalid_value_raises(self):
        with pytest.raises(ValueError):
            DeliveryState("queued")


class TestRejectReason:
    def test_members(self):
        assert RejectReason.CONFIGURATION == "configuration"
        assert RejectReason.RATE_LIMIT == "rate_limit"
        assert RejectReason.PROCESSING == "processing"
