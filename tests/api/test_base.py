"""Tests for api/base.py - Unified API response format."""

from datetime import timezone

from api.base import (
    success_response,
    error_response,
    ErrorCodes,
)


class TestSuccessResponse:
    """Tests for success_response()."""

    def test_structure(self):
        resp = success_response({"foo": "bar"})
        assert resp.success is True
        assert resp.data == {"foo": "bar"}
        assert resp.error is None

    def test_timestamp_is_utc(self):
        resp = success_response({})
        assert resp.meta.timestamp.tzinfo == timezone.utc


class TestErrorResponse:
    """Tests for error_response()."""

    def test_structure(self):
        resp = error_response(ErrorCodes.OVERPAYMENT_REJECTED, "Payment exceeds balance")
        assert resp.success is False
        assert resp.data is None
        assert resp.error.code == "OVERPAYMENT_REJECTED"
        assert resp.error.message == "Payment exceeds balance"

    def test_request_ids_are_unique(self):
        assert error_response("ERR", "a").meta.request_id != error_response("ERR", "b").meta.request_id


class TestErrorCodes:

    def test_codes_equal_their_names(self):
        codes = {k: v for k, v in vars(ErrorCodes).items() if k.isupper()}
        assert codes
        assert all(name == value for name, value in codes.items())


class TestRequestIdPassThrough:

    def test_given_request_id_is_used(self):
        assert success_response({}, request_id="req-1").meta.request_id == "req-1"
        assert error_response("ERR", "a", request_id="req-2").meta.request_id == "req-2"
