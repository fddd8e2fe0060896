# tests/unit/core/test_unit_errors.py — v1
"""Tests for core/errors.py — store error classification."""

from __future__ import annotations

import asyncio

from botocore.exceptions import ClientError, EndpointConnectionError, NoCredentialsError

from repairsync.core.errors import (
    PermanentStoreError,
    SerializationError,
    StoreError,
    TransientStoreError,
    classify_store_error,
    client_error_code,
)


def _client_error(code: str) -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": code}}, "PutObject")


class TestClassifyStoreError:
    def test_store_error_passthrough(self):
        error = PermanentStoreError("denied", key="k")
        assert classify_store_error(error) is error

    def test_timeout_is_transient(self):
        result = classify_store_error(asyncio.TimeoutError(), key="k")
        assert isinstance(result, TransientStoreError)
        assert result.key == "k"

    def test_access_denied_is_permanent(self):
        cause = _client_error("AccessDenied")
        result = classify_store_error(cause, key="k")
        assert isinstance(result, PermanentStoreError)
        assert result.cause is cause

    def test_no_such_bucket_is_permanent(self):
        assert isinstance(classify_store_error(_client_error("NoSuchBucket")), PermanentStoreError)

    def test_throttling_is_transient(self):
        assert isinstance(classify_store_error(_client_error("SlowDown")), TransientStoreError)

    def test_server_error_is_transient(self):
        assert isinstance(
            classify_store_error(_client_error("InternalError")), TransientStoreError
        )

    def test_missing_credentials_is_permanent(self):
        assert isinstance(classify_store_error(NoCredentialsError()), PermanentStoreError)

    def test_connection_error_is_transient(self):
        error = EndpointConnectionError(endpoint_url="https://s3.invalid")
        assert isinstance(classify_store_error(error), TransientStoreError)

    def test_unknown_error_is_transient(self):
        assert isinstance(classify_store_error(RuntimeError("boom")), TransientStoreError)

    def test_all_results_are_store_errors(self):
        for error in (OSError("x"), _client_error("AccessDenied"), TimeoutError()):
            assert isinstance(classify_store_error(error), StoreError)


class TestClientErrorCode:
    def test_extracts_code(self):
        assert client_error_code(_client_error("NoSuchKey")) == "NoSuchKey"

    def test_plain_exception(self):
        assert client_error_code(ValueError("x")) is None


class TestSerializationError:
    def test_is_value_error(self):
        assert issubclass(SerializationError, ValueError)
