# tr_core/common/tests/test_storage.py
import logging

import pytest
from django.db import IntegrityError, OperationalError

from tr_core.common.api.exceptions import StorageError
from tr_core.common.storage import read_with_retry, write_guard


class FlakyRead:
    def __init__(self, failures, result="ok"):
        self.failures = failures
        self.result = result
        self.calls = 0

    def __call__(self):
        self.calls += 1
        if self.calls <= self.failures:
            raise OperationalError("connection reset")
        return self.result


def test_read_succeeds_without_retry():
    fn = FlakyRead(failures=0)
    assert read_with_retry(fn, label="t") == "ok"
    assert fn.calls == 1


def test_read_retries_once_after_transient_failure(caplog):
    fn = FlakyRead(failures=1)
    with caplog.at_level(logging.WARNING, logger="tr_core.common.storage"):
        assert read_with_retry(fn, label="t") == "ok"
    assert fn.calls == 2
    assert "storage_read_retry label=t" in caplog.text


def test_read_gives_up_after_second_failure():
    fn = FlakyRead(failures=2)
    with pytest.raises(StorageError):
        read_with_retry(fn, label="t")
    assert fn.calls == 2


def test_read_does_not_retry_non_transient_errors():
    calls = []

    def boom():
        calls.append(1)
        raise IntegrityError("dupe")

    with pytest.raises(IntegrityError):
        read_with_retry(boom)
    assert len(calls) == 1


def test_write_guard_maps_transient_failure_without_retry():
    calls = []
    with pytest.raises(StorageError):
        with write_guard(label="w"):
            calls.append(1)
            raise OperationalError("db gone")
    assert len(calls) == 1


def test_write_guard_passes_other_errors_through():
    with pytest.raises(ValueError):
        with write_guard(label="w"):
            raise ValueError("caller bug")
