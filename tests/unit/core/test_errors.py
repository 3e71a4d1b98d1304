# tests/unit/core/test_errors.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

import logging

import pytest

from hstore.core.errors import Diagnostic, IllegalMutationError, StoreError, ValidationError, report


def test_error_hierarchy():
    assert issubclass(ValidationError, StoreError)
    assert issubclass(IllegalMutationError, StoreError)
    assert issubclass(StoreError, Exception)


def test_errors_carry_message():
    with pytest.raises(StoreError, match="boom"):
        raise IllegalMutationError("boom")


@pytest.mark.parametrize(
    "kind,level",
    [
        (Diagnostic.UNKNOWN_MUTATION, logging.ERROR),
        (Diagnostic.UNKNOWN_ACTION, logging.ERROR),
        (Diagnostic.UNKNOWN_LOCAL_TYPE, logging.ERROR),
        (Diagnostic.DUPLICATE_GETTER, logging.ERROR),
        (Diagnostic.UNKNOWN_NAMESPACE, logging.ERROR),
        (Diagnostic.STATE_ASSIGNMENT, logging.ERROR),
        (Diagnostic.HOT_UPDATE_ABORTED, logging.WARNING),
        (Diagnostic.NOT_UNREGISTERABLE, logging.WARNING),
    ],
)
def test_diagnostic_levels(kind, level):
    assert kind.level == level


def test_report_logs_with_kind_prefix(store_log):
    report(Diagnostic.UNKNOWN_MUTATION, "unknown mutation type: %s", "missing")

    record = store_log.records[-1]
    assert record.name == "hstore.core.errors"
    assert record.levelno == logging.ERROR
    assert record.getMessage() == "[unknown_mutation] unknown mutation type: missing"


def test_report_does_not_raise(store_log):
    # Diagnostics never interrupt the caller
    for kind in Diagnostic:
        report(kind, "message")
    assert len(store_log.records) == len(Diagnostic)
