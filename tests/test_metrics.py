"""Test the metrics module."""

from core.metrics import (
    audit_comments_total,
    nvp_rewrites_total,
    record_audit,
    record_rewrite,
)


def test_record_rewrite_counter_with_labels():
    metric = nvp_rewrites_total.labels(method="DoCapture", result="converted")
    initial = metric._value.get()

    record_rewrite("DoCapture", "converted")

    assert metric._value.get() == initial + 1


def test_record_rewrite_labels_are_independent():
    skipped = nvp_rewrites_total.labels(method="GetBalance", result="skipped")
    converted = nvp_rewrites_total.labels(method="GetBalance", result="converted")
    initial_skipped = skipped._value.get()
    initial_converted = converted._value.get()

    record_rewrite("GetBalance", "skipped")

    assert skipped._value.get() == initial_skipped + 1
    assert converted._value.get() == initial_converted


def test_record_audit_counter():
    metric = audit_comments_total.labels(outcome="skipped_duplicate")
    initial = metric._value.get()

    record_audit("skipped_duplicate")

    assert metric._value.get() == initial + 1
