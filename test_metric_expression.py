import pytest

from appscale.apiObject.metricExpression import (
    SCOPE,
    MetricDescriptor,
    is_resource_metric,
    parse_metric_expression,
)


def test_parse_well_formed_expression():
    descriptor = parse_metric_expression("avg---http_requests---all---5m")
    assert descriptor == MetricDescriptor("avg", "http_requests", SCOPE.ALL, "5m")
    assert descriptor.function == "avg"
    assert descriptor.metric == "http_requests"
    assert descriptor.scope == "all"
    assert descriptor.window == "5m"


def test_fields_are_passed_through_unmodified():
    descriptor = parse_metric_expression(" Sum ---a:b{x}--- weird --- 5 minutes")
    assert descriptor == (" Sum ", "a:b{x}", " weird ", " 5 minutes")


@pytest.mark.parametrize(
    "expr",
    [
        None,
        "",
        "cpu",
        "memory",
        "avg---http_requests---all",
        "avg---http_requests---all---5m---extra",
        "avg--http_requests--all--5m",
        42,
        ["avg", "m", "all", "5m"],
    ],
)
def test_malformed_expression_is_not_applicable(expr):
    assert parse_metric_expression(expr) is None


def test_empty_fields_are_passed_through():
    assert parse_metric_expression("avg---m---all---") == ("avg", "m", "all", "")
    assert parse_metric_expression("---http_requests---all---5m").function == ""
    assert parse_metric_expression("avg------all---5m").metric == ""


def test_resource_metrics_bypass_parser():
    assert is_resource_metric("cpu")
    assert is_resource_metric("memory")
    assert not is_resource_metric("CPU")
    assert not is_resource_metric("avg---cpu---all---5m")
    assert not is_resource_metric(None)
