from typing import NamedTuple, Optional

DELIMITER = "---"
FIELD_COUNT = 4

RESOURCE_METRICS = ("cpu", "memory")


class SCOPE:
    ALL = "all"
    PER = "per"


class MetricDescriptor(NamedTuple):
    function: str
    metric: str
    scope: str
    window: str


def parse_metric_expression(expr) -> Optional[MetricDescriptor]:
    """
    解析 function---metric---scope---window 编码

    不符合 4 段结构的输入返回 None，调用方据此跳过自定义指标，不会抛异常。
    各字段原样返回，不做内容校验，空字段同样保留。
    """
    if not isinstance(expr, str):
        return None
    fields = expr.split(DELIMITER)
    if len(fields) != FIELD_COUNT:
        return None
    return MetricDescriptor(*fields)


def is_resource_metric(expr) -> bool:
    """cpu / memory 走内置资源指标，不经过解析器"""
    return expr in RESOURCE_METRICS
