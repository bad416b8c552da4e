"""
metrics adapter 的 discovery rule 生成与合并

规则集合以 YAML 形式保存在共享 ConfigMap 的一个 key 里，由所有租户的协调过程共同修改。
合并时以 seriesQuery 作为规则身份，其它租户的规则（包括本模块不认识的字段）原样保留。
"""
import copy
import logging

import yaml

from appscale.apiObject.metricExpression import SCOPE

logger = logging.getLogger(__name__)

NAMESPACE_LABEL = "kubernetes_namespace"
POD_LABEL = "kubernetes_pod_name"


class RuleSetFormatError(ValueError):
    pass


class DiscoveryRule:
    def __init__(
        self,
        series_query,
        resource_overrides,
        name_matches,
        name_as,
        metrics_query,
        raw=None,
    ):
        self.series_query = series_query
        self.resource_overrides = resource_overrides
        self.name_matches = name_matches
        self.name_as = name_as
        self.metrics_query = metrics_query
        # 从存储读出的原始内容，写回时原样输出，保证其它租户的规则不被改写
        self.raw = raw

    @classmethod
    def from_dict(cls, arg_json):
        if not isinstance(arg_json, dict):
            raise RuleSetFormatError(f"rule must be a mapping, got {type(arg_json).__name__}")
        resources = arg_json.get("resources") or {}
        name = arg_json.get("name") or {}
        if not isinstance(resources, dict) or not isinstance(name, dict):
            raise RuleSetFormatError(f"malformed rule {arg_json.get('seriesQuery')!r}")
        overrides = resources.get("overrides") or {}
        if not isinstance(overrides, dict):
            raise RuleSetFormatError(f"malformed overrides in rule {arg_json.get('seriesQuery')!r}")

        return cls(
            series_query=arg_json.get("seriesQuery", ""),
            resource_overrides={
                label: target.get("resource") if isinstance(target, dict) else target
                for label, target in overrides.items()
            },
            name_matches=name.get("matches", ""),
            name_as=name.get("as", ""),
            metrics_query=arg_json.get("metricsQuery", ""),
            raw=copy.deepcopy(arg_json),
        )

    def to_dict(self):
        if self.raw is not None:
            return copy.deepcopy(self.raw)
        return {
            "seriesQuery": self.series_query,
            "resources": {
                "overrides": {
                    label: {"resource": resource}
                    for label, resource in self.resource_overrides.items()
                }
            },
            "name": {"matches": self.name_matches, "as": self.name_as},
            "metricsQuery": self.metrics_query,
        }

    def __eq__(self, other):
        return isinstance(other, DiscoveryRule) and self.to_dict() == other.to_dict()

    def __repr__(self):
        return f"DiscoveryRule({self.series_query!r})"


def series_query(metric, namespace, pod_prefix):
    return f'{metric}{{{NAMESPACE_LABEL}="{namespace}",{POD_LABEL}=~"{pod_prefix}.*"}}'


def exposed_metric_name(descriptor):
    """HPA 中引用的自定义指标名，与 name.as 模板的改写结果一致"""
    return f"{descriptor.metric}_{descriptor.function}_{descriptor.scope}"


def metrics_query(descriptor):
    aggregation = (
        f"{descriptor.function}({descriptor.function}_over_time("
        f"<<.Series>>{{<<.LabelMatchers>>}}[{descriptor.window}]))"
    )
    if descriptor.scope == SCOPE.ALL:
        return aggregation
    if descriptor.scope == SCOPE.PER:
        return f"{aggregation} by (<<.GroupBy>>)"
    # 未知 scope 不生成查询
    return ""


def generate_rule(descriptor, namespace, pod_prefix):
    return DiscoveryRule(
        series_query=series_query(descriptor.metric, namespace, pod_prefix),
        resource_overrides={NAMESPACE_LABEL: "namespace", POD_LABEL: "pod"},
        name_matches=f"^({descriptor.metric})$",
        name_as=f"${{1}}_{descriptor.function}_{descriptor.scope}",
        metrics_query=metrics_query(descriptor),
    )


class RuleSet:
    def __init__(self, rules=None, extra=None):
        self.rules = list(rules or [])
        # rules 以外的顶层字段，例如 resourceRules / externalRules
        self.extra = extra or {}

    @classmethod
    def from_yaml(cls, text):
        if not text or not text.strip():
            return cls()
        try:
            document = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise RuleSetFormatError(f"unable to parse metrics discovery config: {e}") from e
        if document is None:
            return cls()
        if not isinstance(document, dict):
            raise RuleSetFormatError("metrics discovery config must be a mapping")

        raw_rules = document.pop("rules", None) or []
        if not isinstance(raw_rules, list):
            raise RuleSetFormatError("metrics discovery config 'rules' must be a list")
        return cls([DiscoveryRule.from_dict(r) for r in raw_rules], extra=document)

    def to_dict(self):
        document = {"rules": [rule.to_dict() for rule in self.rules]}
        for key, value in self.extra.items():
            document[key] = copy.deepcopy(value)
        return document

    def to_yaml(self):
        return yaml.safe_dump(self.to_dict(), sort_keys=False, default_flow_style=False)

    def find(self, query):
        for index, rule in enumerate(self.rules):
            if rule.series_query == query:
                return index
        return None

    def merge(self, rule):
        """
        按 seriesQuery 插入或替换规则

        Returns:
            (RuleSet, changed): 内容没有变化时返回原对象和 False
        """
        index = self.find(rule.series_query)
        if index is None:
            logger.info("%s not exist, append it", rule.series_query)
            return RuleSet(self.rules + [rule], extra=self.extra), True
        if self.rules[index] == rule:
            logger.debug("rule for %s is up to date", rule.series_query)
            return self, False

        logger.info("update rule for %s", rule.series_query)
        rules = list(self.rules)
        rules[index] = rule
        return RuleSet(rules, extra=self.extra), True

    def __len__(self):
        return len(self.rules)

    def __eq__(self, other):
        return isinstance(other, RuleSet) and self.to_dict() == other.to_dict()
