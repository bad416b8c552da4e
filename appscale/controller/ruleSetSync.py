import logging

from appscale.apiObject.discoveryRule import RuleSet
from appscale.apiServer.apiClient import ApiError, ConflictError, NotFoundError
from appscale.config.autoscaleConfig import AutoscaleConfig


class RuleSetConflictError(ApiError):
    """共享规则集在重试次数内仍然写冲突"""


class RuleSetSync:
    """
    将 discovery rule 合并进共享的 adapter ConfigMap

    每次尝试都重新读取、合并、带 resourceVersion 写回。写冲突（版本过期，或并发创建导致
    已存在）时重试，超过 retries 次后抛出 RuleSetConflictError。
    读写存储期间不持有锁，并发写者之间只依赖 resourceVersion。
    """

    def __init__(
        self,
        configmap_client,
        namespace=AutoscaleConfig.ADAPTER_NAMESPACE,
        name=AutoscaleConfig.ADAPTER_CONFIGMAP,
        key=AutoscaleConfig.ADAPTER_CONFIG_KEY,
        retries=AutoscaleConfig.CONFLICT_RETRIES,
    ):
        self.logger = logging.getLogger(__name__)
        self.configmap_client = configmap_client
        self.namespace = namespace
        self.name = name
        self.key = key
        self.retries = retries

    def _read(self):
        try:
            return self.configmap_client.get(self.namespace, self.name)
        except NotFoundError:
            return None

    def new_configmap(self, rule_set):
        return {
            "apiVersion": "v1",
            "kind": "ConfigMap",
            "metadata": {"namespace": self.namespace, "name": self.name},
            "data": {self.key: rule_set.to_yaml()},
        }

    def _write_once(self, rule, before_write):
        configmap = self._read()
        if configmap is None:
            self.logger.info("Configmap %s not found, then create it", self.name)
            rule_set, changed = RuleSet().merge(rule)
        else:
            data = configmap.get("data") or {}
            rule_set, changed = RuleSet.from_yaml(data.get(self.key, "")).merge(rule)
        if not changed:
            return False

        if before_write is not None:
            before_write()
        if configmap is None:
            self.configmap_client.create(self.new_configmap(rule_set))
            self.logger.info("Create configmap %s/%s", self.namespace, self.name)
        else:
            configmap["data"] = dict(configmap.get("data") or {})
            configmap["data"][self.key] = rule_set.to_yaml()
            self.configmap_client.update(configmap)
            self.logger.info("Update configmap %s/%s", self.namespace, self.name)
        return True

    def sync(self, rule, before_write=None):
        """
        Returns:
            bool: 是否写入了 ConfigMap
        """
        for attempt in range(1, self.retries + 1):
            try:
                return self._write_once(rule, before_write)
            except ConflictError as e:
                self.logger.warning(
                    "Conflict writing configmap %s/%s (%s/%s): %s",
                    self.namespace, self.name, attempt, self.retries, e,
                )
        self.logger.error(
            "Giving up on configmap %s/%s after %s conflicts",
            self.namespace, self.name, self.retries,
        )
        raise RuleSetConflictError(
            f"configmap {self.namespace}/{self.name} still conflicting after {self.retries} attempts",
            409,
        )
