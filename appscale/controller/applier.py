import copy
import json
import logging

from appscale.apiServer.apiClient import NotFoundError
from appscale.config.autoscaleConfig import AutoscaleConfig

logger = logging.getLogger(__name__)


class ACTION:
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    NOOP = "NOOP"


def _strip_managed_fields(obj, annotation):
    obj = copy.deepcopy(obj)
    metadata = obj.get("metadata", {})
    metadata.pop("resourceVersion", None)
    annotations = metadata.get("annotations")
    if annotations is not None:
        annotations.pop(annotation, None)
        if not annotations:
            metadata.pop("annotations")
    return obj


def canonical_snapshot(obj, annotation=AutoscaleConfig.LAST_APPLIED_ANNOTATION):
    """期望状态的规范化序列化，与字段构造顺序无关"""
    return json.dumps(
        _strip_managed_fields(obj, annotation),
        sort_keys=True,
        separators=(",", ":"),
    )


def stored_snapshot(obj, annotation=AutoscaleConfig.LAST_APPLIED_ANNOTATION):
    return (obj.get("metadata", {}).get("annotations") or {}).get(annotation)


class Applier:
    """
    根据 last-applied 快照决定 create / update / 不操作
    """

    def __init__(self, resource_client, annotation=AutoscaleConfig.LAST_APPLIED_ANNOTATION):
        self.resource_client = resource_client
        self.annotation = annotation

    def _fetch(self, namespace, name):
        try:
            return self.resource_client.get(namespace, name)
        except NotFoundError:
            return None

    def apply(self, desired, fetch_existing=None, before_write=None):
        """
        使 live 对象收敛到 desired

        Args:
            desired: 期望的对象清单
            fetch_existing: 可选，返回 live 对象或 None，默认按 namespace/name 查询
            before_write: 可选，每次写之前调用，用于检查取消

        Returns:
            ACTION.CREATE / ACTION.UPDATE / ACTION.NOOP
        """
        metadata = desired["metadata"]
        namespace, name = metadata["namespace"], metadata["name"]
        snapshot = canonical_snapshot(desired, self.annotation)

        if fetch_existing is not None:
            existing = fetch_existing()
        else:
            existing = self._fetch(namespace, name)

        if existing is not None and stored_snapshot(existing, self.annotation) == snapshot:
            logger.debug("%s/%s is up to date", namespace, name)
            return ACTION.NOOP

        obj = copy.deepcopy(desired)
        obj["metadata"].setdefault("annotations", {})[self.annotation] = snapshot
        if before_write is not None:
            before_write()

        if existing is None:
            logger.info("Create %s %s/%s", obj.get("kind", "object"), namespace, name)
            self.resource_client.create(obj)
            return ACTION.CREATE

        obj["metadata"]["resourceVersion"] = existing.get("metadata", {}).get("resourceVersion")
        logger.info("Update %s %s/%s", obj.get("kind", "object"), namespace, name)
        self.resource_client.update(obj)
        return ACTION.UPDATE
