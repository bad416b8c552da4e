class AutoscalingConfig:
    def __init__(self, arg_json=None):
        arg_json = arg_json or {}
        # metric 可以是 "cpu"/"memory"，也可以是 function---metric---scope---window 编码
        self.metric = arg_json.get("metric", "")
        self.threshold = arg_json.get("threshold", 0)
        self.min_replicas = arg_json.get("minReplicas", 0)
        self.max_replicas = arg_json.get("maxReplicas", 0)

    def is_empty(self):
        """零值表示组件没有请求自动扩缩容"""
        return not (
            self.metric or self.threshold or self.min_replicas or self.max_replicas
        )

    def to_dict(self):
        return {
            "metric": self.metric,
            "threshold": self.threshold,
            "minReplicas": self.min_replicas,
            "maxReplicas": self.max_replicas,
        }

    def __eq__(self, other):
        return isinstance(other, AutoscalingConfig) and self.to_dict() == other.to_dict()

    def __str__(self):
        return f"Autoscaling(metric={self.metric}, threshold={self.threshold}, min={self.min_replicas}, max={self.max_replicas})"


class ComponentConfig:
    def __init__(self, arg_json):
        self.name = arg_json.get("name")
        self.version = arg_json.get("version", "")

        opt_traits = arg_json.get("optTraits") or {}
        self.autoscaling = AutoscalingConfig(opt_traits.get("autoscaling"))

    def to_dict(self):
        return {
            "name": self.name,
            "version": self.version,
            "optTraits": {"autoscaling": self.autoscaling.to_dict()},
        }

    def __str__(self):
        return f"Component({self.name}, version={self.version})"


class ApplicationConfig:
    def __init__(self, arg_json):
        # --- static information ---
        self.api_version = arg_json.get("apiVersion", "project.cattle.io/v3")
        self.kind = arg_json.get("kind", "Application")

        metadata = arg_json.get("metadata", {})
        self.name = metadata.get("name")
        self.namespace = metadata.get("namespace", "default")
        self.uid = metadata.get("uid", "")
        self.resource_version = metadata.get("resourceVersion")

        spec = arg_json.get("spec", {})
        self.components = [ComponentConfig(c) for c in spec.get("components", [])]

        if not self.name:
            raise ValueError("Application 必须指定 metadata.name")

    def owner_reference(self):
        """作为 HPA 的 ownerReference"""
        return {
            "apiVersion": self.api_version,
            "kind": self.kind,
            "name": self.name,
            "uid": self.uid,
            "controller": True,
            "blockOwnerDeletion": True,
        }

    def to_dict(self):
        metadata = {"name": self.name, "namespace": self.namespace}
        if self.uid:
            metadata["uid"] = self.uid
        if self.resource_version is not None:
            metadata["resourceVersion"] = self.resource_version
        return {
            "apiVersion": self.api_version,
            "kind": self.kind,
            "metadata": metadata,
            "spec": {"components": [c.to_dict() for c in self.components]},
        }

    def __str__(self):
        return f"Application({self.namespace}/{self.name}, components={len(self.components)})"
