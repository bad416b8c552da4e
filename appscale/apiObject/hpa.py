from appscale.apiObject.discoveryRule import exposed_metric_name
from appscale.apiObject.metricExpression import is_resource_metric

HPA_API_VERSION = "autoscaling/v2"


def hpa_name(app_name, component):
    return f"{app_name}-{component.name}-{component.version}-hpa"


def workload_name(app_name, component):
    """Deployment 名，同时作为 pod 名前缀"""
    return f"{app_name}-{component.name}-workload-{component.version}"


def pods_metric(descriptor, threshold):
    return {
        "type": "Pods",
        "pods": {
            "metric": {"name": exposed_metric_name(descriptor)},
            "target": {
                "type": "AverageValue",
                # quantity 以字符串表示
                "averageValue": str(threshold),
            },
        },
    }


def resource_metric(resource_name, threshold):
    return {
        "type": "Resource",
        "resource": {
            "name": resource_name,
            "target": {
                "type": "Utilization",
                "averageUtilization": threshold,
            },
        },
    }


def generate_hpa(
    autoscaling, descriptor, name, namespace, scale_target_name, owner_ref=None
):
    """
    生成 HorizontalPodAutoscaler 清单

    Args:
        autoscaling: AutoscalingConfig
        descriptor: 解析得到的 MetricDescriptor，没有自定义指标时为 None
        name: HPA 名称
        namespace: 命名空间
        scale_target_name: 被扩缩的 Deployment 名称
        owner_ref: 所属 Application 的 ownerReference，其 apiVersion 同时写入 scaleTargetRef

    Returns:
        dict: HPA 清单。自定义指标和内置资源指标互斥，副本上下限不做校验
    """
    metrics = []
    if descriptor is not None:
        metrics.append(pods_metric(descriptor, autoscaling.threshold))
    elif is_resource_metric(autoscaling.metric):
        metrics.append(resource_metric(autoscaling.metric, autoscaling.threshold))

    metadata = {"name": name, "namespace": namespace}
    scale_target_ref = {"kind": "Deployment", "name": scale_target_name}
    if owner_ref:
        metadata["ownerReferences"] = [dict(owner_ref)]
        scale_target_ref["apiVersion"] = owner_ref.get("apiVersion")

    return {
        "apiVersion": HPA_API_VERSION,
        "kind": "HorizontalPodAutoscaler",
        "metadata": metadata,
        "spec": {
            "scaleTargetRef": scale_target_ref,
            "minReplicas": autoscaling.min_replicas,
            "maxReplicas": autoscaling.max_replicas,
            "metrics": metrics,
        },
    }
