import os


class AutoscaleConfig:
    """
    自动扩缩容相关的全局配置
    """

    # metrics adapter 的共享规则配置，整个集群只有一份
    ADAPTER_NAMESPACE = "monitoring"
    ADAPTER_CONFIGMAP = "adapter-config"
    ADAPTER_CONFIG_KEY = "config.yaml"

    # 记录上一次写入的期望状态
    LAST_APPLIED_ANNOTATION = "appscale.io/last-applied-configuration"

    # 共享 ConfigMap 写冲突时的最大尝试次数
    CONFLICT_RETRIES = 5

    # 控制器轮询间隔（秒）
    RECONCILE_INTERVAL = int(os.getenv("RECONCILE_INTERVAL", "15"))

    LOG_LEVEL = os.getenv("LOG_LEVEL", "info")
    LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    DEBUG_LOG_FORMAT = (
        "%(asctime)s - %(name)s - %(levelname)s - %(filename)s:%(lineno)d - %(message)s"
    )
