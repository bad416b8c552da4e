import os


class EtcdConfig:
    # Etcd 地址
    HOST = os.getenv("APPSCALE_ETCD_HOST", "localhost")
    PORT = os.getenv("APPSCALE_ETCD_PORT", "2379")

    # -------------------- 资源键值定义 --------------------
    GLOBAL_APPLICATIONS_KEY = "/apis/v1/namespaces/applications"
    APPLICATIONS_KEY = "/apis/v1/namespaces/applications/{namespace}/"
    APPLICATION_SPEC_KEY = "/apis/v1/namespaces/applications/{namespace}/{name}"

    GLOBAL_HPA_KEY = "/apis/v1/namespaces/hpa"
    HPA_KEY = "/apis/v1/namespaces/hpa/{namespace}/"
    HPA_SPEC_KEY = "/apis/v1/namespaces/hpa/{namespace}/{name}"

    CONFIGMAPS_KEY = "/api/v1/namespaces/configmaps/{namespace}/"
    CONFIGMAP_SPEC_KEY = "/api/v1/namespaces/configmaps/{namespace}/{name}"

