import os


class URIString(str):
    def __new__(cls, string: str):
        assert (
            "{" not in string and "}" not in string
        ), "请使用 '/api/v1/<name>' 而非 '/api/v1/{name}' 初始化"
        return super().__new__(cls, string)

    def format(self, **kwargs):
        return self.__class__(
            super().replace("<", "{").replace(">", "}").format(**kwargs)
        )


class URIConfig:
    # API Server 地址，可通过环境变量覆盖
    HOST = os.getenv("APPSCALE_API_HOST", "localhost")
    PORT = int(os.getenv("APPSCALE_API_PORT", "5050"))

    # -------------------- 资源路径定义 --------------------
    # Application 相关
    GLOBAL_APPLICATIONS_URL = URIString("/apis/v1/applications")
    APPLICATIONS_URL = URIString("/apis/v1/namespaces/<namespace>/applications")
    APPLICATION_SPEC_URL = URIString(
        "/apis/v1/namespaces/<namespace>/applications/<name>"
    )

    # HPA 相关
    GLOBAL_HPA_URL = URIString("/apis/v1/hpas")
    HPA_URL = URIString("/apis/v1/namespaces/<namespace>/hpas")
    HPA_SPEC_URL = URIString("/apis/v1/namespaces/<namespace>/hpas/<name>")

    # ConfigMap 相关
    CONFIGMAPS_URL = URIString("/api/v1/namespaces/<namespace>/configmaps")
    CONFIGMAP_SPEC_URL = URIString("/api/v1/namespaces/<namespace>/configmaps/<name>")
