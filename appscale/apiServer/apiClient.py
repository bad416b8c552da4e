import logging
import time

import requests
from requests.exceptions import RequestException


class ApiError(Exception):
    """API Server 返回错误或请求失败"""

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.status_code = status_code


class NotFoundError(ApiError):
    pass


class ConflictError(ApiError):
    """资源已存在，或 resourceVersion 已过期"""


class ApiClient:
    """
    统一的API Client类，负责处理与API Server的通信
    只处理基本连接逻辑，具体URI路径由调用者提供
    """

    def __init__(self, host="localhost", port=5050, max_retries=3, retry_delay=2, session=None):
        """
        初始化ApiClient

        Args:
            host: API Server主机地址
            port: API Server端口
            max_retries: 连接失败时的最大重试次数
            retry_delay: 重试延迟(秒)
            session: 可选的 requests.Session
        """
        self.logger = logging.getLogger(__name__)
        self.base_url = f"http://{host}:{port}"
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.session = session or requests.Session()
        self.logger.info("API Client initialized with base URL: %s", self.base_url)

    def _make_request(self, method, path, json_data=None, params=None):
        """
        发送HTTP请求并处理重试逻辑

        只有网络层失败会重试，HTTP 错误状态直接映射为异常：
        404 -> NotFoundError，409 -> ConflictError，其它 -> ApiError

        Returns:
            dict or list: 解析后的JSON响应，无内容时为 None
        """
        url = f"{self.base_url}{path}"
        retries = 0

        while True:
            try:
                response = self.session.request(
                    method=method,
                    url=url,
                    json=json_data,
                    params=params,
                    timeout=(3.0, 10.0),  # (连接超时, 读取超时)
                )
                break
            except RequestException as e:
                retries += 1
                if retries >= self.max_retries:
                    self.logger.error(
                        "Request failed after %s attempts: %s", self.max_retries, url
                    )
                    raise ApiError(f"{method} {url} failed: {e}") from e
                self.logger.warning(
                    "Request failed (%s/%s), retrying in %ss: %s: %s",
                    retries, self.max_retries, self.retry_delay, url, e,
                )
                time.sleep(self.retry_delay)

        if response.status_code == 404:
            raise NotFoundError(self._error_message(response), 404)
        if response.status_code == 409:
            raise ConflictError(self._error_message(response), 409)
        if response.status_code >= 400:
            raise ApiError(self._error_message(response), response.status_code)

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise ApiError(f"{method} {url} returned invalid JSON") from e

    @staticmethod
    def _error_message(response):
        try:
            return response.json().get("error", response.text)
        except ValueError:
            return response.text

    def get(self, path, params=None):
        return self._make_request("GET", path, params=params)

    def post(self, path, data):
        return self._make_request("POST", path, json_data=data)

    def put(self, path, data):
        return self._make_request("PUT", path, json_data=data)


class ResourceClient:
    """
    某一类资源的 get / create / update / list 访问器
    """

    def __init__(self, api_client, spec_url, list_url=None, global_url=None):
        self.api_client = api_client
        self.spec_url = spec_url
        self.list_url = list_url
        self.global_url = global_url

    def _path(self, namespace, name):
        return self.spec_url.format(namespace=namespace, name=name)

    def get(self, namespace, name):
        return self.api_client.get(self._path(namespace, name))

    def create(self, obj):
        metadata = obj["metadata"]
        return self.api_client.post(self._path(metadata["namespace"], metadata["name"]), obj)

    def update(self, obj):
        metadata = obj["metadata"]
        return self.api_client.put(self._path(metadata["namespace"], metadata["name"]), obj)

    def list(self, namespace=None):
        """namespace 为 None 时列出所有命名空间"""
        if namespace is None:
            return self.api_client.get(self.global_url) or []
        return self.api_client.get(self.list_url.format(namespace=namespace)) or []
