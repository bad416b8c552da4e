import copy
import os
import threading
from urllib.parse import urlsplit

import pytest
import requests
from requests.adapters import BaseAdapter
from requests.structures import CaseInsensitiveDict

from appscale.apiServer.apiClient import ApiClient, ConflictError, NotFoundError
from appscale.apiServer.apiServer import ApiServer
from appscale.config.etcdConfig import EtcdConfig
from appscale.config.uriConfig import URIConfig

TEST_FILE_PATH = os.path.join(os.path.dirname(os.path.abspath(__file__)), "testFile")


class MemoryResourceClient:
    """内存版 ResourceClient，带 resourceVersion 和 404/409 语义"""

    def __init__(self):
        self.objects = {}
        self.revision = 0
        self.lock = threading.Lock()
        self.writes = []

    @staticmethod
    def _key(obj):
        return obj["metadata"]["namespace"], obj["metadata"]["name"]

    def _store(self, key, obj):
        self.revision += 1
        stored = copy.deepcopy(obj)
        stored["metadata"]["resourceVersion"] = str(self.revision)
        self.objects[key] = stored
        return copy.deepcopy(stored)

    def get(self, namespace, name):
        with self.lock:
            if (namespace, name) not in self.objects:
                raise NotFoundError(f"{namespace}/{name} not found", 404)
            return copy.deepcopy(self.objects[(namespace, name)])

    def create(self, obj):
        with self.lock:
            key = self._key(obj)
            if key in self.objects:
                raise ConflictError(f"{key} already exists", 409)
            self.writes.append(("create", key))
            return self._store(key, obj)

    def update(self, obj):
        with self.lock:
            key = self._key(obj)
            if key not in self.objects:
                raise NotFoundError(f"{key} not found", 404)
            expected = obj["metadata"].get("resourceVersion")
            current = self.objects[key]["metadata"]["resourceVersion"]
            if expected is not None and expected != current:
                raise ConflictError(f"{key} has been modified", 409)
            self.writes.append(("update", key))
            return self._store(key, obj)

    def list(self, namespace=None):
        with self.lock:
            return [
                copy.deepcopy(obj)
                for (ns, _), obj in sorted(self.objects.items())
                if namespace is None or ns == namespace
            ]


class BarrierResourceClient(MemoryResourceClient):
    """前两次读取在 barrier 处汇合，保证两个写者基于同一个状态写入"""

    def __init__(self):
        super().__init__()
        self.barrier = threading.Barrier(2, timeout=5)
        self.reads = 0
        self.reads_lock = threading.Lock()

    def get(self, namespace, name):
        with self.reads_lock:
            self.reads += 1
            first_round = self.reads <= 2
        try:
            return super().get(namespace, name)
        finally:
            if first_round:
                self.barrier.wait()


class MemoryEtcd:
    """与 appscale.apiServer.etcd.Etcd 接口一致的内存实现"""

    def __init__(self):
        self.data = {}
        self.revision = 0
        self.lock = threading.Lock()

    def _put(self, key, val):
        self.revision += 1
        self.data[key] = (copy.deepcopy(val), self.revision)
        return self.revision

    def get(self, key):
        with self.lock:
            if key not in self.data:
                return None, None
            val, rev = self.data[key]
            return copy.deepcopy(val), rev

    def get_prefix(self, prefix):
        with self.lock:
            return [
                (copy.deepcopy(val), rev)
                for key, (val, rev) in sorted(self.data.items())
                if key.startswith(prefix)
            ]

    def create(self, key, val):
        with self.lock:
            if key in self.data:
                return None
            return self._put(key, val)

    def replace(self, key, val, mod_revision):
        with self.lock:
            if key not in self.data or self.data[key][1] != int(mod_revision):
                return None
            return self._put(key, val)

    def delete(self, key):
        with self.lock:
            return self.data.pop(key, None) is not None


class FlaskTestAdapter(BaseAdapter):
    """把 requests 的请求转发给 Flask test client"""

    def __init__(self, app):
        super().__init__()
        self.client = app.test_client()

    def send(self, request, **kwargs):
        url = urlsplit(request.url)
        result = self.client.open(
            url.path,
            method=request.method,
            query_string=url.query,
            data=request.body,
            headers={"Content-Type": request.headers.get("Content-Type", "application/json")},
        )
        response = requests.Response()
        response.status_code = result.status_code
        response._content = result.get_data()
        response.headers = CaseInsensitiveDict(result.headers)
        response.encoding = "utf-8"
        response.url = request.url
        response.request = request
        return response

    def close(self):
        pass


@pytest.fixture
def resource_client_class():
    return MemoryResourceClient


@pytest.fixture
def barrier_client():
    return BarrierResourceClient()


@pytest.fixture
def hpa_client():
    return MemoryResourceClient()


@pytest.fixture
def configmap_client():
    return MemoryResourceClient()


@pytest.fixture
def memory_etcd():
    return MemoryEtcd()


@pytest.fixture
def api_server(memory_etcd):
    return ApiServer(URIConfig, EtcdConfig, etcd=memory_etcd)


@pytest.fixture
def flask_client(api_server):
    return api_server.app.test_client()


@pytest.fixture
def api_client(api_server):
    session = requests.Session()
    session.mount("http://", FlaskTestAdapter(api_server.app))
    return ApiClient("apiserver.test", 5050, session=session)


@pytest.fixture
def test_file():
    def path(name):
        return os.path.join(TEST_FILE_PATH, name)

    return path
