import json
import logging

from flask import Flask, request

from appscale.apiServer.etcd import Etcd
from appscale.config.applicationConfig import ApplicationConfig
from appscale.config.etcdConfig import EtcdConfig
from appscale.config.uriConfig import URIConfig


class ApiServer:
    """
    Application / HPA / ConfigMap 的存储服务

    对象以 JSON 存在 etcd 中，etcd 的 mod_revision 作为 metadata.resourceVersion 返回。
    PUT 携带 resourceVersion 时为条件更新，版本不一致返回 409。
    """

    def __init__(self, uri_config: URIConfig, etcd_config: EtcdConfig, etcd=None):
        self.logger = logging.getLogger(__name__)
        self.logger.info("ApiServer starting...")
        self.uri_config = uri_config
        self.etcd_config = etcd_config

        self.app = Flask(__name__)
        self.etcd = etcd or Etcd(host=etcd_config.HOST, port=etcd_config.PORT)

        self.bind(uri_config)
        self.logger.info("ApiServer init success.")

    def bind(self, config):
        self.app.route("/", methods=["GET"])(self.index)

        # application相关
        self.app.route(config.GLOBAL_APPLICATIONS_URL, methods=["GET"])(
            self.get_global_applications
        )
        self.app.route(config.APPLICATIONS_URL, methods=["GET"])(self.get_applications)
        self.app.route(config.APPLICATION_SPEC_URL, methods=["GET"])(self.get_application)
        self.app.route(config.APPLICATION_SPEC_URL, methods=["POST"])(
            self.create_application
        )
        self.app.route(config.APPLICATION_SPEC_URL, methods=["PUT"])(
            self.update_application
        )
        self.app.route(config.APPLICATION_SPEC_URL, methods=["DELETE"])(
            self.delete_application
        )

        # hpa相关
        self.app.route(config.GLOBAL_HPA_URL, methods=["GET"])(self.get_global_hpas)
        self.app.route(config.HPA_URL, methods=["GET"])(self.get_hpas)
        self.app.route(config.HPA_SPEC_URL, methods=["GET"])(self.get_hpa)
        self.app.route(config.HPA_SPEC_URL, methods=["POST"])(self.create_hpa)
        self.app.route(config.HPA_SPEC_URL, methods=["PUT"])(self.update_hpa)
        self.app.route(config.HPA_SPEC_URL, methods=["DELETE"])(self.delete_hpa)

        # configmap相关
        self.app.route(config.CONFIGMAPS_URL, methods=["GET"])(self.get_configmaps)
        self.app.route(config.CONFIGMAP_SPEC_URL, methods=["GET"])(self.get_configmap)
        self.app.route(config.CONFIGMAP_SPEC_URL, methods=["POST"])(self.create_configmap)
        self.app.route(config.CONFIGMAP_SPEC_URL, methods=["PUT"])(self.update_configmap)
        self.app.route(config.CONFIGMAP_SPEC_URL, methods=["DELETE"])(
            self.delete_configmap
        )

    def run(self):
        self.logger.info("ApiServer running...")
        self.app.run(host="0.0.0.0", port=self.uri_config.PORT, threaded=True)

    def index(self):
        return "appscale ApiServer"

    # -------------------- 通用读写 --------------------

    @staticmethod
    def _with_version(obj, mod_revision):
        obj.setdefault("metadata", {})["resourceVersion"] = str(mod_revision)
        return obj

    def _list(self, prefix):
        return json.dumps(
            [self._with_version(obj, rev) for obj, rev in self.etcd.get_prefix(prefix)]
        )

    def _get(self, kind, key, name):
        obj, rev = self.etcd.get(key)
        if obj is None:
            return json.dumps({"error": f"{kind} {name} not found"}), 404
        return json.dumps(self._with_version(obj, rev))

    def _read_body(self, namespace, name):
        body = request.get_json(silent=True)
        if isinstance(body, str):
            try:
                body = json.loads(body)
            except ValueError:
                body = None
        if not isinstance(body, dict):
            return None, (json.dumps({"error": "request body must be a JSON object"}), 400)

        metadata = body.setdefault("metadata", {})
        if metadata.get("name", name) != name:
            return None, (json.dumps({"error": "Name in URL does not match name in body"}), 400)
        if metadata.get("namespace", namespace) != namespace:
            return None, (
                json.dumps({"error": "Namespace in URL does not match namespace in body"}),
                400,
            )
        metadata["name"] = name
        metadata["namespace"] = namespace
        return body, None

    def _create(self, kind, key, namespace, name, validate=None):
        self.logger.info("Create %s %s in namespace %s", kind, name, namespace)
        body, error = self._read_body(namespace, name)
        if error:
            return error
        if validate:
            try:
                validate(body)
            except ValueError as e:
                return json.dumps({"error": str(e)}), 400

        body["metadata"].pop("resourceVersion", None)
        rev = self.etcd.create(key, body)
        if rev is None:
            return json.dumps({"error": f"{kind} {name} already exists"}), 409
        return json.dumps(self._with_version(body, rev)), 201

    def _update(self, kind, key, namespace, name, validate=None):
        self.logger.info("Update %s %s in namespace %s", kind, name, namespace)
        body, error = self._read_body(namespace, name)
        if error:
            return error
        if validate:
            try:
                validate(body)
            except ValueError as e:
                return json.dumps({"error": str(e)}), 400

        current, current_rev = self.etcd.get(key)
        if current is None:
            return json.dumps({"error": f"{kind} {name} not found"}), 404

        expected = body["metadata"].pop("resourceVersion", None)
        if expected is None:
            # 不带版本号时退化为无条件覆盖
            expected = current_rev
        elif not str(expected).isdigit():
            return json.dumps({"error": f"invalid resourceVersion {expected!r}"}), 400
        rev = self.etcd.replace(key, body, expected)
        if rev is None:
            self.logger.warning(
                "Conflict updating %s %s/%s: resourceVersion %s is stale",
                kind, namespace, name, expected,
            )
            return json.dumps({"error": f"{kind} {name} has been modified"}), 409
        return json.dumps(self._with_version(body, rev))

    def _delete(self, kind, key, namespace, name):
        self.logger.info("Delete %s %s in namespace %s", kind, name, namespace)
        if not self.etcd.delete(key):
            return json.dumps({"error": f"{kind} {name} not found"}), 404
        return json.dumps({"message": f"{kind} {name} deleted successfully"})

    # -------------------- Application --------------------

    def get_global_applications(self):
        return self._list(self.etcd_config.GLOBAL_APPLICATIONS_KEY)

    def get_applications(self, namespace):
        return self._list(self.etcd_config.APPLICATIONS_KEY.format(namespace=namespace))

    def get_application(self, namespace, name):
        key = self.etcd_config.APPLICATION_SPEC_KEY.format(namespace=namespace, name=name)
        return self._get("Application", key, name)

    def create_application(self, namespace, name):
        key = self.etcd_config.APPLICATION_SPEC_KEY.format(namespace=namespace, name=name)
        return self._create("Application", key, namespace, name, validate=ApplicationConfig)

    def update_application(self, namespace, name):
        key = self.etcd_config.APPLICATION_SPEC_KEY.format(namespace=namespace, name=name)
        return self._update("Application", key, namespace, name, validate=ApplicationConfig)

    def delete_application(self, namespace, name):
        key = self.etcd_config.APPLICATION_SPEC_KEY.format(namespace=namespace, name=name)
        return self._delete("Application", key, namespace, name)

    # -------------------- HPA --------------------

    def get_global_hpas(self):
        return self._list(self.etcd_config.GLOBAL_HPA_KEY)

    def get_hpas(self, namespace):
        return self._list(self.etcd_config.HPA_KEY.format(namespace=namespace))

    def get_hpa(self, namespace, name):
        key = self.etcd_config.HPA_SPEC_KEY.format(namespace=namespace, name=name)
        return self._get("HPA", key, name)

    def create_hpa(self, namespace, name):
        key = self.etcd_config.HPA_SPEC_KEY.format(namespace=namespace, name=name)
        return self._create("HPA", key, namespace, name)

    def update_hpa(self, namespace, name):
        key = self.etcd_config.HPA_SPEC_KEY.format(namespace=namespace, name=name)
        return self._update("HPA", key, namespace, name)

    def delete_hpa(self, namespace, name):
        key = self.etcd_config.HPA_SPEC_KEY.format(namespace=namespace, name=name)
        return self._delete("HPA", key, namespace, name)

    # -------------------- ConfigMap --------------------

    def get_configmaps(self, namespace):
        return self._list(self.etcd_config.CONFIGMAPS_KEY.format(namespace=namespace))

    def get_configmap(self, namespace, name):
        key = self.etcd_config.CONFIGMAP_SPEC_KEY.format(namespace=namespace, name=name)
        return self._get("ConfigMap", key, name)

    def create_configmap(self, namespace, name):
        key = self.etcd_config.CONFIGMAP_SPEC_KEY.format(namespace=namespace, name=name)
        return self._create("ConfigMap", key, namespace, name)

    def update_configmap(self, namespace, name):
        key = self.etcd_config.CONFIGMAP_SPEC_KEY.format(namespace=namespace, name=name)
        return self._update("ConfigMap", key, namespace, name)

    def delete_configmap(self, namespace, name):
        key = self.etcd_config.CONFIGMAP_SPEC_KEY.format(namespace=namespace, name=name)
        return self._delete("ConfigMap", key, namespace, name)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    api_server = ApiServer(URIConfig, EtcdConfig)
    api_server.run()
