import logging
import threading

from appscale.apiObject.discoveryRule import generate_rule
from appscale.apiObject.hpa import generate_hpa, hpa_name, workload_name
from appscale.apiObject.metricExpression import is_resource_metric, parse_metric_expression
from appscale.apiServer.apiClient import ApiClient, ResourceClient
from appscale.config.applicationConfig import ApplicationConfig
from appscale.config.autoscaleConfig import AutoscaleConfig
from appscale.config.uriConfig import URIConfig
from appscale.controller.applier import Applier
from appscale.controller.ruleSetSync import RuleSetSync


class ReconcileCancelled(Exception):
    """控制器停止时中断正在进行的协调"""


class AutoscaleController:
    def __init__(
        self,
        uri_config=None,
        api_client=None,
        hpa_client=None,
        configmap_client=None,
        application_client=None,
        reconcile_interval=AutoscaleConfig.RECONCILE_INTERVAL,
    ):
        """初始化自动扩缩容控制器"""
        self.logger = logging.getLogger(__name__)
        self.logger.info("AutoscaleController initializing...")
        self.uri_config = uri_config or URIConfig()
        if api_client is None and None in (hpa_client, configmap_client, application_client):
            api_client = ApiClient(self.uri_config.HOST, self.uri_config.PORT)

        self.hpa_client = hpa_client or ResourceClient(
            api_client,
            self.uri_config.HPA_SPEC_URL,
            self.uri_config.HPA_URL,
            self.uri_config.GLOBAL_HPA_URL,
        )
        self.configmap_client = configmap_client or ResourceClient(
            api_client, self.uri_config.CONFIGMAP_SPEC_URL, self.uri_config.CONFIGMAPS_URL
        )
        self.application_client = application_client or ResourceClient(
            api_client,
            self.uri_config.APPLICATION_SPEC_URL,
            self.uri_config.APPLICATIONS_URL,
            self.uri_config.GLOBAL_APPLICATIONS_URL,
        )

        self.rule_set_sync = RuleSetSync(self.configmap_client)
        self.applier = Applier(self.hpa_client)

        # 控制器状态
        self.reconcile_interval = reconcile_interval
        self.stop_event = threading.Event()
        self.main_thread = None

    @staticmethod
    def _check_cancelled(cancel_event):
        if cancel_event is not None and cancel_event.is_set():
            raise ReconcileCancelled("reconcile cancelled before write")

    def reconcile(self, component, application, owner_ref=None, cancel_event=None):
        """
        协调单个组件的 adapter 规则和 HPA

        组件没有 autoscaling 配置时直接跳过。任何一步失败都直接抛出，不回滚已完成的步骤，
        下一次协调会补齐。
        """
        autoscaling = component.autoscaling
        target = f"{application.namespace}:{application.name}-{component.name}"
        if autoscaling.is_empty():
            self.logger.debug("This app don't need to configure autoscale for %s", target)
            return None

        def before_write():
            self._check_cancelled(cancel_event)

        self._check_cancelled(cancel_event)
        descriptor = parse_metric_expression(autoscaling.metric)
        workload = workload_name(application.name, component)

        if descriptor is not None:
            self.logger.info("Sync autoscale configmap for %s", target)
            rule = generate_rule(descriptor, application.namespace, workload)
            self.rule_set_sync.sync(rule, before_write=before_write)
        elif not is_resource_metric(autoscaling.metric):
            self.logger.warning(
                "Skip autoscale for %s: unsupported metric %r", target, autoscaling.metric
            )
            return None

        self.logger.info("Sync autoscale for %s", target)
        hpa = generate_hpa(
            autoscaling,
            descriptor,
            name=hpa_name(application.name, component),
            namespace=application.namespace,
            scale_target_name=workload,
            owner_ref=owner_ref or application.owner_reference(),
        )
        return self.applier.apply(hpa, before_write=before_write)

    def reconcile_application(self, application, cancel_event=None):
        """
        协调 Application 的所有组件，单个组件失败不影响其它组件，结束后抛出第一个错误
        """
        first_error = None
        for component in application.components:
            try:
                self.reconcile(component, application, cancel_event=cancel_event)
            except ReconcileCancelled:
                raise
            except Exception as e:
                self.logger.error(
                    "Reconcile %s/%s component %s failed: %s",
                    application.namespace, application.name, component.name, e,
                )
                if first_error is None:
                    first_error = e
        if first_error is not None:
            raise first_error

    def reconcile_all(self):
        """协调所有 Application"""
        self.logger.info("Reconciling applications...")
        for app_json in self.application_client.list():
            try:
                application = ApplicationConfig(app_json)
                self.reconcile_application(application, cancel_event=self.stop_event)
            except ReconcileCancelled:
                raise
            except Exception as e:
                name = (app_json.get("metadata") or {}).get("name")
                self.logger.error("Error reconciling application %s: %s", name, e)

    def main_loop(self):
        """控制器主循环"""
        self.logger.info("AutoscaleController main loop started")

        while not self.stop_event.is_set():
            try:
                self.reconcile_all()
            except ReconcileCancelled:
                break
            except Exception:
                self.logger.exception("Unhandled exception in main loop")

            # 等待下一次循环
            self.stop_event.wait(self.reconcile_interval)

        self.logger.info("AutoscaleController main loop terminated")

    def start(self):
        """启动控制器"""
        if self.main_thread is not None and self.main_thread.is_alive():
            self.logger.info("AutoscaleController is already running")
            return

        self.stop_event.clear()
        self.main_thread = threading.Thread(target=self.main_loop, daemon=True)
        self.main_thread.start()
        self.logger.info("AutoscaleController started")

    def stop(self):
        """停止控制器"""
        if self.main_thread is None:
            self.logger.info("AutoscaleController is not running")
            return

        self.logger.info("Stopping AutoscaleController...")
        self.stop_event.set()
        if self.main_thread.is_alive():
            self.main_thread.join(timeout=10)
        self.main_thread = None
        self.logger.info("AutoscaleController stopped")
