#!/usr/bin/env python3
"""
kubectl - appscale 命令行工具
支持 Application 的提交，以及 HPA、metrics adapter 规则的查看
"""

import argparse
import json
import sys

import yaml

from appscale.apiObject.discoveryRule import RuleSet
from appscale.apiServer.apiClient import ApiClient, ApiError, NotFoundError, ResourceClient
from appscale.config.applicationConfig import ApplicationConfig
from appscale.config.autoscaleConfig import AutoscaleConfig
from appscale.config.uriConfig import URIConfig


class KubectlClient:
    """kubectl 客户端主类"""

    def __init__(self, api_client=None, uri_config=None):
        self.uri_config = uri_config or URIConfig()
        self.api_client = api_client or ApiClient(self.uri_config.HOST, self.uri_config.PORT)
        self.default_namespace = "default"

        self.applications = ResourceClient(
            self.api_client,
            self.uri_config.APPLICATION_SPEC_URL,
            self.uri_config.APPLICATIONS_URL,
            self.uri_config.GLOBAL_APPLICATIONS_URL,
        )
        self.hpas = ResourceClient(
            self.api_client,
            self.uri_config.HPA_SPEC_URL,
            self.uri_config.HPA_URL,
            self.uri_config.GLOBAL_HPA_URL,
        )
        self.configmaps = ResourceClient(
            self.api_client, self.uri_config.CONFIGMAP_SPEC_URL, self.uri_config.CONFIGMAPS_URL
        )

    def format_table_output(self, headers: list, rows: list) -> str:
        """
        格式化表格输出，模仿 kubectl 的输出格式
        """
        if not rows:
            return ""

        col_widths = [len(str(header)) for header in headers]
        for row in rows:
            for i, cell in enumerate(row):
                col_widths[i] = max(col_widths[i], len(str(cell)))

        lines = ["  ".join(str(h).ljust(col_widths[i]) for i, h in enumerate(headers))]
        for row in rows:
            lines.append("  ".join(str(c).ljust(col_widths[i]) for i, c in enumerate(row)))
        return "\n".join(line.rstrip() for line in lines)

    def apply_from_file(self, filename: str) -> None:
        """提交 Application，不存在则创建，存在则更新"""
        with open(filename, "r", encoding="utf-8") as f:
            if filename.endswith(".yaml") or filename.endswith(".yml"):
                resource_data = yaml.safe_load(f)
            else:
                resource_data = json.load(f)

        if not isinstance(resource_data, dict):
            raise ValueError(f"Invalid resource format in '{filename}'")
        kind = resource_data.get("kind", "Application")
        if kind != "Application":
            raise ValueError(f"Unsupported resource kind '{kind}'")

        resource_data.setdefault("metadata", {}).setdefault("namespace", self.default_namespace)
        application = ApplicationConfig(resource_data)
        body = application.to_dict()

        try:
            current = self.applications.get(application.namespace, application.name)
        except NotFoundError:
            self.applications.create(body)
            print(f"application/{application.name} created")
            return

        body["metadata"]["resourceVersion"] = current["metadata"]["resourceVersion"]
        self.applications.update(body)
        print(f"application/{application.name} configured")

    def get_applications(self, namespace: str = None, all_namespaces: bool = False) -> None:
        """获取 Application 列表"""
        apps = self.applications.list(None if all_namespaces else (namespace or self.default_namespace))
        if not apps:
            print("No applications found.")
            return

        headers = ["NAMESPACE", "NAME", "COMPONENTS", "AUTOSCALED"]
        rows = []
        for app_json in apps:
            app = ApplicationConfig(app_json)
            autoscaled = [c.name for c in app.components if not c.autoscaling.is_empty()]
            rows.append([app.namespace, app.name, len(app.components), ",".join(autoscaled) or "<none>"])
        print(self.format_table_output(headers, rows))

    @staticmethod
    def _format_targets(metrics):
        targets = []
        for metric in metrics:
            if metric.get("type") == "Resource":
                resource = metric.get("resource", {})
                targets.append(f"{resource.get('name')}: {resource.get('target', {}).get('averageUtilization')}%")
            elif metric.get("type") == "Pods":
                pods = metric.get("pods", {})
                targets.append(f"{pods.get('metric', {}).get('name')}: {pods.get('target', {}).get('averageValue')}")
        return ", ".join(targets) if targets else "<unknown>"

    def get_hpa(self, namespace: str = None, all_namespaces: bool = False) -> None:
        """获取 HPA 列表"""
        hpas = self.hpas.list(None if all_namespaces else (namespace or self.default_namespace))
        if not hpas:
            print("No hpa found.")
            return

        headers = ["NAMESPACE", "NAME", "REFERENCE", "TARGETS", "MINPODS", "MAXPODS"]
        rows = []
        for hpa in hpas:
            metadata = hpa.get("metadata", {})
            spec = hpa.get("spec", {})
            target_ref = spec.get("scaleTargetRef", {})
            rows.append([
                metadata.get("namespace"),
                metadata.get("name"),
                f"{target_ref.get('kind')}/{target_ref.get('name')}",
                self._format_targets(spec.get("metrics", [])),
                spec.get("minReplicas"),
                spec.get("maxReplicas"),
            ])
        print(self.format_table_output(headers, rows))

    def get_rules(self) -> None:
        """查看 metrics adapter 的共享规则"""
        try:
            configmap = self.configmaps.get(
                AutoscaleConfig.ADAPTER_NAMESPACE, AutoscaleConfig.ADAPTER_CONFIGMAP
            )
        except NotFoundError:
            print("No adapter rules found.")
            return

        rule_set = RuleSet.from_yaml((configmap.get("data") or {}).get(AutoscaleConfig.ADAPTER_CONFIG_KEY, ""))
        if not rule_set.rules:
            print("No adapter rules found.")
            return
        headers = ["SERIES QUERY", "NAME", "METRICS QUERY"]
        rows = [[r.series_query, r.name_as, r.metrics_query or "<empty>"] for r in rule_set.rules]
        print(self.format_table_output(headers, rows))


def main(argv=None, client=None):
    """主函数 - 解析命令行参数并执行相应操作"""
    parser = argparse.ArgumentParser(description="kubectl - appscale 命令行工具")
    subparsers = parser.add_subparsers(dest="command", help="可用命令")

    # 全局参数
    parser.add_argument("--namespace", "-n", default="default", help="指定命名空间")
    parser.add_argument("--all-namespaces", "-A", action="store_true", help="查看所有命名空间")

    # get 命令
    get_parser = subparsers.add_parser("get", help="显示一个或多个资源")
    get_parser.add_argument(
        "resource", choices=["applications", "app", "hpa", "rules"], help="资源类型"
    )

    # apply 命令
    apply_parser = subparsers.add_parser("apply", help="通过文件对 Application 进行配置")
    apply_parser.add_argument("-f", "--filename", required=True, help="文件名")

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 0

    kubectl = client or KubectlClient()
    kubectl.default_namespace = args.namespace

    try:
        if args.command == "get":
            if args.resource in ["applications", "app"]:
                kubectl.get_applications(namespace=args.namespace, all_namespaces=args.all_namespaces)
            elif args.resource == "hpa":
                kubectl.get_hpa(namespace=args.namespace, all_namespaces=args.all_namespaces)
            elif args.resource == "rules":
                kubectl.get_rules()

        elif args.command == "apply":
            kubectl.apply_from_file(args.filename)

    except KeyboardInterrupt:
        print("\nOperation cancelled by user")
        return 1
    except (ApiError, ValueError, OSError, yaml.YAMLError) as e:
        print(f"Error: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
