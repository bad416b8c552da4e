import pytest

import kubectl
from appscale.controller.autoscaleController import AutoscaleController


@pytest.fixture
def client(api_client):
    return kubectl.KubectlClient(api_client=api_client)


def test_apply_creates_then_configures(client, test_file, capsys):
    assert kubectl.main(["apply", "-f", test_file("application-web.yaml")], client=client) == 0
    assert kubectl.main(["apply", "-f", test_file("application-web.yaml")], client=client) == 0

    out = capsys.readouterr().out
    assert "application/app1 created" in out
    assert "application/app1 configured" in out


def test_get_applications(client, test_file, capsys):
    kubectl.main(["apply", "-f", test_file("application-web.yaml")], client=client)
    capsys.readouterr()

    assert kubectl.main(["-n", "ns1", "get", "applications"], client=client) == 0
    out = capsys.readouterr().out
    assert "app1" in out
    assert "web,worker" in out


def test_get_hpa_and_rules_after_reconcile(client, api_client, test_file, capsys):
    kubectl.main(["apply", "-f", test_file("application-web.yaml")], client=client)
    AutoscaleController(api_client=api_client).reconcile_all()
    capsys.readouterr()

    kubectl.main(["-A", "get", "hpa"], client=client)
    out = capsys.readouterr().out
    assert "app1-web-v1-hpa" in out
    assert "http_requests_avg_all: 100" in out
    assert "cpu: 80%" in out

    kubectl.main(["get", "rules"], client=client)
    out = capsys.readouterr().out
    assert 'http_requests{kubernetes_namespace="ns1"' in out
    assert "${1}_avg_all" in out


def test_get_rules_without_configmap(client, capsys):
    assert kubectl.main(["get", "rules"], client=client) == 0
    assert "No adapter rules found." in capsys.readouterr().out


def test_apply_rejects_other_kinds(client, tmp_path, capsys):
    manifest = tmp_path / "hpa.yaml"
    manifest.write_text("kind: HorizontalPodAutoscaler\nmetadata:\n  name: x\n")

    assert kubectl.main(["apply", "-f", str(manifest)], client=client) == 1
    assert "Unsupported resource kind" in capsys.readouterr().out


def test_apply_missing_file(client, capsys):
    assert kubectl.main(["apply", "-f", "/nonexistent/app.yaml"], client=client) == 1
    assert "Error:" in capsys.readouterr().out


def test_no_command_prints_help(client, capsys):
    assert kubectl.main([], client=client) == 0
    assert "usage" in capsys.readouterr().out
