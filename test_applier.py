import pytest

from appscale.apiServer.apiClient import ApiError
from appscale.config.autoscaleConfig import AutoscaleConfig
from appscale.controller.applier import ACTION, Applier, canonical_snapshot, stored_snapshot

ANNOTATION = AutoscaleConfig.LAST_APPLIED_ANNOTATION


def desired_hpa(max_replicas=5):
    return {
        "apiVersion": "autoscaling/v2",
        "kind": "HorizontalPodAutoscaler",
        "metadata": {"name": "app1-web-v1-hpa", "namespace": "ns1"},
        "spec": {"minReplicas": 1, "maxReplicas": max_replicas, "metrics": []},
    }


def test_snapshot_is_independent_of_key_order():
    a = {"metadata": {"name": "x", "namespace": "y"}, "spec": {"a": 1, "b": [1, 2]}}
    b = {"spec": {"b": [1, 2], "a": 1}, "metadata": {"namespace": "y", "name": "x"}}
    assert canonical_snapshot(a) == canonical_snapshot(b)


def test_snapshot_ignores_managed_fields():
    plain = desired_hpa()
    live = desired_hpa()
    live["metadata"]["resourceVersion"] = "42"
    live["metadata"]["annotations"] = {ANNOTATION: "old"}
    assert canonical_snapshot(live) == canonical_snapshot(plain)
    # 不修改入参
    assert live["metadata"]["resourceVersion"] == "42"


def test_snapshot_changes_with_content():
    assert canonical_snapshot(desired_hpa(5)) != canonical_snapshot(desired_hpa(6))


def test_create_then_noop(hpa_client):
    applier = Applier(hpa_client)

    assert applier.apply(desired_hpa()) == ACTION.CREATE
    assert applier.apply(desired_hpa()) == ACTION.NOOP
    assert hpa_client.writes == [("create", ("ns1", "app1-web-v1-hpa"))]

    live = hpa_client.get("ns1", "app1-web-v1-hpa")
    assert stored_snapshot(live) == canonical_snapshot(desired_hpa())


def test_update_carries_resource_version(hpa_client):
    applier = Applier(hpa_client)
    applier.apply(desired_hpa(5))
    before = hpa_client.get("ns1", "app1-web-v1-hpa")

    assert applier.apply(desired_hpa(8)) == ACTION.UPDATE

    after = hpa_client.get("ns1", "app1-web-v1-hpa")
    assert after["spec"]["maxReplicas"] == 8
    assert after["metadata"]["resourceVersion"] != before["metadata"]["resourceVersion"]
    assert stored_snapshot(after) == canonical_snapshot(desired_hpa(8))
    assert applier.apply(desired_hpa(8)) == ACTION.NOOP


def test_live_object_without_snapshot_is_updated(hpa_client):
    hpa_client.create(desired_hpa())
    assert Applier(hpa_client).apply(desired_hpa()) == ACTION.UPDATE


def test_custom_fetch_existing(hpa_client):
    applier = Applier(hpa_client)
    assert applier.apply(desired_hpa(), fetch_existing=lambda: None) == ACTION.CREATE
    live = hpa_client.get("ns1", "app1-web-v1-hpa")
    assert applier.apply(desired_hpa(), fetch_existing=lambda: live) == ACTION.NOOP


def test_store_failure_propagates(hpa_client):
    class FailingClient(type(hpa_client)):
        def create(self, obj):
            raise ApiError("boom", 500)

    with pytest.raises(ApiError):
        Applier(FailingClient()).apply(desired_hpa())


def test_before_write_hook_can_abort(hpa_client):
    def abort():
        raise RuntimeError("cancelled")

    with pytest.raises(RuntimeError):
        Applier(hpa_client).apply(desired_hpa(), before_write=abort)
    assert hpa_client.writes == []
