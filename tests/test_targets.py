import pytest

from ingress_aws.asg import TargetGroupWithLabels
from ingress_aws.targets import (
    CNIEndpoint,
    difference,
    get_registered_targets,
    non_targeted_asgs,
    register_and_deregister,
    set_targets_on_cni_target_groups,
)


class FakeError(RuntimeError):
    pass


class FakeELBv2:
    def __init__(self, target_ids=(), health_error=None, register_error=None,
                 deregister_error=None):
        self.target_ids = list(target_ids)
        self.health_error = health_error
        self.register_error = register_error
        self.deregister_error = deregister_error
        self.registered = []
        self.deregistered = []

    def describe_target_health(self, TargetGroupArn):
        if self.health_error:
            raise self.health_error
        return {
            "TargetHealthDescriptions": [
                {"Target": {"Id": target_id}} for target_id in self.target_ids
            ]
        }

    def register_targets(self, **kwargs):
        if self.register_error:
            raise self.register_error
        self.registered.append(kwargs)

    def deregister_targets(self, **kwargs):
        if self.deregister_error:
            raise self.deregister_error
        self.deregistered.append(kwargs)


def test_difference_keeps_order_of_first():
    assert difference(["a", "b", "c", "d"], ["c", "a"]) == ["b", "d"]


def test_difference_with_none():
    assert difference(None, ["a"]) == []
    assert difference(["a"], None) == ["a"]


def test_non_targeted_asgs():
    owned = {"a": None, "b": None, "c": None}
    targeted = {"b": None, "c": None, "d": None}
    assert non_targeted_asgs(owned, targeted) == {"a": None}


def test_get_registered_targets_error():
    svc = FakeELBv2(health_error=FakeError("error"))
    with pytest.raises(FakeError):
        get_registered_targets(svc, "none")


def test_get_registered_targets_ids():
    svc = FakeELBv2(target_ids=["asg1", "asg2", "blah"])
    assert get_registered_targets(svc, "none") == ["asg1", "asg2", "blah"]


def test_register_error():
    svc = FakeELBv2(register_error=FakeError("this is an error"))
    with pytest.raises(FakeError):
        register_and_deregister(svc, ["new"], ["old"], "none")


def test_deregister_error():
    svc = FakeELBv2(deregister_error=FakeError("this is an error"))
    with pytest.raises(FakeError):
        register_and_deregister(svc, ["new"], ["old"], "none")
    assert svc.registered == [{"TargetGroupArn": "none", "Targets": [{"Id": "new"}]}]


def test_nothing_to_register():
    svc = FakeELBv2(
        register_error=FakeError("this is an error"),
        deregister_error=FakeError("this is also an error"),
    )
    register_and_deregister(svc, ["same"], ["same"], "none")
    assert svc.registered == []
    assert svc.deregistered == []


def test_register_and_deregister_success():
    svc = FakeELBv2()
    register_and_deregister(svc, ["new"], ["old"], "none")
    assert svc.registered == [{"TargetGroupArn": "none", "Targets": [{"Id": "new"}]}]
    assert svc.deregistered == [{"TargetGroupArn": "none", "Targets": [{"Id": "old"}]}]


def test_set_targets_on_cni_target_groups_sequence():
    tgs = [TargetGroupWithLabels(arn="asg1")]
    svc = FakeELBv2()

    set_targets_on_cni_target_groups(svc, [CNIEndpoint("1.1.1.1")], tgs)
    assert svc.registered == [
        {"TargetGroupArn": "asg1", "Targets": [{"Id": "1.1.1.1"}]}
    ]
    assert svc.deregistered == []

    svc.target_ids = ["1.1.1.1"]
    svc.registered, svc.deregistered = [], []
    set_targets_on_cni_target_groups(
        svc,
        [CNIEndpoint("1.1.1.1"), CNIEndpoint("2.2.2.2"), CNIEndpoint("3.3.3.3")],
        tgs,
    )
    assert svc.registered[0]["Targets"] == [{"Id": "2.2.2.2"}, {"Id": "3.3.3.3"}]
    assert svc.deregistered == []

    svc.target_ids = ["1.1.1.1", "2.2.2.2", "3.3.3.3"]
    svc.registered, svc.deregistered = [], []
    set_targets_on_cni_target_groups(
        svc, [CNIEndpoint("1.1.1.1"), CNIEndpoint("3.3.3.3")], tgs
    )
    assert svc.registered == []
    assert svc.deregistered[0]["Targets"] == [{"Id": "2.2.2.2"}]

    svc.target_ids = ["1.1.1.1", "2.2.2.2", "4.4.4.4"]
    svc.registered, svc.deregistered = [], []
    set_targets_on_cni_target_groups(
        svc,
        [CNIEndpoint("1.1.1.1"), CNIEndpoint("2.2.2.2"), CNIEndpoint("3.3.3.3")],
        tgs,
    )
    assert svc.registered[0]["Targets"] == [{"Id": "3.3.3.3"}]
    assert svc.deregistered[0]["Targets"] == [{"Id": "4.4.4.4"}]


def test_set_targets_matches_label_and_namespace():
    tgs = [TargetGroupWithLabels(arn="tg", pod_namespace="ns", pod_label="app=x")]
    svc = FakeELBv2()
    set_targets_on_cni_target_groups(
        svc,
        [
            CNIEndpoint("1.1.1.1", namespace="ns", pod_label="app=x"),
            CNIEndpoint("2.2.2.2", namespace="other", pod_label="app=x"),
            CNIEndpoint("3.3.3.3", namespace="ns", pod_label="app=y"),
        ],
        tgs,
    )
    assert svc.registered == [{"TargetGroupArn": "tg", "Targets": [{"Id": "1.1.1.1"}]}]


def test_set_targets_skips_unreadable_target_group():
    svc = FakeELBv2(health_error=FakeError("error"))
    set_targets_on_cni_target_groups(
        svc, [CNIEndpoint("1.1.1.1")], [TargetGroupWithLabels(arn="asg1")]
    )
    assert svc.registered == []
    assert svc.deregistered == []