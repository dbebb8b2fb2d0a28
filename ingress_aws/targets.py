"""Registration of load balancer targets and related set arithmetic."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, TypeVar

from .asg import TargetGroupWithLabels

log = logging.getLogger(__name__)

_V = TypeVar("_V")


@dataclass(frozen=True)
class CNIEndpoint:
    """A pod endpoint reachable directly by its IP address."""

    ip_address: str
    namespace: str = ""
    pod_label: str = ""


def difference(a: Iterable[str] | None, b: Iterable[str] | None) -> list[str]:
    """Return the elements of a that are not in b, keeping the order of a."""
    excluded = set(b or ())
    return [item for item in a or () if item not in excluded]


def non_targeted_asgs(
    owned_asgs: Mapping[str, _V], targeted_asgs: Mapping[str, Any]
) -> dict[str, _V]:
    """Return the owned auto scaling groups that are not targeted."""
    return {
        name: asg for name, asg in owned_asgs.items() if name not in targeted_asgs
    }


def get_registered_targets(elbv2_svc: Any, tg_arn: str) -> list[str]:
    """Return the IDs of the targets registered in the target group."""
    try:
        resp = elbv2_svc.describe_target_health(TargetGroupArn=tg_arn)
    except Exception as exc:
        log.error("unable to describe target health %s", exc)
        raise
    return [
        description["Target"]["Id"]
        for description in resp.get("TargetHealthDescriptions") or []
    ]


def _targets(ids: Sequence[str]) -> list[dict[str, str]]:
    return [{"Id": target_id} for target_id in ids]


def _register_targets(
    elbv2_svc: Any, target_group_arns: Sequence[str], ids: Sequence[str]
) -> None:
    for arn in target_group_arns:
        elbv2_svc.register_targets(TargetGroupArn=arn, Targets=_targets(ids))


def _deregister_targets(
    elbv2_svc: Any, target_group_arns: Sequence[str], ids: Sequence[str]
) -> None:
    for arn in target_group_arns:
        elbv2_svc.deregister_targets(TargetGroupArn=arn, Targets=_targets(ids))


def register_and_deregister(
    elbv2_svc: Any,
    new: Sequence[str] | None,
    old: Sequence[str] | None,
    tg_arn: str,
) -> None:
    """Register targets in new but not old, then deregister those only in old."""
    to_register = difference(new, old)
    if to_register:
        log.info("Registering CNI targets: %s", to_register)
        _register_targets(elbv2_svc, [tg_arn], to_register)
    to_deregister = difference(old, new)
    if to_deregister:
        log.info("Deregistering CNI targets: %s", to_deregister)
        _deregister_targets(elbv2_svc, [tg_arn], to_deregister)


def set_targets_on_cni_target_groups(
    elbv2_svc: Any,
    endpoints: Sequence[CNIEndpoint],
    cni_target_groups: Sequence[TargetGroupWithLabels],
) -> None:
    """Bring each CNI target group to exactly the endpoints matching its pods.

    Target groups whose current targets cannot be read are skipped.
    """
    log.debug("setting targets on CNI target groups: %r", cni_target_groups)
    for target_group in cni_target_groups:
        try:
            registered = get_registered_targets(elbv2_svc, target_group.arn)
        except Exception:  # already logged; try again on the next cycle
            continue
        matching = [
            endpoint.ip_address
            for endpoint in endpoints
            if endpoint.pod_label == target_group.pod_label
            and endpoint.namespace == target_group.pod_namespace
        ]
        register_and_deregister(elbv2_svc, matching, registered, target_group.arn)