"""Auto scaling groups and their attachment to load balancer target groups."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator, Sequence
from dataclasses import dataclass, field
from typing import Any

log = logging.getLogger(__name__)

POD_LABEL_TAG = "pod-label"
POD_NAMESPACE_TAG = "pod-namespace"

# AWS limits on the number of resources per call.
DESCRIBE_TAGS_CHUNK_SIZE = 20
TARGET_GROUPS_CHUNK_SIZE = 10


@dataclass
class AutoScalingGroupDetails:
    """What the controller needs to know about an auto scaling group."""

    name: str
    arn: str = ""
    target_groups: list[str] = field(default_factory=list)
    launch_configuration_name: str = ""
    tags: dict[str, str] = field(default_factory=dict)


@dataclass
class TargetGroupWithLabels:
    """A target group together with the pod selector it was created for."""

    arn: str
    pod_namespace: str = ""
    pod_label: str = ""


def _tags_to_dict(tags: Sequence[dict] | None) -> dict[str, str]:
    return {tag.get("Key", ""): tag.get("Value", "") for tag in tags or []}


def _details_from_group(group: dict) -> AutoScalingGroupDetails:
    return AutoScalingGroupDetails(
        name=group.get("AutoScalingGroupName", ""),
        arn=group.get("AutoScalingGroupARN", ""),
        target_groups=list(group.get("TargetGroupARNs") or []),
        launch_configuration_name=group.get("LaunchConfigurationName", ""),
        tags=_tags_to_dict(group.get("Tags")),
    )


def get_auto_scaling_group_by_name(service: Any, name: str) -> AutoScalingGroupDetails:
    """Describe one auto scaling group; raise LookupError if it does not exist."""
    resp = service.describe_auto_scaling_groups(AutoScalingGroupNames=[name])
    for group in resp.get("AutoScalingGroups") or []:
        if group.get("AutoScalingGroupName", "") == name:
            return _details_from_group(group)
    raise LookupError(f"auto scaling group {name!r} not found")


def get_auto_scaling_groups_by_name(
    service: Any, names: Sequence[str]
) -> dict[str, AutoScalingGroupDetails]:
    """Describe the named groups; raise LookupError if any of them is missing."""
    resp = service.describe_auto_scaling_groups(AutoScalingGroupNames=list(names))
    result = {
        details.name: details
        for details in map(_details_from_group, resp.get("AutoScalingGroups") or [])
    }
    for name in names:
        if name not in result:
            raise LookupError(f"auto scaling group {name!r} not found")
    return result


def match_filter_tags(
    filter_tags: dict[str, list[str]], asg_tags: dict[str, str]
) -> bool:
    """True if every filter tag is present on the group with an accepted value.

    An empty list of accepted values only requires the tag to be present.
    """
    for key, accepted in filter_tags.items():
        if key not in asg_tags:
            return False
        if accepted and asg_tags[key] not in accepted:
            return False
    return True


def _auto_scaling_group_pages(service: Any) -> Iterator[dict]:
    request: dict[str, Any] = {}
    while True:
        page = service.describe_auto_scaling_groups(**request)
        yield page
        token = page.get("NextToken")
        if not token:
            return
        request = {"NextToken": token}


def get_owned_and_targeted_auto_scaling_groups(
    service: Any, filter_tags: dict[str, list[str]], owned_tags: dict[str, str]
) -> tuple[dict[str, AutoScalingGroupDetails], dict[str, AutoScalingGroupDetails]]:
    """Return (targeted, owned) groups, keyed by name, across all pages."""
    targeted: dict[str, AutoScalingGroupDetails] = {}
    owned: dict[str, AutoScalingGroupDetails] = {}
    for page in _auto_scaling_group_pages(service):
        for group in page.get("AutoScalingGroups") or []:
            details = _details_from_group(group)
            if has_tags(group.get("Tags") or [], owned_tags):
                owned[details.name] = details
            if match_filter_tags(filter_tags, details.tags):
                targeted[details.name] = details
    return targeted, owned


def update_target_groups_for_auto_scaling_group(
    svc: Any,
    elbv2_svc: Any,
    target_group_arns: Sequence[str],
    auto_scaling_group_name: str,
    owner_tags: dict[str, str],
) -> None:
    """Attach the given target groups to the group and detach obsolete ones.

    Attached target groups that no longer exist are detached, as are those
    owned by the controller (carrying owner_tags) that are not wanted any more.
    """
    resp = svc.describe_load_balancer_target_groups(
        AutoScalingGroupName=auto_scaling_group_name
    )
    all_tgs = describe_target_groups(elbv2_svc)
    attached = resp.get("LoadBalancerTargetGroups") or []

    if attached:
        detach_arns: list[str] = []
        valid_arns: list[str] = []
        for tg in attached:
            arn = tg.get("LoadBalancerTargetGroupARN", "")
            (valid_arns if arn in all_tgs else detach_arns).append(arn)

        descriptions = describe_tags(elbv2_svc, valid_arns)
        detach_arns.extend(
            arn
            for arn in valid_arns
            if tg_has_tags(descriptions, arn, owner_tags)
            and arn not in target_group_arns
        )
        if detach_arns:
            detach_target_groups_from_auto_scaling_group(
                svc, detach_arns, auto_scaling_group_name
            )

    attach_arns = []
    for arn in target_group_arns:
        if arn in all_tgs:
            attach_arns.append(arn)
        else:
            log.error("Target group %r does not exist, will not attach", arn)
    if attach_arns:
        attach_target_groups_to_auto_scaling_group(
            svc, attach_arns, auto_scaling_group_name
        )


def describe_tags(svc: Any, arns: Sequence[str]) -> list[dict]:
    """Return the tag descriptions of the resources, querying in chunks of 20."""
    descriptions: list[dict] = []

    def fetch(chunk: list[str]) -> None:
        resp = svc.describe_tags(ResourceArns=chunk)
        descriptions.extend(resp.get("TagDescriptions") or [])

    process_chunked(arns, DESCRIBE_TAGS_CHUNK_SIZE, fetch)
    return descriptions


def _target_group_pages(elbv2_svc: Any) -> Iterator[dict]:
    request: dict[str, Any] = {}
    while True:
        page = elbv2_svc.describe_target_groups(**request)
        yield page
        marker = page.get("NextMarker")
        if not marker:
            return
        request = {"Marker": marker}


def describe_target_groups(elbv2_svc: Any) -> set[str]:
    """Return the ARNs of all existing target groups."""
    return {
        tg.get("TargetGroupArn", "")
        for page in _target_group_pages(elbv2_svc)
        for tg in page.get("TargetGroups") or []
    }


def _pod_labels(elbv2_svc: Any, arn: str) -> tuple[str, str]:
    label = namespace = ""
    try:
        out = elbv2_svc.describe_tags(ResourceArns=[arn])
    except Exception as exc:  # tags are optional; a failure only loses labels
        log.error("cannot describe tags on target group: %s", exc)
        return label, namespace
    for description in out.get("TagDescriptions") or []:
        for tag in description.get("Tags") or []:
            key = tag.get("Key", "")
            if key == POD_LABEL_TAG:
                label = tag.get("Value", "")
            elif key == POD_NAMESPACE_TAG:
                namespace = tag.get("Value", "")
    return label, namespace


def categorize_target_type_instance(
    elbv2_svc: Any, all_tg_arns: Sequence[str]
) -> dict[str, list[TargetGroupWithLabels]]:
    """Group the given target groups by target type, with their pod labels."""
    target_types: dict[str, list[TargetGroupWithLabels]] = {}
    for page in _target_group_pages(elbv2_svc):
        for tg in page.get("TargetGroups") or []:
            arn = tg.get("TargetGroupArn", "")
            for wanted in all_tg_arns:
                if wanted != arn:
                    continue
                log.debug("Looking for tags on %s", arn)
                label, namespace = _pod_labels(elbv2_svc, arn)
                log.debug(
                    "Adding tg with label: '%s' in namespace: '%s'", label, namespace
                )
                target_types.setdefault(tg.get("TargetType", ""), []).append(
                    TargetGroupWithLabels(
                        arn=arn, pod_namespace=namespace, pod_label=label
                    )
                )
    log.debug("categorized target group arns: %r", target_types)
    return target_types


def tg_has_tags(descriptions: Sequence[dict], arn: str, tags: dict[str, str]) -> bool:
    """True if the description of the resource arn carries all the tags."""
    return any(
        desc.get("ResourceArn", "") == arn and has_tags(desc.get("Tags") or [], tags)
        for desc in descriptions
    )


def has_tags(tags: Sequence[dict], expected_tags: dict[str, str]) -> bool:
    """True if every expected key/value pair is in the list of tags."""
    present = {(tag.get("Key", ""), tag.get("Value", "")) for tag in tags}
    return all(item in present for item in expected_tags.items())


def attach_target_groups_to_auto_scaling_group(
    svc: Any, target_group_arns: Sequence[str], auto_scaling_group_name: str
) -> None:
    """Attach target groups to the group, at most 10 per call."""
    process_chunked(
        target_group_arns,
        TARGET_GROUPS_CHUNK_SIZE,
        lambda chunk: svc.attach_load_balancer_target_groups(
            AutoScalingGroupName=auto_scaling_group_name, TargetGroupARNs=chunk
        ),
    )


def detach_target_groups_from_auto_scaling_group(
    svc: Any, target_group_arns: Sequence[str], auto_scaling_group_name: str
) -> None:
    """Detach target groups from the group, at most 10 per call."""
    process_chunked(
        target_group_arns,
        TARGET_GROUPS_CHUNK_SIZE,
        lambda chunk: svc.detach_load_balancer_target_groups(
            AutoScalingGroupName=auto_scaling_group_name, TargetGroupARNs=chunk
        ),
    )


def process_chunked(
    items: Sequence[str] | None,
    chunk_size: int,
    process: Callable[[list[str]], Any],
) -> None:
    """Call process on consecutive chunks; the first exception stops the run."""
    items = list(items or [])
    for start in range(0, len(items), chunk_size):
        chunk = items[start : start + chunk_size]
        if chunk:
            process(chunk)