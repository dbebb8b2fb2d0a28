"""EC2 instance filters and auto scaling group filter tags."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

log = logging.getLogger(__name__)

CLUSTER_ID_TAG_PREFIX = "kubernetes.io/cluster/"
RESOURCE_LIFECYCLE_OWNED = "owned"
KUBERNETES_NODE_ROLE_TAG = "k8s.io/role/node"


@dataclass
class Filter:
    """An EC2 DescribeInstances filter: a name and its accepted values."""

    name: str
    values: list[str] = field(default_factory=list)


def generate_default_filters(cluster_id: str) -> list[Filter]:
    """Filter on the cluster ownership tag and the node role tag."""
    return [
        Filter(f"tag:{CLUSTER_ID_TAG_PREFIX}{cluster_id}", [RESOURCE_LIFECYCLE_OWNED]),
        Filter("tag-key", [KUBERNETES_NODE_ROLE_TAG]),
    ]


def parse_filters(custom_filter: str, cluster_id: str) -> list[Filter]:
    """Parse "name=v1,v2 ..." into filters, falling back to the defaults."""
    if not custom_filter:
        return generate_default_filters(cluster_id)
    filters = []
    for term in custom_filter.split():
        parts = term.split("=")
        if len(parts) != 2:
            log.error("Failed parsing %s, falling back to default", custom_filter)
            return generate_default_filters(cluster_id)
        filters.append(Filter(parts[0], parts[1].split(",")))
    return filters


def generate_default_autoscale_filter_tags(cluster_id: str) -> dict[str, list[str]]:
    """Match auto scaling groups owned by the cluster."""
    return {f"{CLUSTER_ID_TAG_PREFIX}{cluster_id}": [RESOURCE_LIFECYCLE_OWNED]}


def parse_autoscale_filter_tags(
    custom_filter: str, cluster_id: str
) -> dict[str, list[str]]:
    """Turn the custom filter into tag names and accepted values for ASGs.

    A "tag-key" term requires only that the tag exists (empty value list).
    """
    if not custom_filter:
        return generate_default_autoscale_filter_tags(cluster_id)
    filter_tags: dict[str, list[str]] = {}
    for term in custom_filter.split():
        parts = term.split("=")
        if len(parts) != 2:
            log.error("Failed parsing %s, falling back to default", custom_filter)
            return generate_default_autoscale_filter_tags(cluster_id)
        name, values = parts
        if name == "tag-key":
            filter_tags[values] = []
        elif name.startswith("tag:"):
            filter_tags[name[len("tag:"):]] = values.split(",")
        else:
            filter_tags[name] = values.split(",")
    return filter_tags


def filters_string(filters: list[Filter]) -> str:
    """Render filters as "name=v1,v2" terms separated by spaces."""
    return " ".join(f"{f.name}={','.join(f.values)}" for f in filters).strip()