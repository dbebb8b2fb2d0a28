"""Selection of subnets for load balancers."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

ELB_ROLE_TAG_NAME = "kubernetes.io/role/elb"
INTERNAL_ELB_ROLE_TAG_NAME = "kubernetes.io/role/internal-elb"

LOAD_BALANCER_SCHEME_INTERNAL = "internal"
LOAD_BALANCER_SCHEME_INTERNET_FACING = "internet-facing"


@dataclass
class SubnetDetails:
    """A VPC subnet as seen by the controller."""

    id: str
    availability_zone: str
    public: bool = False
    tags: dict[str, str] = field(default_factory=dict)


def find_lb_subnets(subnets: Iterable[SubnetDetails], scheme: str) -> list[str]:
    """Pick at most one subnet per availability zone for a load balancer.

    Public load balancers only use public subnets. Within a zone a subnet
    carrying the ELB role tag for the scheme wins; otherwise the subnet with
    the lexicographically smallest ID is chosen.
    """
    internal = scheme == LOAD_BALANCER_SCHEME_INTERNAL
    tag_name = INTERNAL_ELB_ROLE_TAG_NAME if internal else ELB_ROLE_TAG_NAME

    by_zone: dict[str, SubnetDetails] = {}
    for subnet in subnets:
        if not internal and not subnet.public:
            continue
        existing = by_zone.get(subnet.availability_zone)
        if existing is None:
            by_zone[subnet.availability_zone] = subnet
            continue

        existing_tagged = tag_name in (existing.tags or {})
        subnet_tagged = tag_name in (subnet.tags or {})
        if existing_tagged != subnet_tagged:
            if subnet_tagged:
                by_zone[subnet.availability_zone] = subnet
            continue

        if existing.id > subnet.id:
            by_zone[subnet.availability_zone] = subnet

    return [subnet.id for subnet in by_zone.values()]