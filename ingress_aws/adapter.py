"""Orchestration of the AWS resources that back Kubernetes ingresses."""

from __future__ import annotations

import queue
from dataclasses import dataclass, field
from datetime import timedelta
from enum import Enum
from typing import Any

from .acm import ACMCertificateProvider
from .asg import AutoScalingGroupDetails, TargetGroupWithLabels
from .filters import (
    Filter,
    filters_string,
    parse_autoscale_filter_tags,
    parse_filters,
)
from .subnets import SubnetDetails, find_lb_subnets
from .targets import (
    CNIEndpoint,
    get_registered_targets,
    register_and_deregister,
    set_targets_on_cni_target_groups,
)

DEFAULT_HEALTH_CHECK_PATH = "/kube-system/healthz"
DEFAULT_HEALTH_CHECK_PORT = 9999
DEFAULT_TARGET_PORT = 9999
DEFAULT_HEALTH_CHECK_INTERVAL = timedelta(seconds=10)
DEFAULT_HEALTH_CHECK_TIMEOUT = timedelta(seconds=5)
DEFAULT_ALB_HEALTHY_THRESHOLD_COUNT = 5
DEFAULT_ALB_UNHEALTHY_THRESHOLD_COUNT = 2
DEFAULT_NLB_HEALTHY_THRESHOLD_COUNT = 3
DEFAULT_CERTIFICATE_UPDATE_INTERVAL = timedelta(minutes=30)
DEFAULT_CREATION_TIMEOUT = timedelta(minutes=5)
DEFAULT_IDLE_CONNECTION_TIMEOUT = timedelta(minutes=1)
DEFAULT_DEREGISTRATION_TIMEOUT = timedelta(minutes=5)
DEFAULT_CONTROLLER_ID = "kube-ingress-aws-controller"
# AWS allows 25 certificates per ALB; one slot is kept free for stack updates.
DEFAULT_MAX_CERTS_PER_ALB = 24
DEFAULT_SSL_POLICY = "ELBSecurityPolicy-2016-08"
DEFAULT_IP_ADDRESS_TYPE = "ipv4"
DEFAULT_ALB_S3_LOGS_BUCKET = ""
DEFAULT_ALB_S3_LOGS_PREFIX = ""
DEFAULT_CUSTOM_FILTER = ""
DEFAULT_NLB_CROSS_ZONE = False
DEFAULT_NLB_HTTP_ENABLED = False

LOAD_BALANCER_TYPE_APPLICATION = "application"
LOAD_BALANCER_TYPE_NETWORK = "network"
IP_ADDRESS_TYPE_IPV4 = "ipv4"
IP_ADDRESS_TYPE_DUALSTACK = "dualstack"

TARGET_TYPE_INSTANCE = "instance"
TARGET_TYPE_IP = "ip"

TARGET_GROUP_QUEUE_SIZE = 10

SSL_POLICIES = (
    "ELBSecurityPolicy-2016-08",
    "ELBSecurityPolicy-FS-2018-06",
    "ELBSecurityPolicy-TLS-1-2-2017-01",
    "ELBSecurityPolicy-TLS-1-2-Ext-2018-06",
    "ELBSecurityPolicy-TLS-1-1-2017-01",
    "ELBSecurityPolicy-2015-05",
    "ELBSecurityPolicy-TLS-1-0-2015-04",
    "ELBSecurityPolicy-FS-1-1-2019-08",
    "ELBSecurityPolicy-FS-1-2-2019-08",
    "ELBSecurityPolicy-FS-1-2-Res-2019-08",
    "ELBSecurityPolicy-FS-1-2-Res-2020-10",
    "ELBSecurityPolicy-TLS13-1-2-2021-06",
    "ELBSecurityPolicy-TLS13-1-2-Res-2021-06",
    "ELBSecurityPolicy-TLS13-1-2-Ext1-2021-06",
    "ELBSecurityPolicy-TLS13-1-2-Ext2-2021-06",
    "ELBSecurityPolicy-TLS13-1-1-2021-06",
    "ELBSecurityPolicy-TLS13-1-0-2021-06",
    "ELBSecurityPolicy-TLS13-1-3-2021-06",
)

_IDLE_TIMEOUT_RANGE = (timedelta(seconds=1), timedelta(seconds=4000))
_DEREGISTRATION_DELAY_RANGE = (timedelta(seconds=1), timedelta(seconds=3600))


class TargetAccessMode(str, Enum):
    """How load balancers reach the ingress pods."""

    AWS_CNI = "AWSCNI"
    HOST_PORT = "HostPort"
    LEGACY = "Legacy"


@dataclass
class TargetCNIConfig:
    """State for registering pod IPs directly in target groups."""

    enabled: bool = False
    target_groups: queue.Queue = field(
        default_factory=lambda: queue.Queue(maxsize=TARGET_GROUP_QUEUE_SIZE)
    )


@dataclass
class Manifest:
    """What was discovered about the cluster and its network."""

    cluster_id: str = ""
    vpc_id: str = ""
    security_group_id: str = ""
    instance_id: str | None = None
    subnets: list[SubnetDetails] = field(default_factory=list)
    filters: list[Filter] = field(default_factory=list)
    asg_filters: dict[str, list[str]] = field(default_factory=dict)


@dataclass(kw_only=True)
class Adapter:
    """Holds the AWS clients and the settings used for the resources it manages.

    The clients are boto3-style objects; single instance details are any
    objects with a boolean ``running`` attribute.
    """

    manifest: Manifest | None = None
    ec2: Any = None
    elbv2: Any = None
    autoscaling: Any = None
    acm: Any = None
    iam: Any = None
    cloudformation: Any = None

    health_check_path: str = DEFAULT_HEALTH_CHECK_PATH
    health_check_port: int = DEFAULT_HEALTH_CHECK_PORT
    health_check_interval: timedelta = DEFAULT_HEALTH_CHECK_INTERVAL
    health_check_timeout: timedelta = DEFAULT_HEALTH_CHECK_TIMEOUT
    alb_healthy_threshold_count: int = DEFAULT_ALB_HEALTHY_THRESHOLD_COUNT
    alb_unhealthy_threshold_count: int = DEFAULT_ALB_UNHEALTHY_THRESHOLD_COUNT
    nlb_healthy_threshold_count: int = DEFAULT_NLB_HEALTHY_THRESHOLD_COUNT
    target_type: str = ""
    target_port: int = DEFAULT_TARGET_PORT
    alb_http_target_port: int = 0
    nlb_http_target_port: int = 0
    target_https: bool = False
    creation_timeout: timedelta = DEFAULT_CREATION_TIMEOUT
    idle_connection_timeout: timedelta = timedelta(0)
    deregistration_delay_timeout: timedelta = timedelta(0)

    targeted_auto_scaling_groups: dict[str, AutoScalingGroupDetails] = field(
        default_factory=dict
    )
    owned_auto_scaling_groups: dict[str, AutoScalingGroupDetails] = field(
        default_factory=dict
    )
    ec2_details: dict[str, Any] = field(default_factory=dict)
    single_instance_details: dict[str, Any] = field(default_factory=dict)
    obsolete_instances: list[str] = field(default_factory=list)

    stack_termination_protection: bool = False
    stack_tags: dict[str, str] = field(default_factory=dict)
    controller_id: str = DEFAULT_CONTROLLER_ID
    ssl_policy: str = DEFAULT_SSL_POLICY
    ip_address_type: str = DEFAULT_IP_ADDRESS_TYPE
    alb_logs_s3_bucket: str = DEFAULT_ALB_S3_LOGS_BUCKET
    alb_logs_s3_prefix: str = DEFAULT_ALB_S3_LOGS_PREFIX
    http_redirect_to_https: bool = False
    nlb_cross_zone: bool = DEFAULT_NLB_CROSS_ZONE
    nlb_http_enabled: bool = DEFAULT_NLB_HTTP_ENABLED
    custom_filter: str = DEFAULT_CUSTOM_FILTER
    internal_domains: list[str] = field(default_factory=list)
    deny_internal_domains: bool = False
    deny_internal_response_body: str = ""
    deny_internal_response_content_type: str = ""
    deny_internal_response_status_code: int = 0
    target_cni: TargetCNIConfig = field(default_factory=TargetCNIConfig)

    def new_acm_certificate_provider(self, cert_filter_tag: str) -> ACMCertificateProvider:
        """Return a certificate provider using this adapter's ACM client."""
        return ACMCertificateProvider(self.acm, cert_filter_tag)

    def with_health_check_path(self, path: str) -> Adapter:
        self.health_check_path = path
        return self

    def with_health_check_port(self, port: int) -> Adapter:
        self.health_check_port = port
        return self

    def with_alb_healthy_threshold_count(self, count: int) -> Adapter:
        self.alb_healthy_threshold_count = count
        return self

    def with_alb_unhealthy_threshold_count(self, count: int) -> Adapter:
        self.alb_unhealthy_threshold_count = count
        return self

    def with_nlb_healthy_threshold_count(self, count: int) -> Adapter:
        self.nlb_healthy_threshold_count = count
        return self

    def with_target_port(self, port: int) -> Adapter:
        self.target_port = port
        return self

    def with_alb_http_target_port(self, port: int) -> Adapter:
        self.alb_http_target_port = port
        return self

    def with_nlb_http_target_port(self, port: int) -> Adapter:
        self.nlb_http_target_port = port
        return self

    def with_target_https(self, https: bool) -> Adapter:
        self.target_https = https
        return self

    def with_health_check_interval(self, interval: timedelta) -> Adapter:
        self.health_check_interval = interval
        return self

    def with_health_check_timeout(self, timeout: timedelta) -> Adapter:
        self.health_check_timeout = timeout
        return self

    def with_creation_timeout(self, interval: timedelta) -> Adapter:
        self.creation_timeout = interval
        return self

    def with_idle_connection_timeout(self, interval: timedelta) -> Adapter:
        """Set the idle timeout; values outside 1s..4000s are ignored."""
        low, high = _IDLE_TIMEOUT_RANGE
        if low <= interval <= high:
            self.idle_connection_timeout = interval
        return self

    def with_deregistration_delay_timeout(self, interval: timedelta) -> Adapter:
        """Set the deregistration delay; values outside 1s..3600s are ignored."""
        low, high = _DEREGISTRATION_DELAY_RANGE
        if low <= interval <= high:
            self.deregistration_delay_timeout = interval
        return self

    def with_controller_id(self, controller_id: str) -> Adapter:
        self.controller_id = controller_id
        return self

    def with_ssl_policy(self, policy: str) -> Adapter:
        self.ssl_policy = policy
        return self

    def with_ip_address_type(self, ip_address_type: str) -> Adapter:
        """Switch to dualstack; any other value keeps the current type."""
        if ip_address_type == IP_ADDRESS_TYPE_DUALSTACK:
            self.ip_address_type = ip_address_type
        return self

    def with_custom_filter(self, custom_filter: str) -> Adapter:
        """Set the custom filter and rebuild the manifest's filters from it."""
        self.custom_filter = custom_filter
        cluster_id = self.cluster_id()
        self.manifest.filters = parse_filters(custom_filter, cluster_id)
        self.manifest.asg_filters = parse_autoscale_filter_tags(
            custom_filter, cluster_id
        )
        return self

    def with_target_access_mode(self, mode: str) -> Adapter:
        """Choose the target type that matches the access mode."""
        self.target_cni.enabled = mode == TargetAccessMode.AWS_CNI
        if mode == TargetAccessMode.HOST_PORT:
            self.target_type = TARGET_TYPE_INSTANCE
        elif mode == TargetAccessMode.AWS_CNI:
            self.target_type = TARGET_TYPE_IP
        elif mode == TargetAccessMode.LEGACY:
            self.target_type = ""
        return self

    def cluster_id(self) -> str:
        return self.manifest.cluster_id

    def vpc_id(self) -> str:
        return self.manifest.vpc_id

    def instance_id(self) -> str:
        if self.manifest is not None and self.manifest.instance_id is not None:
            return self.manifest.instance_id
        return "<none>"

    def single_instances(self) -> list[str]:
        """IDs of instances that belong to no auto scaling group."""
        return list(self.single_instance_details)

    def running_single_instances(self) -> list[str]:
        """IDs of running instances that belong to no auto scaling group."""
        return [
            instance_id
            for instance_id, details in self.single_instance_details.items()
            if details.running
        ]

    def obsolete_single_instances(self) -> list[str]:
        """IDs of instances to deregister from all target groups."""
        return self.obsolete_instances

    def cached_instances(self) -> int:
        return len(self.ec2_details)

    def filters_string(self) -> str:
        return filters_string(self.manifest.filters)

    def security_group_id(self) -> str:
        return self.manifest.security_group_id

    def http_target_port(self, load_balancer_type: str) -> int:
        """The target port for plain HTTP traffic of the load balancer type."""
        if load_balancer_type == LOAD_BALANCER_TYPE_APPLICATION and self.alb_http_target_port:
            return self.alb_http_target_port
        if load_balancer_type == LOAD_BALANCER_TYPE_NETWORK and self.nlb_http_target_port:
            return self.nlb_http_target_port
        return self.target_port

    def http_disabled(self, load_balancer_type: str) -> bool:
        if load_balancer_type == LOAD_BALANCER_TYPE_NETWORK:
            return not self.nlb_http_enabled
        return False

    def find_lb_subnets(self, scheme: str) -> list[str]:
        return find_lb_subnets(self.manifest.subnets, scheme)

    def get_registered_targets(self, tg_arn: str) -> list[str]:
        return get_registered_targets(self.elbv2, tg_arn)

    def register_and_deregister(
        self, new: list[str] | None, old: list[str] | None, tg_arn: str
    ) -> None:
        register_and_deregister(self.elbv2, new, old, tg_arn)

    def set_targets_on_cni_target_groups(
        self,
        endpoints: list[CNIEndpoint],
        cni_target_groups: list[TargetGroupWithLabels],
    ) -> None:
        set_targets_on_cni_target_groups(self.elbv2, endpoints, cni_target_groups)