"""Helpers for AWS subnets, target groups, Auto Scaling groups and ACM certificates used by ingress controllers."""

__version__ = "0.1.0"