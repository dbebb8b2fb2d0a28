# ingress-aws

This package helps a Kubernetes ingress controller that runs on AWS. It works
out which subnets, target groups, Auto Scaling groups and certificates belong
to a cluster, and it keeps target registrations in step with the cluster.

The package does not create AWS clients. You pass in client objects with
boto3-style methods, such as `list_certificates(**kwargs)` or
`describe_target_groups(**kwargs)`, that return dicts shaped like the AWS API
responses. Real boto3 clients work, and so do test fakes.

## Installation

```
pip install .
```

## Modules

### `ingress_aws.certs`

- `parse_certificates(pem)` reads every PEM certificate in a string.
- `parse_certificate(pem)` reads exactly one certificate. It raises
  `NoCertificatesError` when the string holds none and
  `TooManyCertificatesError` when it holds more than one.
- `CertificateSummary(id, certificate, chain)` describes a certificate.
  Its `domain_names()` method returns the common name followed by the DNS
  subject alternative names.

### `ingress_aws.acm`

`ACMCertificateProvider(api, filter_tag)` lists issued ACM certificates with
`get_certificates()`. If `filter_tag` has the form `key=value`, only
certificates that carry that tag are returned. The module also has the
helpers `get_acm_certificate_summaries`, `filter_certificates_by_tag` and
`get_certificate_summary_from_acm`.

### `ingress_aws.filters`

- `parse_filters(custom_filter, cluster_id)` builds EC2 instance `Filter`s.
- `parse_autoscale_filter_tags(custom_filter, cluster_id)` builds a tag
  filter for Auto Scaling groups. A `tag-key=...` term only requires that the
  tag exists.

Both read an expression such as `tag:Test=test vpc-id=id1,id2`. If the
expression is empty or cannot be parsed, they fall back to the cluster
defaults from `generate_default_filters` and
`generate_default_autoscale_filter_tags`.

`filters_string(filters)` renders filters back into that form.

### `ingress_aws.asg`

- `get_auto_scaling_group_by_name` and `get_auto_scaling_groups_by_name` look
  up groups. They raise `LookupError` for a missing group.
- `get_owned_and_targeted_auto_scaling_groups` pages through all groups and
  splits them into targeted and owned groups. `match_filter_tags` decides
  which groups are targeted.
- `update_target_groups_for_auto_scaling_group` attaches the wanted target
  groups and ignores those that do not exist. It detaches groups that no
  longer exist, and owned groups that are no longer wanted.
- `attach_target_groups_to_auto_scaling_group` and
  `detach_target_groups_from_auto_scaling_group` work in chunks of 10.
  `describe_tags` works in chunks of 20. Both use `process_chunked`.
- `categorize_target_type_instance` groups target groups by target type as
  `TargetGroupWithLabels`, with the pod label and namespace read from their
  tags.

### `ingress_aws.targets`

- `set_targets_on_cni_target_groups(elbv2, endpoints, target_groups)`
  registers the IPs of matching `CNIEndpoint`s. It deregisters targets that
  are registered but no longer wanted.
- `register_and_deregister` and `get_registered_targets` do the underlying
  work. `difference` and `non_targeted_asgs` are small set helpers.

### `ingress_aws.subnets`

`find_lb_subnets(subnets, scheme)` chooses at most one `SubnetDetails` per
availability zone.

- Internet-facing load balancers use only public subnets.
- Within a zone, a subnet with the ELB role tag wins.
- Otherwise the subnet with the lexicographically smallest ID wins.

### `ingress_aws.adapter`

`Adapter` holds the AWS clients, a `Manifest` that you supply (cluster ID,
VPC ID, security group, subnets and filters) and the load balancer settings.

- Settings are changed with chainable `with_*` methods. For example,
  `with_idle_connection_timeout` ignores values outside 1–4000 seconds, and
  `with_target_access_mode` accepts `"AWSCNI"`, `"HostPort"` or `"Legacy"`.
- Accessors include `cluster_id()`, `vpc_id()`, `filters_string()` and
  `running_single_instances()`.
- `find_lb_subnets` and `set_targets_on_cni_target_groups` apply the helpers
  above with the adapter's own manifest and client.

## Example

```python
from ingress_aws.filters import filters_string, parse_filters

filters = parse_filters("tag:Test=test vpc-id=id1,id2", "my-cluster")
print(filters_string(filters))  # tag:Test=test vpc-id=id1,id2
```

```python
from ingress_aws.adapter import Adapter, Manifest
from ingress_aws.subnets import SubnetDetails

adapter = Adapter(manifest=Manifest(
    cluster_id="my-cluster",
    subnets=[
        SubnetDetails("subnet-2", "a", public=True),
        SubnetDetails("subnet-1", "a", public=True),
    ],
))
print(adapter.find_lb_subnets("internet-facing"))  # ['subnet-1']
```

## What it does not do

- It does not find the manifest itself from instance metadata. You build the
  `Manifest` and hand it to the `Adapter`.
- It does not create, update or delete CloudFormation stacks for load
  balancers.
- It does not refresh the instance and Auto Scaling group caches on the
  adapter. The `Adapter` exposes `ec2_details` and `single_instance_details`
  for the caller to fill.
- There is no command-line program and no controller loop.

## Running the tests

```
pip install .[test]
pytest
```