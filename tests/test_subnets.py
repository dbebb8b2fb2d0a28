from ingress_aws.subnets import (
    ELB_ROLE_TAG_NAME,
    INTERNAL_ELB_ROLE_TAG_NAME,
    LOAD_BALANCER_SCHEME_INTERNAL,
    LOAD_BALANCER_SCHEME_INTERNET_FACING,
    SubnetDetails,
    find_lb_subnets,
)


def test_two_public_subnets_for_public_lb():
    subnets = [
        SubnetDetails(id="1", availability_zone="a", public=True),
        SubnetDetails(id="2", availability_zone="b", public=True),
    ]
    result = find_lb_subnets(subnets, LOAD_BALANCER_SCHEME_INTERNET_FACING)
    assert sorted(result) == ["1", "2"]


def test_first_lexicographically_in_same_zone():
    subnets = [
        SubnetDetails(id="2", availability_zone="a", public=True),
        SubnetDetails(id="1", availability_zone="a", public=True),
    ]
    assert find_lb_subnets(subnets, LOAD_BALANCER_SCHEME_INTERNET_FACING) == ["1"]


def test_no_internal_subnets_for_public_lb():
    subnets = [SubnetDetails(id="2", availability_zone="a", public=False)]
    assert find_lb_subnets(subnets, LOAD_BALANCER_SCHEME_INTERNET_FACING) == []


def test_prefer_tagged_subnet():
    subnets = [
        SubnetDetails(id="1", availability_zone="a", public=True),
        SubnetDetails(
            id="2", availability_zone="a", public=True, tags={ELB_ROLE_TAG_NAME: ""}
        ),
    ]
    assert find_lb_subnets(subnets, LOAD_BALANCER_SCHEME_INTERNET_FACING) == ["2"]


def test_prefer_tagged_subnet_internal():
    subnets = [
        SubnetDetails(id="1", availability_zone="a", public=False),
        SubnetDetails(
            id="2",
            availability_zone="a",
            public=False,
            tags={INTERNAL_ELB_ROLE_TAG_NAME: ""},
        ),
    ]
    assert find_lb_subnets(subnets, LOAD_BALANCER_SCHEME_INTERNAL) == ["2"]


def test_tagged_subnet_kept_over_smaller_untagged():
    subnets = [
        SubnetDetails(
            id="9", availability_zone="a", public=True, tags={ELB_ROLE_TAG_NAME: "1"}
        ),
        SubnetDetails(id="1", availability_zone="a", public=True),
    ]
    assert find_lb_subnets(subnets, LOAD_BALANCER_SCHEME_INTERNET_FACING) == ["9"]


def test_internal_lb_uses_public_and_private_subnets():
    subnets = [
        SubnetDetails(id="1", availability_zone="a", public=True),
        SubnetDetails(id="2", availability_zone="b", public=False),
    ]
    result = find_lb_subnets(subnets, LOAD_BALANCER_SCHEME_INTERNAL)
    assert sorted(result) == ["1", "2"]