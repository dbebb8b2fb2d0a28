"""Certificate provider backed by AWS Certificate Manager."""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any

from .certs import CertificateSummary, parse_certificate, parse_certificates

CERTIFICATE_STATUS_ISSUED = "ISSUED"


class ACMCertificateProvider:
    """Lists issued ACM certificates, optionally filtered by a "key=value" tag."""

    def __init__(self, api: Any, filter_tag: str = "") -> None:
        self.api = api
        self.filter_tag = filter_tag

    def get_certificates(self) -> list[CertificateSummary]:
        """Return summaries of all issued certificates that pass the filter."""
        return [
            get_certificate_summary_from_acm(self.api, summary["CertificateArn"])
            for summary in get_acm_certificate_summaries(self.api, self.filter_tag)
        ]


def _list_certificate_pages(api: Any) -> Iterator[dict]:
    request = {"CertificateStatuses": [CERTIFICATE_STATUS_ISSUED]}
    while True:
        page = api.list_certificates(**request)
        yield page
        token = page.get("NextToken")
        if not token:
            return
        request = {**request, "NextToken": token}


def get_acm_certificate_summaries(api: Any, filter_tag: str) -> list[dict]:
    """Return the summaries of issued certificates, filtered by tag if given."""
    summaries = [
        summary
        for page in _list_certificate_pages(api)
        for summary in page.get("CertificateSummaryList") or []
    ]
    tag = filter_tag.split("=")
    if filter_tag != "=" and len(tag) == 2:
        return filter_certificates_by_tag(api, summaries, tag[0], tag[1])
    return summaries


def filter_certificates_by_tag(
    api: Any, summaries: list[dict], key: str, value: str
) -> list[dict]:
    """Keep the summaries whose certificate carries the tag key=value."""
    result: list[dict] = []
    for summary in summaries:
        out = api.list_tags_for_certificate(CertificateArn=summary["CertificateArn"])
        result.extend(
            summary
            for tag in out.get("Tags") or []
            if tag.get("Key") == key and tag.get("Value") == value
        )
    return result


def get_certificate_summary_from_acm(api: Any, arn: str) -> CertificateSummary:
    """Fetch a certificate and its chain from ACM and summarise it."""
    resp = api.get_certificate(CertificateArn=arn)
    certificate = parse_certificate(resp.get("Certificate") or "")
    chain_pem = resp.get("CertificateChain")
    chain = parse_certificates(chain_pem) if chain_pem is not None else []
    return CertificateSummary(arn, certificate, chain)