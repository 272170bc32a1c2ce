"""Candidate URL generation for favicon keys.

A key such as ``mail.example.co.uk`` is tried at its full host first and then
at every parent domain down to two labels, four image variants per domain.
"""

from __future__ import annotations

from typing import List, Optional

from .config import NetworkConfig

URL_TEMPLATE = "{origin}/websites/{domain}/{size}{variant}.png"


def candidate_domains(fav_key: str) -> List[str]:
    """Return ``fav_key`` and its parent domains, most specific first.

    Single labels are never returned; they are not resolvable as domains.
    """
    labels = fav_key.strip().split(".")
    domains: List[str] = []
    while len(labels) >= 2:
        domains.append(".".join(labels))
        labels = labels[1:]
    return domains


def build_candidate_urls(fav_key: str, network: Optional[NetworkConfig] = None) -> List[str]:
    """Expand a favicon key into the ordered list of URLs to try."""
    network = network or NetworkConfig()
    urls: List[str] = []
    for domain in candidate_domains(fav_key):
        for variant in network.variants:
            urls.append(
                URL_TEMPLATE.format(
                    origin=network.origin,
                    domain=domain,
                    size=network.size,
                    variant=variant,
                )
            )
    return urls
