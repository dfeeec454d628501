"""
app/domain/document_ids.py

Deterministic record identifiers.

Every identifier here is a pure function of its inputs so that re-running a
stage for the same (date, site) or (stage, site) overwrites the previous
record instead of creating a duplicate. Distinct sites never share an
identifier: the readable slug is followed by a digest of the exact site
string, since the slug alone folds ``a-b.com`` and ``a.b.com`` together.
"""

from __future__ import annotations

import hashlib
import re
from datetime import date

_NON_ALNUM = re.compile(r"[^a-z0-9]+")
_DIGEST_LENGTH = 10

TIERING_SUMMARY_ID = "latest"


def site_slug(site_url: str) -> str:
    """
    ``sc-domain:Example.com`` -> ``sc_domain_example_com``.
    """

    return _NON_ALNUM.sub("_", site_url.strip().lower()).strip("_")


def site_key(site_url: str) -> str:
    """
    Slug plus a short sha1 of the stripped site string.
    """

    site = site_url.strip()
    digest = hashlib.sha1(site.encode("utf-8")).hexdigest()[:_DIGEST_LENGTH]
    return f"{site_slug(site)}_{digest}"


def daily_aggregate_id(target_date: date, site_url: str) -> str:
    return f"daily_{target_date.strftime('%Y%m%d')}_{site_key(site_url)}"


def dashboard_stats_id(site_url: str) -> str:
    return f"latest_{site_key(site_url)}"


def run_lease_id(stage: str, site_url: str) -> str:
    return f"{stage}:{site_key(site_url)}"
