"""
Password hygiene audit for IT Glue.

Walks every password entry the API key can see and flags entries that break
the configured policy: stale rotation dates, missing usernames and, when the
key is allowed to reveal values, empty, short or reused passwords. Revealed
values are hashed for reuse detection and never kept in the results.
"""

import hashlib
import logging
from collections import defaultdict
from dataclasses import asdict, dataclass, field, fields
from datetime import datetime, timezone
from typing import Any

from msp_toolkit.exceptions import ITGlueAPIError
from msp_toolkit.itglue.client import ITGlueClient
from msp_toolkit.itglue.resources import Resource

logger = logging.getLogger(__name__)

ISSUE_STALE = "stale"
ISSUE_MISSING_USERNAME = "missing-username"
ISSUE_EMPTY = "empty-password"
ISSUE_TOO_SHORT = "too-short"
ISSUE_REUSED = "reused"

FINDING_FIELDS = ["organization", "password_id", "name", "issue", "detail"]


@dataclass
class PasswordPolicy:
    """Thresholds applied by the audit."""

    min_length: int = 12
    max_age_days: int = 365
    require_username: bool = True
    check_reuse: bool = True

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> "PasswordPolicy":
        section = config.get("password_policy", {})
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in section.items() if k in known})


@dataclass
class PasswordFinding:
    organization: str
    password_id: str
    name: str
    issue: str
    detail: str

    def as_row(self) -> dict[str, str]:
        return asdict(self)


@dataclass
class PasswordAuditResult:
    """Outcome of one audit run."""

    checked: int = 0
    skipped: int = 0
    errors: int = 0
    findings: list[PasswordFinding] = field(default_factory=list)

    def by_issue(self) -> dict[str, int]:
        counts: dict[str, int] = defaultdict(int)
        for finding in self.findings:
            counts[finding.issue] += 1
        return dict(sorted(counts.items()))

    @property
    def flagged(self) -> int:
        """Number of distinct entries with at least one finding."""
        return len({f.password_id for f in self.findings})


def parse_timestamp(value: str | None) -> datetime | None:
    """Parse an IT Glue ISO-8601 timestamp, returning None when absent or invalid."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        logger.debug(f"Unparseable timestamp: {value}")
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _finding(entry: Resource, issue: str, detail: str) -> PasswordFinding:
    organization = entry.get("organization-name") or str(entry.get("organization-id") or "")
    return PasswordFinding(
        organization=organization,
        password_id=entry.id,
        name=entry.name,
        issue=issue,
        detail=detail,
    )


def check_metadata(entry: Resource, policy: PasswordPolicy, now: datetime) -> list[PasswordFinding]:
    """Checks that only need the list view of an entry."""
    findings = []

    changed = parse_timestamp(entry.get("password-updated-at") or entry.get("updated-at"))
    if changed is not None:
        age_days = (now - changed).days
        if age_days > policy.max_age_days:
            findings.append(
                _finding(
                    entry,
                    ISSUE_STALE,
                    f"last changed {age_days} days ago ({changed.date().isoformat()})",
                )
            )

    if policy.require_username and not (entry.get("username") or "").strip():
        findings.append(_finding(entry, ISSUE_MISSING_USERNAME, "no username recorded"))

    return findings


def check_value(entry: Resource, value: str, policy: PasswordPolicy) -> list[PasswordFinding]:
    """Checks that need the revealed password value."""
    if not value:
        return [_finding(entry, ISSUE_EMPTY, "password field is empty")]
    if len(value) < policy.min_length:
        return [
            _finding(
                entry,
                ISSUE_TOO_SHORT,
                f"{len(value)} characters, policy minimum is {policy.min_length}",
            )
        ]
    return []


def audit_passwords(
    client: ITGlueClient,
    policy: PasswordPolicy | None = None,
    organization_id: str | int | None = None,
    fetch_values: bool = False,
    now: datetime | None = None,
) -> PasswordAuditResult:
    """
    Audit IT Glue password entries against a policy.

    Args:
        client: Authenticated IT Glue client
        policy: Thresholds to apply (default: PasswordPolicy())
        organization_id: Restrict the audit to one organization
        fetch_values: Re-fetch each entry with show_password=true to check
            length, emptiness and reuse (one extra request per entry)
        now: Reference time for age checks (default: current UTC time)

    Returns:
        PasswordAuditResult with findings; entries that could not be fetched
        are counted in ``errors`` and the audit continues
    """
    policy = policy or PasswordPolicy()
    now = now or datetime.now(timezone.utc)

    filters = {"organization_id": organization_id} if organization_id else None
    entries = client.get_all("passwords", filters=filters)
    logger.info(f"Auditing {len(entries)} password entr{'y' if len(entries) == 1 else 'ies'}")

    result = PasswordAuditResult()
    digests: dict[str, list[Resource]] = defaultdict(list)

    for entry in entries:
        if entry.get("archived"):
            result.skipped += 1
            continue
        result.checked += 1
        result.findings.extend(check_metadata(entry, policy, now))

        if not fetch_values:
            continue

        try:
            revealed = client.get(f"passwords/{entry.id}", params={"show_password": "true"})
        except ITGlueAPIError as e:
            logger.warning(f"Could not fetch password {entry.id} ({entry.name}): {e.error_message}")
            result.errors += 1
            continue

        value = revealed.get("password") or ""
        result.findings.extend(check_value(entry, value, policy))
        if value and policy.check_reuse:
            digests[hashlib.sha256(value.encode()).hexdigest()].append(entry)

    for group in digests.values():
        if len(group) < 2:
            continue
        for entry in group:
            others = [o for o in group if o.id != entry.id]
            names = ", ".join(f"{o.name} ({o.id})" for o in others)
            result.findings.append(
                _finding(entry, ISSUE_REUSED, f"same password as {len(others)} other: {names}")
            )

    logger.info(
        f"Audit complete: {result.checked} checked, {result.flagged} flagged, "
        f"{result.errors} error(s)"
    )
    return result
