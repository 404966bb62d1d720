"""
Report rendering for IT Glue audits using Jinja2.
"""

from collections import defaultdict
from datetime import datetime, timezone
from pathlib import Path

import markdown
from jinja2 import Environment, FileSystemLoader

from msp_toolkit.itglue.passwords import PasswordAuditResult, PasswordPolicy

TEMPLATE_DIR = Path(__file__).parent.parent / "templates"
REPORT_FORMATS = ("markdown", "html")


def _md_cell(value: object) -> str:
    """Escape a value for use inside a Markdown table cell."""
    return str(value).replace("|", "\\|").replace("\n", " ")


def _environment(autoescape: bool = False) -> Environment:
    env = Environment(
        loader=FileSystemLoader(str(TEMPLATE_DIR)),
        trim_blocks=True,
        lstrip_blocks=True,
        autoescape=autoescape,
    )
    env.filters["md_cell"] = _md_cell
    return env


def render_password_report(
    result: PasswordAuditResult,
    policy: PasswordPolicy,
    fmt: str = "markdown",
    organization: str | None = None,
    generated_at: datetime | None = None,
) -> str:
    """
    Render a password audit as Markdown or standalone HTML.

    Args:
        result: Audit outcome
        policy: Policy the audit applied
        fmt: "markdown" or "html"
        organization: Organization label for the heading, if the audit was scoped
        generated_at: Timestamp shown in the report (default: now, UTC)

    Returns:
        Rendered report text

    Raises:
        ValueError: If fmt is not a supported format
    """
    if fmt not in REPORT_FORMATS:
        raise ValueError(f"Unsupported report format: {fmt}. Must be one of: {list(REPORT_FORMATS)}")

    by_organization = defaultdict(list)
    for finding in sorted(result.findings, key=lambda f: (f.organization, f.name, f.issue)):
        by_organization[finding.organization].append(finding)

    generated_at = generated_at or datetime.now(timezone.utc)
    markdown_text = (
        _environment()
        .get_template("password_audit.md.j2")
        .render(
            result=result,
            policy=policy,
            issues=result.by_issue(),
            by_organization=dict(by_organization),
            organization=organization,
            generated_at=generated_at.strftime("%Y-%m-%d %H:%M UTC"),
        )
    )

    if fmt == "markdown":
        return markdown_text

    # Escape raw HTML in entry names before conversion; markdown passes it through
    body = markdown.markdown(markdown_text.replace("<", "&lt;"), extensions=["tables"])
    return (
        _environment(autoescape=True)
        .get_template("report.html.j2")
        .render(title="IT Glue Password Audit", body=body)
    )
