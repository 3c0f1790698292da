"""GitHub Actions OIDC constants and the default claim → attribute mapping."""

GITHUB_ISSUER_URI = "https://token.actions.githubusercontent.com"

DEFAULT_AUDIENCES: tuple[str, ...] = ("sts.googleapis.com",)

# Prefix used by the provider attribute-condition dialect.
ASSERTION_PREFIX = "assertion."

DEFAULT_ATTRIBUTE_MAPPING: dict[str, str] = {
    "google.subject": "assertion.sub",
    "attribute.actor": "assertion.actor",
    "attribute.repository": "assertion.repository",
    "attribute.repository_owner": "assertion.repository_owner",
    "attribute.ref": "assertion.ref",
    "attribute.ref_type": "assertion.ref_type",
    "attribute.workflow_ref": "assertion.workflow_ref",
    "attribute.job_workflow_ref": "assertion.job_workflow_ref",
    "attribute.runner_environment": "assertion.runner_environment",
}


def build_attribute_mapping(extra: dict[str, str] | None = None) -> dict[str, str]:
    """Return the default attribute mapping, optionally extended.

    Args:
        extra: Additional ``attribute.* -> assertion.*`` entries, e.g. the
            pull-request claims ``attribute.base_ref`` or
            ``attribute.environment``.
    """
    mapping = dict(DEFAULT_ATTRIBUTE_MAPPING)
    if extra:
        mapping.update(extra)
    return mapping


def format_attribute_mapping(mapping: dict[str, str]) -> str:
    """Render *mapping* in the ``key=value,key=value`` form gcloud accepts."""
    return ",".join(f"{k}={v}" for k, v in sorted(mapping.items()))
