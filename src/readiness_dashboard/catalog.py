"""Checklist cards shown on the dashboard and the items behind each card."""

from __future__ import annotations

from .models import ChecklistDefinition, ChecklistItem, FilterType, Priority

C, H, M, L = Priority.CRITICAL, Priority.HIGH, Priority.MEDIUM, Priority.LOW


def _section(name: str, *items: tuple[str, Priority, str]) -> tuple[ChecklistItem, ...]:
    return tuple(
        ChecklistItem(name, title, description, prio) for title, prio, description in items
    )


FRONTEND = ChecklistDefinition(
    name="frontend",
    title="Frontend Development",
    description="Performance, accessibility, build output and browser security.",
    priority=H,
    items=(
        *_section(
            "Performance",
            ("Core Web Vitals within budget", H, "FCP < 1s, LCP < 2.5s, CLS < 0.1, TBT < 300ms."),
            ("Bundle size budget enforced", M, "Each emitted bundle stays under 244 KB."),
            ("Images optimized", M, "Compressed, responsive and lazily loaded images."),
        ),
        *_section(
            "Accessibility",
            ("No axe violations", H, "Automated accessibility audit passes on key pages."),
            ("Semantic HTML landmarks", M, "main, nav, header and footer used consistently."),
            ("ARIA attributes where needed", M, "Interactive widgets expose roles and labels."),
        ),
        *_section(
            "Quality",
            ("Linting in CI", M, "Style and correctness rules enforced on every change."),
            ("Test coverage at least 80%", H, "Line coverage reported and gated."),
        ),
        *_section(
            "Security",
            ("Content Security Policy", C, "CSP header or meta tag restricts script sources."),
            ("XSS-safe rendering", C, "No raw HTML sinks with untrusted input."),
            ("Dependency audit clean", H, "No known vulnerable packages shipped."),
            ("Clickjacking protection", H, "X-Frame-Options or frame-ancestors configured."),
            ("No secrets in client code", C, "API keys and tokens are never bundled."),
        ),
    ),
)

BACKEND = ChecklistDefinition(
    name="backend",
    title="Backend Development",
    description="API design, data access, security controls and error handling.",
    priority=H,
    items=(
        *_section(
            "API Design",
            ("OpenAPI specification published", H, "Versioned spec with response schemas."),
            ("Rate limiting", H, "Per-client throttling on public endpoints."),
            ("Security schemes documented", M, "Authentication documented in the API spec."),
        ),
        *_section(
            "Database",
            ("Migrations tracked", H, "Schema changes applied through versioned migrations."),
            ("Indexes for hot queries", M, "Slow queries identified and indexed."),
            ("Connection pooling", M, "Pool sized for expected concurrency."),
        ),
        *_section(
            "Security",
            ("Authentication guards", C, "Every non-public route requires authentication."),
            ("Authorization checks", C, "Role or permission checks on protected resources."),
            ("Input validation", C, "Request payloads validated before use."),
            ("Secrets management", C, "Credentials loaded from a secret store, not code."),
            ("Audit logging", H, "Security-relevant actions are logged."),
        ),
        *_section(
            "Reliability",
            ("Global error handler", H, "Consistent error responses without stack traces."),
            ("Caching strategy", L, "Cache hot reads with explicit invalidation."),
        ),
    ),
)

CLOUD = ChecklistDefinition(
    name="cloud",
    title="Cloud Infrastructure",
    description="Network, identity, encryption and cost controls across providers.",
    priority=H,
    items=(
        *_section(
            "Network",
            ("VPCs tagged by environment", M, "Every VPC/VNet carries an Environment tag."),
            ("No open ingress", C, "No security group or firewall rule open to 0.0.0.0/0."),
            ("DNS managed as code", L, "Zones and records defined in infrastructure code."),
        ),
        *_section(
            "Identity",
            ("Root account MFA", C, "Root or owner accounts protected by MFA."),
            ("Least-privilege IAM", H, "Owner and admin assignments kept to a minimum."),
        ),
        *_section(
            "Data Protection",
            ("Encryption at rest", C, "Volumes, buckets and databases encrypted."),
            ("Audit trail enabled", H, "CloudTrail, activity logs or audit logs retained."),
        ),
        *_section(
            "Governance",
            ("Consistent resource tagging", M, "Environment, Application, Owner, CostCenter."),
            ("Budgets and alerts", M, "Spending budgets with alert thresholds."),
            ("CSPM and CWPP in place", H, "Posture management and workload protection."),
        ),
    ),
)

DATA = ChecklistDefinition(
    name="data",
    title="Data Management",
    description="Governance, quality, privacy and lifecycle of organisational data.",
    priority=M,
    items=(
        *_section(
            "Governance",
            ("Governance framework documented", H, "Framework, policies and procedures."),
            ("Data owners assigned", M, "Each dataset has an accountable owner."),
        ),
        *_section(
            "Quality",
            ("Quality rules defined", H, "Completeness, accuracy, consistency, timeliness."),
            ("Datasets profiled", M, "Missing values and schema drift measured."),
        ),
        *_section(
            "Security & Privacy",
            ("Access controls", C, "Roles, permissions and restrictions configured."),
            ("Encryption in transit and at rest", C, "Sensitive data always encrypted."),
            ("PII handling", C, "PII masked, pseudonymised or anonymised."),
            ("Consent management", H, "Consent captured and honoured."),
            ("Privacy impact assessments", H, "PIAs completed for new processing."),
            ("Data subject rights", H, "Access, rectification and erasure requests handled."),
        ),
        *_section(
            "Lifecycle",
            ("Retention policies", H, "Retention, archival and disposal defined."),
            ("Cross-border transfer controls", M, "Transfers documented and safeguarded."),
        ),
    ),
)

DEVOPS = ChecklistDefinition(
    name="devops",
    title="DevOps",
    description="Delivery pipelines, infrastructure as code and monitoring.",
    priority=H,
    items=(
        *_section(
            "CI/CD",
            ("Automated build", H, "Every change is built by the pipeline."),
            ("Automated tests", C, "Tests gate merges and deployments."),
            ("Automated deployment", H, "Deployments run from the pipeline, not by hand."),
        ),
        *_section(
            "Infrastructure as Code",
            ("Terraform modules structured", M, "main.tf, variables.tf and outputs.tf present."),
            ("Kubernetes manifests versioned", M, "Deployments, services and configmaps."),
            ("No secrets in IaC", C, "Credentials referenced from a secret store."),
        ),
        *_section(
            "Monitoring",
            ("Metrics collection", H, "Prometheus or equivalent scraping services."),
            ("Alerting rules", H, "Alerts routed to an on-call rotation."),
            ("Dashboards", L, "Grafana or equivalent dashboards for key services."),
            ("Centralised logging", M, "Logs shipped to Elasticsearch, Datadog or similar."),
        ),
    ),
)

MOBILE = ChecklistDefinition(
    name="mobile",
    title="Mobile Development",
    description="Platform configuration, performance and app hardening.",
    priority=M,
    items=(
        *_section(
            "Platform",
            ("iOS deployment target 12.0 or later", M, "Supported OS range declared."),
            ("Android minSdk 21 or later", M, "Supported API level declared."),
            ("Code signing configured", H, "Release builds signed with managed identities."),
            ("Minimal permissions", H, "Only required manifest permissions requested."),
        ),
        *_section(
            "Performance",
            ("Bundle under 100 MB", M, "Release bundles within store limits."),
            ("Images optimized", L, "Assets compressed per density."),
        ),
        *_section(
            "Security",
            ("SSL pinning", C, "Certificate pinning on both platforms."),
            ("Root and jailbreak detection", H, "Compromised devices detected."),
            ("Secure local storage", C, "Keychain / Keystore for sensitive data."),
            ("Obfuscation", M, "ProGuard/R8 and iOS obfuscation enabled."),
            ("Mobile security testing", H, "MAST in the release pipeline."),
        ),
        *_section(
            "Accessibility",
            ("Screen reader labels", M, "accessibilityLabel / contentDescription set."),
        ),
    ),
)

SECURITY = ChecklistDefinition(
    name="security",
    title="Security",
    description="Identity, network, encryption and secret hygiene across the estate.",
    priority=H,
    items=(
        *_section(
            "Identity",
            ("MFA enforced", C, "MFA required in every identity provider."),
            ("Least privilege", H, "User privileges reviewed regularly."),
        ),
        *_section(
            "Network",
            ("Default-deny firewall", C, "Inbound traffic denied unless explicitly allowed."),
            ("Network segmentation", H, "VLANs and isolation between tiers."),
        ),
        *_section(
            "Encryption",
            ("TLS 1.2 or later", C, "Older protocol versions disabled."),
            ("No insecure algorithms", H, "DES, RC4 and MD5 not used for security."),
        ),
        *_section(
            "Operations",
            ("No secrets in source", C, "Secret scanning on every change."),
            ("File permissions reviewed", M, "Sensitive files readable only by their owners."),
            ("Incident response plan", H, "Runbook tested and contacts current."),
            ("Security awareness training", M, "Annual training for all staff."),
        ),
    ),
)

AIML = ChecklistDefinition(
    name="aiml",
    title="AI/ML Development",
    description="Data pipelines, experiments, deployment, monitoring and governance.",
    priority=M,
    items=(
        *_section(
            "Data Pipeline",
            ("Data versioned", H, "DVC remote and cache configured."),
            ("Data validation", H, "Schema and quality checks on training data."),
            ("Feature store", L, "Shared, versioned feature definitions."),
        ),
        *_section(
            "Model Development",
            ("Experiment tracking", M, "MLflow or equivalent records every run."),
            ("Model registry", H, "Versioned models with promotion stages."),
            ("Model tests", H, "Prediction behaviour covered by tests."),
        ),
        *_section(
            "Deployment & Monitoring",
            ("Serving configuration", M, "Resources and scaling declared."),
            ("Health endpoint", M, "Serving API exposes liveness checks."),
            ("Drift detection", H, "Input and prediction drift monitored."),
            ("Alerting", H, "Model quality regressions alert a human."),
        ),
        *_section(
            "Governance",
            ("Model cards", M, "Intended use and limitations documented."),
            ("Fairness assessment", C, "Bias evaluated across protected groups."),
            ("Compliance documentation", H, "Regulatory obligations mapped."),
        ),
    ),
)

# Dashboard card order
CHECKLISTS: tuple[ChecklistDefinition, ...] = (
    FRONTEND,
    BACKEND,
    CLOUD,
    DATA,
    DEVOPS,
    MOBILE,
    SECURITY,
    AIML,
)

CHECKLIST_NAMES: tuple[str, ...] = tuple(c.name for c in CHECKLISTS)

_BY_NAME = {c.name: c for c in CHECKLISTS}


def get_checklist(name: str) -> ChecklistDefinition:
    try:
        return _BY_NAME[name]
    except KeyError:
        raise ValueError(f"Unknown checklist: {name}") from None


def filter_checklists(
    term: str = "",
    filter_type: FilterType | str = FilterType.ALL,
) -> list[ChecklistDefinition]:
    """Cards whose title, description or priority badge match ``term``."""
    kind = FilterType(filter_type)
    return [c for c in CHECKLISTS if c.matches(term, kind)]
