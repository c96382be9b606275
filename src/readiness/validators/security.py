from __future__ import annotations

import hashlib
import ssl
from collections.abc import Sequence

from ..results import ValidationResults
from ..rules import FunctionCheck, ManualCheck, SecretScan, Section
from .base import ValidationContext, Validator

IDENTITY_PROVIDERS = ("okta", "auth0", "azure-ad")
INSECURE_ALGORITHMS = ("des", "rc4", "md5")
FIREWALL_CONFIGS = (
    "config/firewall.yml",
    "config/firewall.yaml",
    "config/firewall.json",
    "security/firewall-rules.yml",
    "infra/firewall.tf",
)


class SecurityValidator(Validator):
    name = "security"
    title = "Security"

    def sections(self) -> Sequence[Section]:
        return (
            Section(
                "Checking MFA Configuration...",
                "MFA validation",
                tuple(
                    ManualCheck(f"Check MFA settings in {provider}")
                    for provider in IDENTITY_PROVIDERS
                ),
            ),
            Section(
                "Validating Firewall Rules...",
                "Firewall validation",
                (FunctionCheck(check_default_deny),),
            ),
            Section(
                "Checking Encryption Standards...",
                "Encryption validation",
                (
                    FunctionCheck(check_tls_version),
                    FunctionCheck(check_encryption_algorithms),
                ),
            ),
            Section(
                "Validating Access Controls...",
                "Access control validation",
                (
                    ManualCheck("Check file permissions"),
                    ManualCheck("Review user privileges"),
                ),
            ),
            Section(
                "Checking Network Segmentation...",
                "Network segmentation validation",
                (
                    ManualCheck("Review VLAN configuration"),
                    ManualCheck("Verify network isolation"),
                ),
            ),
            Section(
                "Scanning for secrets in source and configuration files...",
                "Secret scanning",
                (
                    SecretScan(
                        ("src", "config"),
                        (".js", ".ts", ".py", ".env", ".yml", ".yaml", ".json"),
                    ),
                ),
            ),
        )


def check_default_deny(ctx: ValidationContext, results: ValidationResults) -> None:
    for config in FIREWALL_CONFIGS:
        path = ctx.path(config)
        if path.is_file() and "deny" in path.read_text(encoding="utf-8", errors="replace").lower():
            results.pass_("Default deny policies are in place")
            return
    results.fail("Default deny policies not properly configured")


def tls_version() -> float:
    """Highest TLS version the local TLS library supports."""
    if ssl.HAS_TLSv1_3:
        return 1.3
    if ssl.HAS_TLSv1_2:
        return 1.2
    return 1.1


def check_tls_version(ctx: ValidationContext, results: ValidationResults) -> None:
    version = tls_version()
    if version >= 1.2:
        results.pass_(f"TLS {version} in use")
    else:
        results.fail("TLS version below 1.2")


def available_algorithms() -> list[str]:
    names = [name.lower() for name in hashlib.algorithms_available]
    names.extend(c["name"].lower() for c in ssl.create_default_context().get_ciphers())
    return names


def check_encryption_algorithms(ctx: ValidationContext, results: ValidationResults) -> None:
    algorithms = available_algorithms()
    for insecure in INSECURE_ALGORITHMS:
        if any(insecure in name for name in algorithms):
            results.warn(f"Insecure algorithm available: {insecure}")
