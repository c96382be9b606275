from __future__ import annotations

from pathlib import Path

from readiness.results import ValidationResults
from readiness.validators import ValidationContext
from readiness.validators.cloud import check_aws, check_azure, check_cross_cloud_tags, check_gcp

from conftest import FakeRunner, make_result


def _run(check, runner: FakeRunner, tmp_path: Path) -> ValidationResults:
    results = ValidationResults()
    check(ValidationContext(repo_path=tmp_path, runner=runner), results)
    return results


def test_aws_resources(tmp_path: Path) -> None:
    runner = FakeRunner(
        {
            ("aws", "configure", "list"): "profile default",
            ("aws", "ec2", "describe-vpcs"): {
                "Vpcs": [
                    {"VpcId": "vpc-1", "Tags": [{"Key": "Environment", "Value": "prod"}]},
                    {"VpcId": "vpc-2"},
                ]
            },
            ("aws", "ec2", "describe-security-groups"): {
                "SecurityGroups": [
                    {
                        "GroupId": "sg-open",
                        "IpPermissions": [
                            {"FromPort": 0, "IpRanges": [{"CidrIp": "0.0.0.0/0"}]}
                        ],
                    },
                    {"GroupId": "sg-closed", "IpPermissions": []},
                ]
            },
            ("aws", "iam", "get-account-summary"): {"SummaryMap": {"AccountMFAEnabled": 1}},
            ("aws", "ec2", "get-ebs-encryption-by-default"): {"EbsEncryptionByDefault": False},
        }
    )
    results = _run(check_aws, runner, tmp_path)

    assert "AWS CLI configured" in results.passed
    assert "VPC vpc-1 properly tagged" in results.passed
    assert "VPC vpc-2 missing environment tag" in results.warnings
    assert "Security Group sg-open has overly permissive rules" in results.warnings
    assert "Security Group sg-closed has proper restrictions" in results.passed
    assert "AWS root account MFA enabled" in results.passed
    assert "EBS encryption by default disabled" in results.warnings


def test_aws_not_configured(tmp_path: Path) -> None:
    results = _run(check_aws, FakeRunner(), tmp_path)
    assert results.warnings == ["AWS CLI not configured or credentials missing"]
    assert results.not_checked == ["AWS resource checks skipped: CLI not configured"]
    assert results.passed == []


def test_aws_cli_failing_login_counts_as_unconfigured(tmp_path: Path) -> None:
    runner = FakeRunner(
        {("aws", "configure", "list"): make_result(("aws", "configure", "list"), "", 255)}
    )
    results = _run(check_aws, runner, tmp_path)
    assert results.warnings == ["AWS CLI not configured or credentials missing"]


def test_resource_error_is_recorded_per_group(tmp_path: Path) -> None:
    runner = FakeRunner(
        {
            ("aws", "configure", "list"): "ok",
            ("aws", "ec2", "describe-vpcs"): {"Unexpected": []},
            ("aws", "iam", "get-account-summary"): {"SummaryMap": {}},
            ("aws", "ec2", "get-ebs-encryption-by-default"): {"EbsEncryptionByDefault": True},
        }
    )
    results = _run(check_aws, runner, tmp_path)
    assert results.failed[0] == "VPC validation failed: 'Vpcs'"
    assert results.failed[1].startswith("Security group validation failed:")
    assert "AWS root account MFA not enabled" in results.warnings
    assert "EBS encryption by default enabled" in results.passed


def test_azure_owner_assignments(tmp_path: Path) -> None:
    owners = [{"roleDefinitionName": "Owner"} for _ in range(4)]
    runner = FakeRunner(
        {
            ("az", "account", "show"): {"id": "sub"},
            ("az", "network", "vnet", "list"): [{"name": "vnet-a", "tags": {"Environment": "dev"}}],
            ("az", "network", "nsg", "list"): [],
            ("az", "role", "assignment", "list"): owners,
            ("az", "storage", "account", "list"): [
                {
                    "name": "store1",
                    "encryption": {"services": {"blob": {"enabled": True}}},
                    "enableHttpsTrafficOnly": True,
                }
            ],
        }
    )
    results = _run(check_azure, runner, tmp_path)
    assert "VNet vnet-a properly tagged" in results.passed
    assert "Azure subscription has 4 Owner role assignments" in results.warnings
    assert "Storage account store1 encrypted" in results.passed


def test_gcp_public_iam_binding(tmp_path: Path) -> None:
    runner = FakeRunner(
        {
            ("gcloud", "config", "list"): "[core]",
            ("gcloud", "config", "get-value", "project"): "my-project\n",
            ("gcloud", "compute", "networks", "list"): [
                {"name": "default", "autoCreateSubnetworks": True}
            ],
            ("gcloud", "compute", "firewall-rules", "list"): [],
            ("gcloud", "projects", "get-iam-policy"): {
                "bindings": [{"role": "roles/viewer", "members": ["allUsers"]}]
            },
            ("gcloud", "kms", "keyrings", "list"): [],
        }
    )
    results = _run(check_gcp, runner, tmp_path)
    assert "GCP network default uses auto-mode subnets" in results.warnings
    assert "GCP IAM grants public access: roles/viewer" in results.failed
    assert "No GCP KMS key rings found" in results.warnings
    assert (
        "gcloud",
        "projects",
        "get-iam-policy",
        "my-project",
        "--format=json",
    ) in runner.calls


def test_cross_cloud_tags_without_clis(tmp_path: Path) -> None:
    results = _run(check_cross_cloud_tags, FakeRunner(), tmp_path)
    assert results.warnings == ["Cross-cloud tag validation failed: aws not found on PATH"]
