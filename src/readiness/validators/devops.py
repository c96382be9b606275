from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path
from typing import Any

import yaml

from ..results import ValidationResults
from ..rules import FunctionCheck, SecretScan, Section
from .base import ValidationContext, Validator

PIPELINE_CONFIGS = (".github/workflows", ".gitlab-ci.yml", "Jenkinsfile", "azure-pipelines.yml")
REQUIRED_STAGES = ("build", "test", "deploy")
JENKINS_SECTIONS = ("pipeline", "stages", "stage")
TERRAFORM_FILES = ("main.tf", "variables.tf", "outputs.tf")
KUBERNETES_RESOURCES = ("deployments", "services", "configmaps")
KUBERNETES_DIRS = ("kubernetes", "k8s")
MONITORING_TOOLS = ("prometheus", "grafana", "elasticsearch", "datadog")
MONITORING_FILES = {
    "prometheus": ("Prometheus", ("prometheus.yml", "alerts.yml")),
    "grafana": ("Grafana", ("datasources", "dashboards")),
}
YAML_SUFFIXES = (".yml", ".yaml")


class DevOpsValidator(Validator):
    name = "devops"
    title = "DevOps"

    def sections(self) -> Sequence[Section]:
        return (
            Section(
                "Checking CI/CD Configuration...",
                "CI/CD validation",
                (FunctionCheck(check_pipelines),),
            ),
            Section(
                "Validating Infrastructure Configuration...",
                "Infrastructure validation",
                (FunctionCheck(check_infrastructure),),
            ),
            Section(
                "Checking Monitoring Configuration...",
                "Monitoring validation",
                (FunctionCheck(check_monitoring),),
            ),
            Section(
                "Scanning for secrets in pipeline and infrastructure files...",
                "Secret scanning",
                (
                    SecretScan(
                        (".github", "terraform", "kubernetes", "k8s", "ansible"),
                        (".yml", ".yaml", ".tf", ".env"),
                    ),
                ),
            ),
        )


def check_pipelines(ctx: ValidationContext, results: ValidationResults) -> None:
    found = False
    for config in PIPELINE_CONFIGS:
        path = ctx.path(config)
        if not path.exists():
            continue
        found = True
        try:
            _validate_pipeline(path, config, results)
        except (OSError, yaml.YAMLError) as exc:
            results.fail(f"Pipeline config validation failed for {config}: {exc}")
    if not found:
        results.warn("No CI/CD configuration found")


def _validate_pipeline(path: Path, config: str, results: ValidationResults) -> None:
    if path.is_dir():
        for workflow in sorted(path.iterdir()):
            if workflow.suffix not in YAML_SUFFIXES:
                continue
            try:
                document = yaml.safe_load(workflow.read_text(encoding="utf-8"))
            except (OSError, yaml.YAMLError) as exc:
                results.fail(
                    f"Pipeline config validation failed for {config}/{workflow.name}: {exc}"
                )
                continue
            _validate_stages(document, results)
        return
    content = path.read_text(encoding="utf-8")
    if path.name == "Jenkinsfile":
        for section in JENKINS_SECTIONS:
            if section not in content:
                results.warn(f"Jenkinsfile missing {section} section")
        return
    _validate_stages(yaml.safe_load(content), results)


def extract_stages(workflow: Any) -> set[str]:
    """Job names (GitHub Actions, Azure) or declared stages (GitLab CI)."""
    if not isinstance(workflow, dict):
        return set()
    if isinstance(workflow.get("jobs"), dict):
        return {str(job).lower() for job in workflow["jobs"]}
    if isinstance(workflow.get("stages"), list):
        stages: set[str] = set()
        for stage in workflow["stages"]:
            if isinstance(stage, dict):
                stage = stage.get("stage", "")
            stages.add(str(stage).lower())
        return stages
    return set()


def _validate_stages(workflow: Any, results: ValidationResults) -> None:
    stages = extract_stages(workflow)
    for stage in REQUIRED_STAGES:
        if stage in stages:
            results.pass_(f"Pipeline includes {stage} stage")
        else:
            results.warn(f"Pipeline missing {stage} stage")


def check_infrastructure(ctx: ValidationContext, results: ValidationResults) -> None:
    found = False

    if ctx.exists("terraform"):
        found = True
        for file in TERRAFORM_FILES:
            if ctx.exists(f"terraform/{file}"):
                results.pass_(f"Terraform {file} exists")
            else:
                results.warn(f"Missing {file} in Terraform config")

    kube_dir = next((d for d in KUBERNETES_DIRS if ctx.exists(d)), None)
    if kube_dir:
        found = True
        for resource in KUBERNETES_RESOURCES:
            if ctx.exists(f"{kube_dir}/{resource}"):
                results.pass_(f"Kubernetes {resource} configured")
            else:
                results.warn(f"Missing {resource} in Kubernetes config")

    if ctx.exists("cloudformation"):
        found = True
        templates = ctx.files(("cloudformation",), (".yml", ".yaml", ".json", ".template"))
        if templates:
            results.pass_(f"CloudFormation templates found: {len(templates)}")
        else:
            results.warn("No templates in CloudFormation config")

    if ctx.exists("ansible"):
        found = True
        playbooks = ctx.files(("ansible",), YAML_SUFFIXES)
        if playbooks:
            results.pass_(f"Ansible playbooks found: {len(playbooks)}")
        else:
            results.warn("No playbooks in Ansible config")

    if not found:
        results.warn("No infrastructure-as-code configuration found")


def check_monitoring(ctx: ValidationContext, results: ValidationResults) -> None:
    for tool in MONITORING_TOOLS:
        config_dir = f"monitoring/{tool}"
        if not ctx.exists(config_dir):
            results.warn(f"{tool} monitoring not configured")
            continue
        results.pass_(f"{tool} monitoring configured")
        if tool in MONITORING_FILES:
            display, files = MONITORING_FILES[tool]
            for file in files:
                if ctx.exists(f"{config_dir}/{file}"):
                    results.pass_(f"{display} {file} configured")
                else:
                    results.warn(f"Missing {file} in {display} config")
