from __future__ import annotations

import re
import xml.etree.ElementTree as ET  # nosec B405
from collections.abc import Sequence
from pathlib import Path

from ..results import ValidationResults
from ..rules import (
    DependencyAudit,
    FileExists,
    FunctionCheck,
    SecretScan,
    Section,
    SourceContains,
    files_exist,
)
from .base import ValidationContext, Validator, governance_section

ANDROID_NS = "{http://schemas.android.com/apk/res/android}"
PBXPROJ = "ios/*.xcodeproj/project.pbxproj"
ENTITLEMENTS = "ios/*/*.entitlements"
GRADLE_FILES = ("android/app/build.gradle", "android/app/build.gradle.kts")
MANIFEST = "android/app/src/main/AndroidManifest.xml"
ANDROID_SRC = "android/app/src/main/java"
IOS_BUNDLE = "ios/build/Build/Products/Release-*/*.app"
ANDROID_BUNDLES = (
    "android/app/build/outputs/apk/release/*.apk",
    "android/app/build/outputs/bundle/release/*.aab",
)
REQUIRED_CAPABILITIES = (
    "com.apple.security.application-groups",
    "com.apple.developer.associated-domains",
)
REQUIRED_PERMISSIONS = (
    "android.permission.INTERNET",
    "android.permission.ACCESS_NETWORK_STATE",
)
RASP_FILES = ("ios/**/RASP.swift", f"{ANDROID_SRC}/**/RASP.java", "src/security/rasp.js")
THREAT_DETECTION_FILES = (
    "ios/**/JailbreakDetection.swift",
    f"{ANDROID_SRC}/**/RootDetection.java",
)
IMAGE_DIRS = ("ios", "android/app/src/main/res", "assets", "src/assets")
IMAGE_EXTENSIONS = (".png", ".jpg", ".jpeg", ".webp")
MAX_IMAGE_KB = 500
OBFUSCATION_MARKERS = ("minifyEnabled true", "isMinifyEnabled = true", "proguardFiles")
NATIVE_CODE = (".swift", ".m", ".java", ".kt", ".js", ".ts", ".tsx")

_DEPLOYMENT_TARGET = re.compile(r"IPHONEOS_DEPLOYMENT_TARGET\s*=\s*([0-9.]+)")
_MIN_SDK = re.compile(r"minSdk(?:Version)?\s*=?\s*(\d+)")


class MobileValidator(Validator):
    name = "mobile"
    title = "Mobile Development"

    def sections(self) -> Sequence[Section]:
        return (
            Section(
                "Checking iOS Configuration...",
                "iOS validation",
                (
                    FunctionCheck(check_xcode_settings),
                    FunctionCheck(check_ios_capabilities),
                    FunctionCheck(check_code_signing),
                    SecretScan(("ios", "android", "config"), (".js", ".ts", ".env", ".xml")),
                    DependencyAudit(),
                ),
            ),
            Section(
                "Checking Android Configuration...",
                "Android validation",
                (
                    FunctionCheck(check_gradle_settings),
                    FunctionCheck(check_android_manifest),
                    FileExists(
                        "android/app/proguard-rules.pro",
                        "ProGuard rules found: {path}",
                        "Missing ProGuard rules: {path}",
                    ),
                ),
            ),
            Section(
                "Checking Performance Metrics...",
                "Performance validation",
                (
                    FunctionCheck(check_bundle_size),
                    FunctionCheck(check_images),
                ),
            ),
            Section(
                "Checking Security Controls...",
                "Security validation",
                (
                    SourceContains(
                        ("ios",),
                        (".swift",),
                        (
                            "SSLPinningMode",
                            "PinnedCertificatesTrustEvaluator",
                            "pinnedCertificates",
                        ),
                        "iOS SSL pinning configured",
                        "iOS SSL pinning not found",
                    ),
                    SourceContains(
                        ("android",),
                        (".java", ".kt", ".xml"),
                        ("CertificatePinner", "<pin-set"),
                        "Android SSL pinning configured",
                        "Android SSL pinning not found",
                    ),
                    SourceContains(
                        ("ios", "android", "src"),
                        NATIVE_CODE,
                        (
                            "kSecAttrAccessible",
                            "EncryptedSharedPreferences",
                            "AndroidKeyStore",
                            "react-native-keychain",
                        ),
                        "Secure data storage in use",
                        "No secure data storage found",
                    ),
                    *files_exist(
                        (
                            ".github/workflows/mobile-security.yml",
                            "security/mobile-security.json",
                            "config/mobile-testing.yml",
                        ),
                        "Mobile security testing config found: {path}",
                        "Missing mobile security testing config: {path}",
                    ),
                    FunctionCheck(check_rasp),
                    FunctionCheck(check_threat_detection),
                    FunctionCheck(check_app_shielding),
                ),
            ),
            Section(
                "Checking Accessibility Support...",
                "Accessibility validation",
                (
                    SourceContains(
                        ("ios",),
                        (".swift",),
                        ("accessibilityLabel", "accessibilityHint"),
                        "iOS accessibility labels found",
                        "No iOS accessibility labels found",
                    ),
                    SourceContains(
                        ("android",),
                        (".xml", ".java", ".kt"),
                        ("contentDescription",),
                        "Android content descriptions found",
                        "No Android content descriptions found",
                    ),
                ),
            ),
            governance_section(self.name),
        )


def _match(ctx: ValidationContext, pattern: str) -> Path | None:
    target = ctx.resolve(pattern)
    return target if target is not None and target.exists() else None


def _rel(ctx: ValidationContext, path: Path) -> str:
    return path.relative_to(ctx.repo_path).as_posix()


def _version(text: str) -> tuple[int, ...]:
    return tuple(int(part) for part in text.split(".") if part.isdigit())


def check_xcode_settings(ctx: ValidationContext, results: ValidationResults) -> None:
    pbxproj = _match(ctx, PBXPROJ)
    if pbxproj is None:
        results.fail("Xcode settings check failed: no Xcode project found under ios/")
        return
    targets = _DEPLOYMENT_TARGET.findall(pbxproj.read_text(encoding="utf-8", errors="replace"))
    minimum = _version(str(ctx.mobile.min_ios_target))
    if targets and all(_version(t) >= minimum for t in targets):
        results.pass_("iOS deployment target is set correctly")
    else:
        results.warn("iOS deployment target may need updating")


def check_ios_capabilities(ctx: ValidationContext, results: ValidationResults) -> None:
    entitlements = _match(ctx, ENTITLEMENTS)
    if entitlements is None:
        results.warn("iOS capabilities check failed: no entitlements file found")
        return
    content = entitlements.read_text(encoding="utf-8", errors="replace")
    for capability in REQUIRED_CAPABILITIES:
        if capability in content:
            results.pass_(f"iOS capability found: {capability}")
        else:
            results.warn(f"Missing iOS capability: {capability}")


def check_code_signing(ctx: ValidationContext, results: ValidationResults) -> None:
    pbxproj = _match(ctx, PBXPROJ)
    if pbxproj is None:
        results.skip("iOS code signing not checked: no Xcode project found")
        return
    content = pbxproj.read_text(encoding="utf-8", errors="replace")
    if "DEVELOPMENT_TEAM" in content or "CODE_SIGN_IDENTITY" in content:
        results.pass_("iOS code signing configured")
    else:
        results.warn("iOS code signing not configured")


def _gradle(ctx: ValidationContext) -> Path | None:
    return next((ctx.path(p) for p in GRADLE_FILES if ctx.path(p).is_file()), None)


def check_gradle_settings(ctx: ValidationContext, results: ValidationResults) -> None:
    gradle = _gradle(ctx)
    if gradle is None:
        results.fail("Gradle settings check failed: android/app/build.gradle not found")
        return
    match = _MIN_SDK.search(gradle.read_text(encoding="utf-8", errors="replace"))
    if match and int(match.group(1)) >= ctx.mobile.min_android_sdk:
        results.pass_("Android minimum SDK version is set correctly")
    else:
        results.warn("Android minimum SDK version may need updating")


def check_android_manifest(ctx: ValidationContext, results: ValidationResults) -> None:
    manifest = ctx.path(MANIFEST)
    if not manifest.is_file():
        results.fail(f"Android manifest check failed: {MANIFEST} not found")
        return
    try:
        root = ET.parse(manifest).getroot()  # noqa: S314  # nosec B314
    except ET.ParseError as exc:
        results.fail(f"Android manifest check failed: {exc}")
        return
    declared = {
        el.get(f"{ANDROID_NS}name") or el.get("android:name")
        for el in root.iter("uses-permission")
    }
    for permission in REQUIRED_PERMISSIONS:
        if permission in declared:
            results.pass_(f"Android permission found: {permission}")
        else:
            results.warn(f"Missing Android permission: {permission}")


def _size(path: Path) -> int:
    if path.is_dir():
        return sum(p.stat().st_size for p in path.rglob("*") if p.is_file())
    return path.stat().st_size


def check_bundle_size(ctx: ValidationContext, results: ValidationResults) -> None:
    limit = ctx.mobile.max_bundle_mb * 1024 * 1024
    builds = (
        ("iOS", (IOS_BUNDLE,)),
        ("Android", ANDROID_BUNDLES),
    )
    for platform, patterns in builds:
        bundle = next((m for m in (_match(ctx, p) for p in patterns) if m), None)
        if bundle is None:
            results.warn(f"Bundle size check failed: no {platform} release build found")
        elif _size(bundle) <= limit:
            results.pass_(f"{platform} bundle size within limits")
        else:
            results.warn(f"{platform} bundle size exceeds recommended limit")


def check_images(ctx: ValidationContext, results: ValidationResults) -> None:
    images = ctx.files(IMAGE_DIRS, IMAGE_EXTENSIONS)
    if not images:
        results.skip("Image optimization not checked: no images found")
        return
    oversized = [p for p in images if p.stat().st_size > MAX_IMAGE_KB * 1024]
    for image in oversized:
        results.warn(f"Image {_rel(ctx, image)} exceeds {MAX_IMAGE_KB} KB")
    if not oversized:
        results.pass_(f"Images optimized: {len(images)} files under {MAX_IMAGE_KB} KB")


def check_rasp(ctx: ValidationContext, results: ValidationResults) -> None:
    found = [m for m in (_match(ctx, p) for p in RASP_FILES) if m]
    for path in found:
        results.pass_(f"RASP implementation found: {_rel(ctx, path)}")
    if not found:
        results.warn("No RASP implementation found")


def check_threat_detection(ctx: ValidationContext, results: ValidationResults) -> None:
    for pattern in THREAT_DETECTION_FILES:
        path = _match(ctx, pattern)
        if path is not None:
            results.pass_(f"Threat detection found: {_rel(ctx, path)}")
        else:
            results.warn(f"Missing threat detection: {Path(pattern).name}")


def check_app_shielding(ctx: ValidationContext, results: ValidationResults) -> None:
    gradle = _gradle(ctx)
    content = gradle.read_text(encoding="utf-8", errors="replace") if gradle else ""
    if any(marker in content for marker in OBFUSCATION_MARKERS):
        results.pass_("Android obfuscation configured")
    else:
        results.warn("No Android obfuscation found")
    if ctx.exists("ios/obfuscation-config.yml"):
        results.pass_("iOS obfuscation config found")
    else:
        results.warn("No iOS obfuscation config found")
