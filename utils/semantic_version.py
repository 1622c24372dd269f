#!/usr/bin/env python3
"""Version arithmetic for the dev and prod release lanes.

Prod versions are bare ``MAJOR.MINOR.PATCH``. Dev versions carry a counter,
``MAJOR.MINOR.PATCH-dev.N``, that increases within one base triple.
"""

from __future__ import annotations

import functools
import logging
import re
from dataclasses import dataclass
from typing import Iterable, List, Optional

from utils.change_models import Severity
from utils.release_models import DEV_MARKER, Environment, ReleaseRecord
from utils.result import FailureKind, Result

logger = logging.getLogger(__name__)

SEMVER_RE = re.compile(
    r"^(0|[1-9]\d*)\.(0|[1-9]\d*)\.(0|[1-9]\d*)"
    r"(?:-((?:0|[1-9]\d*|\d*[a-zA-Z-][0-9a-zA-Z-]*)(?:\.(?:0|[1-9]\d*|\d*[a-zA-Z-][0-9a-zA-Z-]*))*))?"
    r"(?:\+([0-9a-zA-Z-]+(?:\.[0-9a-zA-Z-]+)*))?$"
)
_DEV_COUNTER_RE = re.compile(r"-dev\.(\d+)")

DEFAULT_VERSIONS = {
    Environment.PROD: "1.0.0",
    Environment.DEV: "1.0.0-dev.0",
}


@dataclass(frozen=True)
class ParsedVersion:
    major: int
    minor: int
    patch: int
    dev: Optional[int] = None

    @property
    def base(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"


def validate_format(version: str) -> bool:
    return bool(version) and SEMVER_RE.match(version) is not None


def parse_version(version: str) -> ParsedVersion:
    """Parse a lane version. Raises ValueError when the core triple is malformed."""
    core = (version or "").split("-", 1)[0].split("+", 1)[0]
    parts = core.split(".")
    if len(parts) != 3 or not all(p.isdigit() for p in parts):
        raise ValueError(f"Invalid version: {version!r}")
    m = _DEV_COUNTER_RE.search(version)
    return ParsedVersion(int(parts[0]), int(parts[1]), int(parts[2]), int(m.group(1)) if m else None)


def strip_dev(version: str) -> str:
    return version.split(DEV_MARKER, 1)[0]


def increment_version(version: str, severity: Severity) -> str:
    v = parse_version(strip_dev(version))
    if severity == Severity.BREAKING:
        return f"{v.major + 1}.0.0"
    if severity == Severity.FEATURE:
        return f"{v.major}.{v.minor + 1}.0"
    if severity == Severity.FIX:
        return f"{v.major}.{v.minor}.{v.patch + 1}"
    raise ValueError(f"No version increment defined for severity {severity!r}")


def calculate_next_version(current: str, environment: Environment, severity: Severity) -> str:
    if environment == Environment.DEV:
        parsed = parse_version(current)
        if parsed.dev is not None:
            return f"{parsed.base}{DEV_MARKER}{parsed.dev + 1}"
        return f"{increment_version(current, severity)}{DEV_MARKER}1"
    return increment_version(current, severity)


def compare_versions(a: str, b: str) -> int:
    va, vb = parse_version(a), parse_version(b)
    for x, y in ((va.major, vb.major), (va.minor, vb.minor), (va.patch, vb.patch)):
        if x != y:
            return -1 if x < y else 1
    if va.dev is not None and vb.dev is not None:
        return (va.dev > vb.dev) - (va.dev < vb.dev)
    # dev sorts before prod on the same base
    if va.dev is not None:
        return -1
    if vb.dev is not None:
        return 1
    return 0


version_key = functools.cmp_to_key(compare_versions)


def sort_versions(versions: Iterable[str]) -> List[str]:
    return sorted(versions, key=version_key)


def validate_increment(current: str, next_version: str, severity: Severity, environment: Environment) -> Result[str]:
    """Check that ``next_version`` is exactly the step ``severity`` requires."""
    if environment == Environment.PROD:
        try:
            expected = increment_version(current, severity)
        except ValueError as e:
            return Result.err(FailureKind.VERSION_INCREMENT, str(e))
        if next_version == expected:
            return Result.ok(next_version)
        labels = {
            Severity.BREAKING: "Breaking changes require major version increment",
            Severity.FEATURE: "Feature changes require minor version increment",
            Severity.FIX: "Bug fixes require patch version increment",
        }
        return Result.err(
            FailureKind.VERSION_INCREMENT,
            f"{labels[severity]}: {current} -> {expected} (computed {next_version})",
        )
    cur, nxt = parse_version(current), parse_version(next_version)
    if cur.dev is not None and nxt.dev is not None and nxt.dev <= cur.dev:
        return Result.err(
            FailureKind.VERSION_INCREMENT,
            f"Dev counter must increase: {current} -> {next_version}",
        )
    return Result.ok(next_version)


class VersionCalculator:
    """Reads the release collection and derives lane versions from it."""

    def __init__(self, store) -> None:
        self.store = store

    def _lane_versions(self, environment: Environment) -> List[str]:
        out = []
        for release in self.store.get_releases():
            if release.lane != environment:
                continue
            if not validate_format(release.version):
                logger.warning(f"Ignoring release with malformed version: {release.version!r}")
                continue
            out.append(release.version)
        return out

    def current_version(self, environment: Environment) -> str:
        versions = self._lane_versions(environment)
        if not versions:
            return DEFAULT_VERSIONS[environment]
        return sort_versions(versions)[-1]

    def next_version(self, environment: Environment, severity: Severity) -> str:
        return calculate_next_version(self.current_version(environment), environment, severity)

    def compute(self, environment: Environment, severity: Severity) -> Result[str]:
        """Current and next version for one lane, with both validators applied."""
        current = self.current_version(environment)
        try:
            nxt = calculate_next_version(current, environment, severity)
        except ValueError as e:
            return Result.err(FailureKind.VERSION_FORMAT, str(e))
        logger.info(f"Version {environment.value}: {current} -> {nxt} ({severity.value})")
        if not validate_format(nxt):
            return Result.err(FailureKind.VERSION_FORMAT, f"Computed version is not valid SemVer: {nxt!r}")
        checked = validate_increment(current, nxt, severity, environment)
        if not checked.is_ok:
            return checked
        return self.ensure_unreleased(current, nxt)

    def ensure_unreleased(self, current: str, next_version: str) -> Result[str]:
        if compare_versions(next_version, current) <= 0:
            return Result.err(
                FailureKind.VERSION_INCREMENT,
                f"Version {next_version} does not order after current version {current}",
            )
        existing = {r.version for r in self.store.get_releases()}
        if next_version in existing:
            return Result.err(FailureKind.VERSION_INCREMENT, f"Version {next_version} has already been released")
        return Result.ok(next_version)
