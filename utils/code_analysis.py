#!/usr/bin/env python3
"""Diff-signal severity scoring.

Used when no explicit rule names a change's severity. Each pattern group
scores ``min(matches / 10, 1)``; conventional-commit style markers then
boost a group, and the first group over its threshold wins.
"""

from __future__ import annotations

import re
from typing import Dict, List, Optional, Pattern

from utils.change_models import ChangeKind, Severity

_M = re.MULTILINE
_MI = re.MULTILINE | re.IGNORECASE

PATTERN_GROUPS: Dict[Severity, List[Pattern]] = {
    Severity.BREAKING: [
        re.compile(r"^-\s*export\s+(default\s+)?(async\s+)?(function|const|let|class)\s+\w+", _M),
        re.compile(r"^-.*\bfunction\s+\w+\s*\([^)]*\)", _M),
        re.compile(r"^-\s*(async\s+)?def\s+[A-Za-z]\w*\s*\(", _M),
        re.compile(r"^-\s*class\s+[A-Z]\w*", _M),
        re.compile(r"^-.*\w+\s*:\s*\([^)]*\)\s*=>", _M),
        re.compile(r"^[-+].*\b(app|router)\.(get|post|put|delete|patch)\s*\(", _M),
        re.compile(r"\b(ALTER|DROP)\s+(TABLE|COLUMN)\b", _MI),
        re.compile(r"^-.*\bprocess\.env\.\w+", _M),
        re.compile(r"^-.*\bos\.environ\b", _M),
        re.compile(r"(BREAKING|DEPRECATED).*CONFIG", re.IGNORECASE),
    ],
    Severity.FEATURE: [
        re.compile(r"^\+\s*export\s+(async\s+)?(function|const|class)\s+\w+", _M),
        re.compile(r"^\+\s*export\s+default\s+function", _M),
        re.compile(r"^\+\s*(async\s+)?def\s+[A-Za-z]\w*\s*\(", _M),
        re.compile(r"^\+\s*class\s+[A-Z]\w*", _M),
        re.compile(r"^\+.*\b(app|router)\.(get|post|put|delete|patch)\(['\"`]/", _M),
        re.compile(r"^\+.*\bnew\s+feature", _MI),
        re.compile(r"^\+.*\bimplement\s+\w+", _MI),
        re.compile(r"^\+.*\badd\s+\w+\s+functionality", _MI),
    ],
    Severity.FIX: [
        re.compile(r"^\+.*\b(fix|resolve|correct|patch|repair)\s+", _MI),
        re.compile(r"^\+.*\.catch\(", _M),
        re.compile(r"^\+\s*(catch|except)\b", _M),
        re.compile(r"^\+.*console\.(error|warn)", _M),
        re.compile(r"^\+.*logger\.(error|warning)", _M),
        re.compile(r"^\+.*\?\.", _M),
        re.compile(r"^\+.*(!==?|is not)\s*(null|undefined|None)", _M),
        re.compile(r"^\+.*\.(trim|strip)\(\)", _M),
        re.compile(r"^\+.*\b(validate\w*|isValid|sanitize\w*)", _MI),
    ],
    Severity.OTHER: [
        re.compile(r"^\+.*(//|#)\s*(TODO|FIXME)", _M),
        re.compile(r"^\+.*/\*\*[^*]*\*/", _M),
        re.compile(r"^\+\s*$", _M),
        re.compile(r"^\+\s*[;,}]\s*$", _M),
    ],
}

THRESHOLDS = (
    (Severity.BREAKING, 0.3),
    (Severity.FEATURE, 0.2),
    (Severity.FIX, 0.1),
)

_DOC_RE = re.compile(r"(README|\.md$|\.rst$|(^|/)docs/)", re.IGNORECASE)


def _group_score(diff: str, patterns: List[Pattern]) -> float:
    matches = sum(len(p.findall(diff)) for p in patterns)
    return min(matches / 10.0, 1.0)


def score_diff(path: str, diff: Optional[str]) -> Dict[Severity, float]:
    text = diff or ""
    scores = {sev: _group_score(text, patterns) for sev, patterns in PATTERN_GROUPS.items()}
    if _DOC_RE.search(path):
        return {Severity.BREAKING: 0.0, Severity.FEATURE: 0.0, Severity.FIX: 0.0, Severity.OTHER: 1.0}
    if re.search(r"\bfix(\(\w+\))?:", text, re.IGNORECASE):
        scores[Severity.FIX] += 0.4
        scores[Severity.BREAKING] = max(0.0, scores[Severity.BREAKING] - 0.2)
    if re.search(r"\bfeat(\(\w+\))?:", text, re.IGNORECASE):
        scores[Severity.FEATURE] += 0.4
    if re.search(r"BREAKING( CHANGE)?:", text):
        scores[Severity.BREAKING] += 0.6
    return {k: min(1.0, max(0.0, v)) for k, v in scores.items()}


def infer_severity(path: str, diff: Optional[str], kind: ChangeKind = ChangeKind.MODIFIED) -> Severity:
    if _DOC_RE.search(path):
        return Severity.OTHER
    scores = score_diff(path, diff)
    for severity, threshold in THRESHOLDS:
        if scores[severity] > threshold:
            return severity
    # a brand-new file in a feature layer adds a capability
    if kind == ChangeKind.ADDED:
        return Severity.FEATURE
    return Severity.OTHER


# Words that mark a description as describing an incompatible change.
BREAKING_INDICATORS = (
    "remove", "delete", "deprecate", "breaking",
    "incompatible", "major change", "api change",
    "schema change", "database migration",
)
# Words that should not appear in a feature description.
BREAKING_KEYWORDS = (
    "breaking change", "remove", "delete", "deprecate",
    "incompatible", "major refactor", "api breaking",
)


def compliance_warnings(severity: Severity, description: str, path: str) -> List[str]:
    """Non-fatal consistency checks between a severity and its wording."""
    low = description.lower()
    if severity == Severity.BREAKING and not any(w in low for w in BREAKING_INDICATORS):
        return [f"{path}: classified as breaking but description does not say what breaks"]
    if severity == Severity.FEATURE and any(w in low for w in BREAKING_KEYWORDS):
        return [f"{path}: classified as feature but description mentions a breaking change"]
    return []
