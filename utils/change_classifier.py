#!/usr/bin/env python3
"""Change classification.

Turns each pending change into a severity and a specific description. The
stages run in a fixed order and the first one that produces a description
wins:

1. content rules (project rules first, then built-ins)
2. path lookup table
3. known features recorded against the same source path
4. structural heuristic from directory role and added/removed line counts

If the only description left is boilerplate the change is refused and the
whole run stops.
"""

from __future__ import annotations

import logging
import os
import re
from typing import Iterable, List, Optional, Sequence, Tuple

from configs.config import Config
from utils.change_models import ChangeKind, ChangeRecord, ClassifiedChange, Severity
from utils.classification_rules import (
    CONTENT_RULES,
    PATH_DESCRIPTIONS,
    ChangeContext,
    ClassificationRule,
)
from utils.code_analysis import compliance_warnings, infer_severity
from utils.release_models import FeatureRecord, ReleaseType
from utils.result import FailureKind, Result
from utils.validation import validate_change

logger = logging.getLogger(__name__)

# (role, verb, noun); checked in order against "/" + path
_ROLES: List[Tuple[str, str, str]] = [
    ("api", "Enhanced", "API endpoint"),
    ("hook", "Updated", "hook"),
    ("component", "Updated", "component"),
    ("page", "Improved", "page"),
    ("library", "Enhanced", "service"),
]
_NAMELESS_STEMS = {"page", "route", "layout", "index", "template"}
_SKIP_SEGMENTS = {"app", "api", "src", "pages", "components", "lib", "hooks", "utils"}


def count_changes(diff: Optional[str]) -> Tuple[int, int]:
    added = removed = 0
    for line in (diff or "").splitlines():
        if line.startswith("+") and not line.startswith("+++"):
            added += 1
        elif line.startswith("-") and not line.startswith("---"):
            removed += 1
    return added, removed


def changed_lines_text(diff: Optional[str]) -> str:
    lines = [
        ln for ln in (diff or "").splitlines()
        if (ln.startswith("+") and not ln.startswith("+++")) or (ln.startswith("-") and not ln.startswith("---"))
    ]
    return " ".join(lines).lower()


def build_context(path: str, diff: Optional[str], content: Optional[str], kind: ChangeKind) -> ChangeContext:
    if not diff and kind == ChangeKind.ADDED and content:
        # a new file is an all-additions diff
        diff = "\n".join("+" + ln for ln in content.splitlines())
    added, removed = count_changes(diff)
    return ChangeContext(
        path=path,
        kind=kind,
        changes_text=changed_lines_text(diff),
        content=content or "",
        added=added,
        removed=removed,
    )


def detect_role(path: str) -> Optional[str]:
    p = "/" + path.lower()
    base = os.path.basename(p)
    if "/api/" in p or base.startswith("route."):
        return "api"
    if "/hooks/" in p:
        return "hook"
    if "/components/" in p:
        return "component"
    if base.startswith(("page.", "layout.")) or "/pages/" in p:
        return "page"
    if "/lib/" in p or "/utils/" in p or "/services/" in p:
        return "library"
    return None


def display_name(path: str) -> str:
    parts = [p for p in path.replace("\\", "/").split("/") if p]
    stem = os.path.splitext(parts[-1])[0] if parts else ""
    if stem.lower() in _NAMELESS_STEMS:
        segs = [s for s in parts[:-1] if s.lower() not in _SKIP_SEGMENTS and not re.match(r"^[\[(].*[\])]$", s)]
        stem = " ".join(segs) or "root"
    return re.sub(r"[-_]+", " ", stem).strip()


def structural_description(ctx: ChangeContext, large_change_lines: int) -> str:
    role = detect_role(ctx.path)
    verb, noun = next(((v, n) for r, v, n in _ROLES if r == role), ("Changed", "module"))
    name = display_name(ctx.path)
    a, r = ctx.added, ctx.removed
    if ctx.kind == ChangeKind.ADDED:
        return f"Added {name} {noun} ({a} lines)"
    if a > r and a > large_change_lines:
        phrase = "added new functionality"
    elif a > r:
        phrase = "extended existing behaviour"
    elif r > a:
        phrase = "simplified and optimized existing logic"
    else:
        phrase = "improved performance of existing logic"
    return f"{verb} {name} {noun}: {phrase} (+{a}/-{r} lines)"


def boilerplate_description(path: str) -> str:
    """What is left to say about a change with no diff and no rule."""
    name = display_name(path)
    role = detect_role(path)
    if role == "api":
        return f"Enhanced {name} API endpoint with improved functionality and error handling"
    if role == "component":
        return f"Updated {name} component with enhanced user interface and functionality"
    if role == "page":
        return f"Improved {name} page with better user experience and functionality"
    if role == "library":
        return f"Enhanced {name} service with improved functionality and reliability"
    return f"Enhanced {name} system with improved functionality and reliability"


def humanize_description(description: str) -> str:
    """Rewrite a bare lowercase verb phrase ("add export") as a sentence.

    Anything already starting with a capital is kept verbatim.
    """
    text = (description or "").strip()
    if not text or not text[0].islower():
        return text
    first, _, rest = text.partition(" ")
    past = {"fix": "Fixed", "add": "Added", "update": "Updated", "enhance": "Enhanced", "remove": "Removed", "improve": "Improved"}
    head = past.get(first.lower(), first[:1].upper() + first[1:])
    return f"{head} {rest}".strip()


class ChangeClassifier:
    def __init__(
        self,
        *,
        rules: Optional[Sequence[ClassificationRule]] = None,
        extra_rules: Optional[Sequence[ClassificationRule]] = None,
        path_descriptions: Optional[Sequence[Tuple[str, str]]] = None,
        known_features: Optional[Iterable[FeatureRecord]] = None,
        large_change_lines: Optional[int] = None,
    ) -> None:
        self.rules: List[ClassificationRule] = list(extra_rules or []) + list(CONTENT_RULES if rules is None else rules)
        self.path_descriptions = list(PATH_DESCRIPTIONS if path_descriptions is None else path_descriptions)
        self.features_by_path = {f.source_path: f for f in (known_features or []) if f.source_path}
        self.large_change_lines = Config.LARGE_CHANGE_LINES if large_change_lines is None else large_change_lines

    def _describe(self, ctx: ChangeContext, diff: Optional[str]) -> Tuple[Severity, str, Optional[str], str]:
        for rule in self.rules:
            if rule.matches(ctx):
                name = display_name(ctx.path)
                desc = rule.description.replace("{name}", name)
                detail = rule.detail.replace("{name}", name) if rule.detail else None
                return rule.severity, desc, detail, f"rule:{rule.id}"
        severity = infer_severity(ctx.path, diff, ctx.kind)
        for key, desc in self.path_descriptions:
            if key.lower() in ctx.path_lower:
                return severity, desc, None, f"path:{key}"
        feature = self.features_by_path.get(ctx.path)
        if feature is not None:
            return severity, f"Enhanced {feature.name}: {feature.description}", None, "ledger"
        if ctx.added or ctx.removed:
            return severity, structural_description(ctx, self.large_change_lines), None, "structural"
        return severity, boilerplate_description(ctx.path), None, "boilerplate"

    def classify(
        self,
        path: str,
        diff: Optional[str],
        content: Optional[str],
        kind: ChangeKind = ChangeKind.MODIFIED,
    ) -> Result[ClassifiedChange]:
        ctx = build_context(path, diff, content, kind)
        if kind == ChangeKind.ADDED and not diff:
            diff = "\n".join("+" + ln for ln in (content or "").splitlines())
        severity, desc, detail, source = self._describe(ctx, diff)
        body_lines = [ln.strip() for ln in (detail or desc).splitlines() if ln.strip()]
        body = "\n".join(ln if ln.startswith("- ") else f"- {ln}" for ln in body_lines)
        change = ClassifiedChange(path=path, severity=severity, description=desc, detail_body=body, source=source)
        checked = validate_change(change)
        if not checked.is_ok:
            logger.error(f"No specific description for {path} (stage={source})")
            return Result.err(
                FailureKind.CLASSIFICATION,
                f"Unable to generate specific release notes for {path}",
                checked.failure.details + [f"add a rule for this change to {Config.RELEASE_RULES_PATH}"],
            )
        logger.debug(f"{path}: {severity.value} via {source}")
        return checked

    def classify_all(self, changes: Iterable[ChangeRecord]) -> Result[List[ClassifiedChange]]:
        out: List[ClassifiedChange] = []
        for change in changes:
            res = self.classify(change.path, change.raw_diff, change.content, change.kind)
            if not res.is_ok:
                return Result(failure=res.failure)
            out.append(res.value)
        return Result.ok(out)


def aggregate_severity(changes: Iterable[ClassifiedChange]) -> Severity:
    """Strict precedence: breaking, then feature, then fix."""
    severities = {c.severity for c in changes}
    if Severity.BREAKING in severities:
        return Severity.BREAKING
    if Severity.FEATURE in severities:
        return Severity.FEATURE
    return Severity.FIX


def release_type_for(changes: Iterable[ClassifiedChange]) -> ReleaseType:
    severities = {c.severity for c in changes}
    if Severity.BREAKING in severities:
        return "Major Release"
    if Severity.FEATURE in severities:
        return "Feature Release"
    if Severity.FIX in severities:
        return "Bug Fix Release"
    return "Maintenance Release"


def collect_compliance_warnings(changes: Iterable[ClassifiedChange]) -> List[str]:
    warnings: List[str] = []
    for c in changes:
        warnings.extend(compliance_warnings(c.severity, c.description, c.path))
    return warnings
