#!/usr/bin/env python3
"""Rule tables for change classification and feature discovery.

Three ordered tables drive the classifier and the feature ledger:

* ``CONTENT_RULES``: marker-substring rules over path, diff and file content.
  First match wins, so more specific rules sit above broader ones.
* ``PATH_DESCRIPTIONS``: curated descriptions keyed by a path substring.
* ``FEATURE_SIGNATURES``: path/content signatures that name capabilities.

A project can prepend its own entries through a YAML rule file.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import List, Optional, Tuple

import yaml
from pydantic import BaseModel, Field, ValidationError, model_validator

from utils.change_models import ChangeKind, Severity

logger = logging.getLogger(__name__)


class RuleFileError(Exception):
    def __init__(self, message: str, code: str = "UNKNOWN", *, cause: Exception | None = None):
        super().__init__(message)
        self.code = code
        self.cause = cause


@dataclass(frozen=True)
class ChangeContext:
    """Lower-cased views of one change that rules match against."""
    path: str
    kind: ChangeKind
    changes_text: str
    content: str
    added: int
    removed: int

    @property
    def path_lower(self) -> str:
        return self.path.lower()


class _Matcher(BaseModel):
    path_contains: List[str] = Field(default_factory=list)
    diff_contains_all: List[str] = Field(default_factory=list)
    diff_contains_any: List[str] = Field(default_factory=list)
    content_contains_all: List[str] = Field(default_factory=list)
    kinds: List[ChangeKind] = Field(default_factory=list)

    model_config = {"extra": "forbid"}

    @model_validator(mode="after")
    def _has_condition(self):
        if not (self.path_contains or self.diff_contains_all or self.diff_contains_any or self.content_contains_all):
            raise ValueError("rule needs at least one path, diff or content condition")
        return self

    def matches(self, ctx: ChangeContext) -> bool:
        if self.kinds and ctx.kind not in self.kinds:
            return False
        path = ctx.path_lower
        if not all(p.lower() in path for p in self.path_contains):
            return False
        if not all(m.lower() in ctx.changes_text for m in self.diff_contains_all):
            return False
        if self.diff_contains_any and not any(m.lower() in ctx.changes_text for m in self.diff_contains_any):
            return False
        content = ctx.content.lower()
        return all(m.lower() in content for m in self.content_contains_all)


class ClassificationRule(_Matcher):
    id: str
    severity: Severity
    description: str
    detail: Optional[str] = None


class FeatureDraft(BaseModel):
    name: str
    description: str
    category: str


class FeatureSignature(_Matcher):
    id: str
    drafts: List[FeatureDraft]


def _rule(id, severity, description, **conditions) -> ClassificationRule:
    return ClassificationRule(id=id, severity=severity, description=description, **conditions)


CONTENT_RULES: List[ClassificationRule] = [
    _rule(
        "sse-controller-state", Severity.FIX,
        "Fixed Server-Sent Events connection stability by adding controller state validation and better error handling",
        diff_contains_any=["controller.desiredsize", "err_incomplete_chunked"],
    ),
    _rule(
        "sse-heartbeat", Severity.FIX,
        "Improved SSE heartbeat timing and connection management to prevent timeout errors",
        diff_contains_all=["heartbeat", "20000"],
    ),
    _rule(
        "sse-transfer-encoding", Severity.FIX,
        "Removed conflicting Transfer-Encoding header to fix incomplete chunked encoding errors in SSE streams",
        diff_contains_all=["transfer-encoding", "chunked"],
    ),
    _rule(
        "notes-fail-closed", Severity.FEATURE,
        "Release notes now fail the release when a change cannot be described specifically",
        diff_contains_all=["throw new error", "specific"],
    ),
    _rule(
        "webex-ssm-storage", Severity.FIX,
        "Fixed Webex settings to save to SSM parameters instead of database for persistence across App Runner deployments",
        diff_contains_all=["ssmclient", "webex"],
    ),
    _rule(
        "webex-ssm-isolation", Severity.FIX,
        "Webex configuration reads environment-specific SSM parameters so dev and prod stay isolated",
        diff_contains_all=["putparametercommand", "webex_scoop"],
    ),
    _rule(
        "breadcrumb-home", Severity.FIX,
        "Fixed duplicate Home links in breadcrumb navigation by removing redundant breadcrumb items",
        diff_contains_all=["breadcrumb", "home"],
    ),
    _rule(
        "environment-source", Severity.FIX,
        "Fixed environment detection to use the ENVIRONMENT value from apprunner.yaml as the single source of truth for dev/prod targeting",
        diff_contains_all=["environment"],
        diff_contains_any=["node_env", "single source"],
    ),
    _rule(
        "current-version-setting", Severity.FIX,
        "Fixed version display in navbar by updating current_version setting when new releases are created",
        diff_contains_all=["current_version", "setting"],
    ),
    _rule(
        "settings-ssm-route", Severity.FEATURE,
        "Settings API stores configuration in SSM parameters so it persists across deployments",
        path_contains=["route."],
        diff_contains_all=["ssm"],
    ),
    _rule(
        "semantic-versioner", Severity.FEATURE,
        "Created SemanticVersioner class with SemVer 2.0.0 format validation and release-history driven version calculation",
        diff_contains_all=["class semanticversioner"],
    ),
    _rule(
        "sidebar-practice-information", Severity.FEATURE,
        "Added Practice Information menu item to sidebar navigation between Dashboard and Practice Issues",
        path_contains=["sidebarlayout"],
        content_contains_all=["Practice Information", "practice-information"],
    ),
]

# Ordered: longer keys first where one key contains another.
PATH_DESCRIPTIONS: List[Tuple[str, str]] = [
    ("api/events", "Fixed Server-Sent Events endpoint to prevent incomplete chunked encoding errors and improve real-time connection stability"),
    ("api/timezone", "Added timezone API endpoint that exposes the DEFAULT_TIMEZONE setting to frontend components"),
    ("api/releases", "Releases API now returns release timestamps and reads the release collection in a single query"),
    ("release-notes/", "Release notes page shows timestamps in the viewer's configured timezone"),
    ("samlconfig", "Fixed SAML metadata parsing to properly extract SSO URLs and certificates from Duo XML"),
    ("saml", "Fixed SAML login URL generation by correcting metadata storage and parsing logic"),
    ("navbar", "Fixed navbar component to keep container alignment consistent with table layouts across all pages"),
    ("webex-check", "Added Webex notification enablement check using database settings for proper integration flow"),
    ("apprunner", "Deployment configuration passes ENVIRONMENT and table names to the running service"),
]

FEATURE_SIGNATURES: List[FeatureSignature] = [
    FeatureSignature(
        id="sidebar-practice-information",
        path_contains=["sidebarlayout"],
        content_contains_all=["Practice Information", "practice-information"],
        drafts=[FeatureDraft(
            name="Practice Information Menu Item",
            description="Added new Practice Information menu item to sidebar navigation between Dashboard and Practice Issues",
            category="Navigation",
        )],
    ),
    FeatureSignature(
        id="new-issue-page",
        path_contains=["new-issue", "page."],
        drafts=[
            FeatureDraft(name="Practice-Based Issue System", description="Issue creation with practice selection and leadership routing", category="Issue Management"),
            FeatureDraft(name="Leadership Selection System", description="Dynamic leadership selection for practice-specific questions", category="Practice Management"),
            FeatureDraft(name="New Issue Type System", description="Five question types: Leadership, Technical, Process, General, Practice", category="Issue Management"),
        ],
    ),
    FeatureSignature(
        id="practice-issues-page",
        path_contains=["practice-issues", "page."],
        drafts=[
            FeatureDraft(name="Practice Issues Dashboard", description="Dedicated page for viewing and managing practice-specific issues", category="User Interface"),
            FeatureDraft(name="Issue Table/Card Components", description="Reusable components for displaying issues in table and card formats", category="User Interface"),
        ],
    ),
    FeatureSignature(
        id="admin-settings-page",
        path_contains=["admin/settings", "page."],
        drafts=[
            FeatureDraft(name="Practice Role Validation", description="Prevents multiple managers/principals per practice", category="User Management"),
            FeatureDraft(name="User Status Management", description="Active/Staged user status with visual indicators", category="User Management"),
        ],
    ),
    FeatureSignature(
        id="practice-leadership-api",
        path_contains=["/api/practice-leadership"],
        drafts=[FeatureDraft(name="Practice Leadership API", description="API endpoint for fetching practice managers and principals", category="API")],
    ),
    FeatureSignature(
        id="dynamodb-schema",
        path_contains=["lib/dynamodb."],
        drafts=[FeatureDraft(name="Practice-Based Database Schema", description="Updated schema with practice fields and leadership selection support", category="Database")],
    ),
]


def load_project_rules(path: str) -> Tuple[List[ClassificationRule], List[FeatureSignature]]:
    """Read extra rules and feature signatures from a YAML rule file.

    A missing file yields empty lists. Malformed content raises RuleFileError.
    """
    if not path or not os.path.exists(path):
        return [], []
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise RuleFileError(f"Invalid YAML in {path}: {e}", code="PARSE", cause=e)
    if not isinstance(data, dict):
        raise RuleFileError(f"{path} must contain a mapping with 'rules' and/or 'features'", code="STRUCTURE")
    try:
        rules = [ClassificationRule.model_validate(r) for r in data.get("rules") or []]
        signatures = [FeatureSignature.model_validate(s) for s in data.get("features") or []]
    except ValidationError as e:
        raise RuleFileError(f"Invalid rule in {path}: {e}", code="FIELDS", cause=e)
    logger.info(f"Loaded {len(rules)} rule(s) and {len(signatures)} feature signature(s) from {path}")
    return rules, signatures
