#!/usr/bin/env python3
"""
Release Agent - version, describe and publish the pending working-tree changes.

Runs scan -> classify -> compute -> preview, waits for an explicit yes/no,
and only then records the release, moves the current-version pointer and
creates one commit that it pushes to the checked-out branch.
"""
from __future__ import annotations

import logging
import os
import sys
from datetime import date
from enum import Enum
from typing import Callable, List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

load_dotenv(".env.local")
load_dotenv()

from configs.config import Config
from clients.git_client import GitClient, GitError
from clients.release_store import ReleaseStore, StoreError, build_store
from utils.change_classifier import (
	ChangeClassifier,
	aggregate_severity,
	collect_compliance_warnings,
	release_type_for,
)
from utils.change_models import ChangeRecord, ClassifiedChange, GroupedChanges, Severity
from utils.change_scanner import ChangeScanner
from utils.classification_rules import RuleFileError, load_project_rules
from utils.deploy_descriptor import DescriptorError, read_environment, sync_descriptor
from utils.feature_ledger import FeatureLedger
from utils.markdown_renderer import format_release_date, render_release_notes
from utils.normalization import flatten_descriptions, group_changes
from utils.release_models import Environment, FeatureRecord, ReleaseRecord
from utils.release_page import refresh_release_page
from utils.result import Failure, FailureKind
from utils.semantic_version import VersionCalculator
from utils.validation import validate_specificity

logger = logging.getLogger(__name__)

APPROVAL_PROMPT = "Do you approve this version and release? (y/N) "


class RunState(str, Enum):
	SCANNING = "Scanning"
	CLASSIFYING = "Classifying"
	COMPUTING = "Computing"
	PREVIEW_READY = "PreviewReady"
	APPROVED = "Approved"
	REJECTED = "Rejected"
	PERSISTING = "Persisting"
	COMMITTING = "Committing"
	DONE = "Done"
	ABORTED = "Aborted"
	NOTHING_TO_RELEASE = "NothingToRelease"


TERMINAL_STATES = {RunState.DONE, RunState.REJECTED, RunState.ABORTED, RunState.NOTHING_TO_RELEASE}
SUCCESS_STATES = {RunState.DONE, RunState.REJECTED, RunState.NOTHING_TO_RELEASE}


class ReleaseRun(BaseModel):
	"""State threaded through the release workflow."""
	state: RunState = RunState.SCANNING
	history: List[RunState] = Field(default_factory=list)
	environment: Environment = Environment.DEV
	branch: str = ""
	changes: List[ChangeRecord] = Field(default_factory=list)
	classified: List[ClassifiedChange] = Field(default_factory=list)
	grouped: Optional[GroupedChanges] = None
	severity: Optional[Severity] = None
	release_type: Optional[str] = None
	current_version: str = ""
	next_version: str = ""
	notes: str = ""
	warnings: List[str] = Field(default_factory=list)
	feature_candidates: List[FeatureRecord] = Field(default_factory=list)
	features_saved: int = 0
	failure: Optional[Failure] = None

	@property
	def exit_code(self) -> int:
		return 0 if self.state in SUCCESS_STATES else 1


def console_approver(prompt: str) -> bool:
	try:
		answer = input(prompt)
	except EOFError:
		return False
	return answer.strip().lower() in ("y", "yes")


class ReleaseAgent:
	"""Orchestrates one release run against source control and a release store."""

	def __init__(
		self,
		git=None,
		store: Optional[ReleaseStore] = None,
		*,
		approver: Callable[[str], bool] = console_approver,
		out: Callable[[str], None] = print,
		today: Callable[[], date] = date.today,
		repo_root: Optional[str] = None,
	) -> None:
		self.repo_root = repo_root or Config.REPO_ROOT
		self.git = git or GitClient(self.repo_root)
		self._store = store
		self.store: Optional[ReleaseStore] = store
		self.approver = approver
		self.out = out
		self.today = today

	# -------- state helpers --------
	def _to(self, run: ReleaseRun, state: RunState) -> ReleaseRun:
		logger.debug(f"{run.state.value} -> {state.value}")
		run.history.append(run.state)
		run.state = state
		return run

	def _abort(self, run: ReleaseRun, failure: Failure) -> ReleaseRun:
		logger.error(f"Release aborted in {run.state.value}: {failure.message}")
		run.failure = failure
		return self._to(run, RunState.ABORTED)

	def _abort_with(self, run: ReleaseRun, kind: FailureKind, message: str, details: Optional[List[str]] = None) -> ReleaseRun:
		return self._abort(run, Failure(kind=kind, message=message, details=list(details or [])))

	# -------- steps --------
	def _discover(self, run: ReleaseRun) -> ReleaseRun:
		try:
			run.branch = self.git.current_branch()
			sync_descriptor(run.branch)
			run.environment = read_environment()
		except (GitError, DescriptorError) as e:
			return self._abort_with(run, FailureKind.COLLABORATOR, f"Environment discovery failed: {e}", [f"code={e.code}"])
		if self._store is None:
			try:
				self.store = build_store(run.environment)
			except StoreError as e:
				return self._abort_with(run, FailureKind.COLLABORATOR, str(e), [f"code={e.code}"])
		logger.info(f"Releasing into {run.environment.value} from branch {run.branch}")
		return run

	def _scan(self, run: ReleaseRun) -> ReleaseRun:
		result = ChangeScanner(self.git, root=self.repo_root).scan()
		if not result.is_ok:
			return self._abort(run, result.failure)
		run.changes = result.value
		if not run.changes:
			self.out("No relevant changes detected. Nothing to release.")
			return self._to(run, RunState.NOTHING_TO_RELEASE)
		return self._to(run, RunState.CLASSIFYING)

	def _classify(self, run: ReleaseRun) -> ReleaseRun:
		try:
			extra_rules, extra_signatures = load_project_rules(os.path.join(self.repo_root, Config.RELEASE_RULES_PATH))
		except RuleFileError as e:
			return self._abort_with(run, FailureKind.CLASSIFICATION, str(e), [f"code={e.code}"])
		ledger = FeatureLedger(self.store, extra_signatures=extra_signatures)
		try:
			known = ledger.all_features()
			run.feature_candidates = ledger.extract_candidates(run.changes)
		except StoreError as e:
			return self._abort_with(run, FailureKind.COLLABORATOR, f"Reading feature ledger failed: {e}", [f"code={e.code}"])
		classifier = ChangeClassifier(extra_rules=extra_rules, known_features=known)
		result = classifier.classify_all(run.changes)
		if not result.is_ok:
			return self._abort(run, result.failure)
		run.classified = result.value
		run.grouped = group_changes(run.classified)
		run.warnings = collect_compliance_warnings(run.classified)
		return self._to(run, RunState.COMPUTING)

	def _compute(self, run: ReleaseRun) -> ReleaseRun:
		run.severity = aggregate_severity(run.classified)
		run.release_type = release_type_for(run.classified)
		calculator = VersionCalculator(self.store)
		try:
			run.current_version = calculator.current_version(run.environment)
			result = calculator.compute(run.environment, run.severity)
		except StoreError as e:
			return self._abort_with(run, FailureKind.COLLABORATOR, f"Reading releases failed: {e}", [f"code={e.code}"])
		if not result.is_ok:
			return self._abort(run, result.failure)
		run.next_version = result.value
		checked = validate_specificity(run.grouped)
		if not checked.is_ok:
			return self._abort(run, checked.failure)
		run.notes = render_release_notes(run.grouped, run.next_version, run.severity, self.today())
		return self._to(run, RunState.PREVIEW_READY)

	def _preview(self, run: ReleaseRun) -> None:
		g = run.grouped
		lines = [
			"",
			"=== RELEASE PREVIEW ===",
			f"Environment: {run.environment.value}",
			f"Branch: {run.branch}",
			f"Change types: breaking={g.count(Severity.BREAKING)} features={g.count(Severity.FEATURE)} "
			f"fixes={g.count(Severity.FIX)} other={g.count(Severity.OTHER)}",
			f"Current version ({run.environment.value}): {run.current_version}",
			f"Next version: {run.next_version}",
			f"Release type: {run.release_type}",
		]
		for warning in run.warnings:
			lines.append(f"Warning: {warning}")
		if run.feature_candidates:
			lines.append("New features to record:")
			lines.extend(f"  - {f.name} ({f.category})" for f in run.feature_candidates)
		lines.extend(["", "--- Release notes ---", run.notes])
		self.out("\n".join(lines))

	def _decide(self, run: ReleaseRun) -> ReleaseRun:
		self._preview(run)
		if self.approver(APPROVAL_PROMPT):
			return self._to(run, RunState.APPROVED)
		self.out("Release rejected. Nothing was recorded or committed.")
		return self._to(run, RunState.REJECTED)

	def _build_record(self, run: ReleaseRun) -> ReleaseRecord:
		g = run.grouped
		return ReleaseRecord(
			version=run.next_version,
			environment=run.environment,
			date=format_release_date(self.today()),
			release_type=run.release_type,
			notes=run.notes,
			breaking=flatten_descriptions(g.breaking) if g.breaking else [],
			features=flatten_descriptions(g.feature) if g.feature else [],
			bug_fixes=flatten_descriptions(g.fix) if g.fix else [],
			improvements=flatten_descriptions(g.other) if g.other else [],
		)

	def _persist(self, run: ReleaseRun) -> ReleaseRun:
		run = self._to(run, RunState.PERSISTING)
		try:
			self.store.save_release(self._build_record(run))
			self.store.save_setting("current_version", run.next_version)
			run.features_saved = FeatureLedger(self.store).persist_new(run.feature_candidates, version=run.next_version)
			refresh_release_page(os.path.join(self.repo_root, Config.RELEASE_PAGE_PATH))
		except StoreError as e:
			return self._abort_with(run, FailureKind.COLLABORATOR, f"Persisting release failed: {e}", [f"code={e.code}"])
		except OSError as e:
			return self._abort_with(run, FailureKind.COLLABORATOR, f"Updating release page failed: {e}")
		logger.info(f"✓ Release {run.next_version} recorded ({run.features_saved} new feature(s))")
		return self._to(run, RunState.COMMITTING)

	def _commit(self, run: ReleaseRun) -> ReleaseRun:
		head = "\n".join(run.notes.splitlines()[:Config.COMMIT_NOTES_LINES])
		message = f"release: {run.next_version}\n\n{head}"
		try:
			self.git.stage_all()
			self.git.commit(message)
			self.git.push(run.branch)
		except GitError as e:
			return self._abort_with(run, FailureKind.COLLABORATOR, f"Commit/push failed: {e}", [f"code={e.code}"])
		run = self._to(run, RunState.DONE)
		self.out("\n".join([
			"",
			"=== RELEASE COMPLETE ===",
			f"Version: {run.next_version}",
			f"Environment: {run.environment.value}",
			f"Branch: {run.branch}",
		]))
		return run

	def run(self) -> ReleaseRun:
		run = ReleaseRun()
		steps = (self._discover, self._scan, self._classify, self._compute, self._decide, self._persist, self._commit)
		for step in steps:
			run = step(run)
			if run.state in TERMINAL_STATES:
				break
		if run.failure is not None:
			print(f"Error: {run.failure.describe()}", file=sys.stderr)
		return run


def main() -> int:
	"""CLI entry point for the release agent."""
	logging.basicConfig(
		level=getattr(logging, Config.LOG_LEVEL.upper(), logging.INFO),
		format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
	)
	run = ReleaseAgent().run()
	return run.exit_code


if __name__ == "__main__":
	sys.exit(main())
