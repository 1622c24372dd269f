#!/usr/bin/env python3
"""Specificity policy for release-note text.

A line is rejected when it matches any boilerplate pattern below. The
patterns describe what a change looks like when nobody says what it does.
"""
from __future__ import annotations

import re
from typing import Iterable, List, Optional, Pattern, Tuple

from utils.change_models import ClassifiedChange, GroupedChanges
from utils.result import FailureKind, Result


BANNED_PHRASES: List[Tuple[str, Pattern]] = [
	(label, re.compile(rx)) for label, rx in (
		("with improved functionality and user experience", r"with improved functionality and user experience"),
		("with X additions and Y changes", r"with X additions and Y changes"),
		("Modified ... with ... additions and", r"Modified .* with .* additions and"),
		("Updated ... file", r"\bUpdated .* file"),
		("Enhanced ... with improved", r"\bEnhanced .* with improved"),
		("system with improved functionality and reliability", r"system with improved functionality and reliability"),
		("with enhanced functionality", r"with enhanced functionality"),
		("with improved functionality", r"with improved functionality"),
		("Updated ... component with enhanced", r"\bUpdated .* component with enhanced"),
		("Improved ... with better ... functionality", r"\bImproved .* with better.* functionality"),
		("service with improved functionality and reliability", r"service with improved functionality and reliability"),
		("endpoint with improved functionality and error handling", r"endpoint with improved functionality and error handling"),
		("component with enhanced user interface and functionality", r"component with enhanced user interface and functionality"),
		("Service with improved functionality and error handling", r"Service with improved functionality and error handling"),
	)
]


def find_generic_phrase(line: str) -> Optional[str]:
	for label, pattern in BANNED_PHRASES:
		if pattern.search(line or ""):
			return label
	return None


def _scan(lines: Iterable[Tuple[str, str]]) -> List[str]:
	errors: List[str] = []
	for where, line in lines:
		label = find_generic_phrase(line)
		if label:
			errors.append(f"{where}: \"{line.strip()}\" matches banned phrase \"{label}\"")
	return errors


def validate_change(change: ClassifiedChange) -> Result[ClassifiedChange]:
	errors = _scan([(change.path, change.description)] + [(change.path, ln) for ln in change.detail_lines()])
	if errors:
		return Result.err(FailureKind.SPECIFICITY, f"Generic description for {change.path}", errors)
	return Result.ok(change)


def validate_specificity(grouped: GroupedChanges) -> Result[GroupedChanges]:
	"""Scan every grouped change body for boilerplate phrasing."""
	lines: List[Tuple[str, str]] = []
	for group in grouped.groups():
		lines.append((f"{group.severity.value} summary", group.description))
		lines.extend((f"{group.severity.value} change", ln) for ln in group.body)
	errors = _scan(lines)
	if errors:
		return Result.err(
			FailureKind.SPECIFICITY,
			f"Release notes contain {len(errors)} generic description(s)",
			errors,
		)
	return Result.ok(grouped)
