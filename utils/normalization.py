#!/usr/bin/env python3
from __future__ import annotations

import re
from typing import Dict, Iterable, List

from utils.change_classifier import humanize_description
from utils.change_models import ChangeGroup, ClassifiedChange, GroupedChanges, Severity

GROUP_LABELS = {
	Severity.BREAKING: "Breaking changes",
	Severity.FEATURE: "New features",
	Severity.FIX: "Bug fixes",
	Severity.OTHER: "Maintenance",
}


def _collapse_spaces(s: str) -> str:
	if not s:
		return s
	return re.sub(r"\s+", " ", s.strip())


def _body_lines(change: ClassifiedChange) -> List[str]:
	lines = [_collapse_spaces(ln) for ln in change.detail_lines()]
	lines = [ln for ln in lines if ln.startswith("- ")]
	if lines:
		return lines
	return ["- " + humanize_description(change.description)]


def group_changes(changes: Iterable[ClassifiedChange]) -> GroupedChanges:
	"""Group classified changes by severity with a stable order.

	Changes are ordered by path and duplicate bullet lines are dropped, so the
	same working tree always yields the same groups.
	"""
	by_severity: Dict[Severity, List[ClassifiedChange]] = {}
	for change in sorted(changes, key=lambda c: c.path):
		by_severity.setdefault(change.severity, []).append(change)
	groups: Dict[str, ChangeGroup] = {}
	for severity, items in by_severity.items():
		body: List[str] = []
		for item in items:
			body.extend(_body_lines(item))
		if len(items) == 1:
			description = humanize_description(items[0].description)
		else:
			description = f"{GROUP_LABELS[severity]} ({len(items)} changes)"
		groups[severity.value] = ChangeGroup(
			severity=severity,
			description=description,
			body=list(dict.fromkeys(body)),
			paths=[i.path for i in items],
		)
	return GroupedChanges(**groups)


def flatten_descriptions(group: ChangeGroup) -> List[str]:
	return [ln[2:] for ln in group.body]
