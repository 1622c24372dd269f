#!/usr/bin/env python3
from __future__ import annotations

from datetime import date
from typing import List, Optional

from utils.change_models import ChangeGroup, GroupedChanges, Severity
from configs.config import Config

BANNERS = {
	Severity.BREAKING: (
		"Major Update",
		"This release contains breaking changes. Review them before upgrading {product}.",
	),
	Severity.FEATURE: (
		"Feature Update",
		"New features and enhancements to make {product} even better.",
	),
	Severity.FIX: (
		"Maintenance Update",
		"Bug fixes and improvements to keep {product} running smoothly.",
	),
}


def format_release_date(d: date) -> str:
	return f"{d:%B} {d.day}, {d.year}"


def bullets(groups: List[Optional[ChangeGroup]]) -> str:
	out_lines: List[str] = []
	for group in groups:
		if group is None:
			continue
		for line in group.body:
			if line not in out_lines:
				out_lines.append(line)
	return "\n".join(out_lines)


def render_release_notes(
	grouped: GroupedChanges,
	version: str,
	severity: Severity,
	release_date: date,
	*,
	product_name: Optional[str] = None,
) -> str:
	"""Render the release document. Identical inputs give identical output."""
	product = product_name or Config.PRODUCT_NAME
	title, blurb = BANNERS.get(severity, BANNERS[Severity.FIX])
	parts = [
		f"# Version {version}",
		f"## {title}",
		blurb.format(product=product),
	]
	sections = [
		("Breaking Changes", [grouped.breaking]),
		("New Features", [grouped.feature]),
		("Bug Fixes", [grouped.fix, grouped.other]),
	]
	for heading, groups in sections:
		body = bullets(groups)
		if body:
			parts.append(f"### {heading}\n\n{body}")
	parts.append("---")
	parts.append(f"**Released:** {format_release_date(release_date)}  \n**Version:** {version}")
	return "\n\n".join(parts) + "\n"
