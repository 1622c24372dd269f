#!/usr/bin/env python3
"""Working-tree change scanner.

Collects modified, staged and untracked paths from source control, keeps the
ones that can hold product features, and attaches diff text and content.
Read-only against the repository.
"""

import logging
import os
from typing import Iterable, List, Optional

from configs.config import Config
from clients.git_client import GitError
from utils.change_models import ChangeKind, ChangeRecord
from utils.result import FailureKind, Result

logger = logging.getLogger(__name__)

MAX_CONTENT_BYTES = 2 * 1024 * 1024  # 2MB


def is_relevant_path(
    path: str,
    relevant: Optional[Iterable[str]] = None,
    noise: Optional[Iterable[str]] = None,
) -> bool:
    probe = "/" + path.replace("\\", "/")
    relevant = Config.RELEVANT_PATTERNS if relevant is None else relevant
    noise = Config.NOISE_PATTERNS if noise is None else noise
    if not any(p in probe for p in relevant):
        return False
    return not any(p in probe for p in noise)


def read_working_file(root: str, path: str) -> Optional[str]:
    full = os.path.join(root, path)
    if not os.path.isfile(full) or os.path.getsize(full) > MAX_CONTENT_BYTES:
        return None
    try:
        with open(full, "r", encoding="utf-8") as f:
            return f.read()
    except UnicodeDecodeError:
        logger.debug(f"Skipping content of binary file {path}")
        return None


class ChangeScanner:
    def __init__(self, git, *, root: Optional[str] = None, relevant=None, noise=None) -> None:
        self.git = git
        self.root = root or Config.REPO_ROOT
        self.relevant = relevant
        self.noise = noise

    def _keep(self, path: str) -> bool:
        return is_relevant_path(path, self.relevant, self.noise)

    def scan(self) -> Result[List[ChangeRecord]]:
        try:
            modified = set(self.git.list_modified_paths()) | set(self.git.list_staged_paths())
            untracked = set(self.git.list_untracked_paths()) - modified
        except GitError as e:
            return Result.err(FailureKind.COLLABORATOR, f"Listing changes failed: {e}", [f"code={e.code}"])

        records: List[ChangeRecord] = []
        skipped = 0
        for path in sorted(modified | untracked):
            if not self._keep(path):
                skipped += 1
                continue
            kind = ChangeKind.ADDED if path in untracked else ChangeKind.MODIFIED
            diff = None
            if kind == ChangeKind.MODIFIED:
                try:
                    diff = self.git.diff(path) or None
                except GitError as e:
                    return Result.err(FailureKind.COLLABORATOR, f"Diff failed for {path}: {e}", [f"code={e.code}"])
                if diff is None:
                    logger.info(f"No diff text for {path}; classifying from content")
            try:
                content = read_working_file(self.root, path)
            except OSError as e:
                return Result.err(FailureKind.COLLABORATOR, f"Cannot read {path}: {e}")
            records.append(ChangeRecord(path=path, kind=kind, raw_diff=diff, content=content))

        logger.info(f"✓ Scanned {len(records)} relevant change(s), skipped {skipped}")
        return Result.ok(records)
