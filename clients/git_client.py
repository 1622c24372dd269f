#!/usr/bin/env python3
"""Source control collaborator backed by the git command line."""

from __future__ import annotations

import logging
import subprocess
from typing import List, Optional

from configs.config import Config

logger = logging.getLogger(__name__)


class GitError(Exception):
    def __init__(self, message: str, code: str = "UNKNOWN", *, cause: Exception | None = None):
        super().__init__(message)
        self.code = code
        self.cause = cause


class GitClient:
    def __init__(self, root: Optional[str] = None, *, remote: Optional[str] = None, timeout_s: Optional[int] = None) -> None:
        cfg = Config.get_git_config()
        self.root = root or cfg["root"]
        self.remote = remote or cfg["remote"]
        self.timeout_s = int(timeout_s if timeout_s is not None else cfg["timeout_s"])

    def _run(self, *args: str) -> str:
        cmd = ["git", *args]
        logger.debug(f"Running {' '.join(cmd)}")
        try:
            proc = subprocess.run(
                cmd,
                cwd=self.root,
                capture_output=True,
                encoding="utf-8",
                errors="replace",
                timeout=self.timeout_s,
                check=False,
            )
        except FileNotFoundError as e:
            raise GitError("git executable not found", code="NOT_FOUND", cause=e)
        except subprocess.TimeoutExpired as e:
            raise GitError(f"git {args[0]} timed out after {self.timeout_s}s", code="TIMEOUT", cause=e)
        if proc.returncode != 0:
            detail = (proc.stderr or proc.stdout or "").strip()
            raise GitError(f"git {' '.join(args)} failed ({proc.returncode}): {detail}", code="COMMAND_FAILED")
        return proc.stdout

    @staticmethod
    def _paths(text: str) -> List[str]:
        # -z output: raw paths, NUL separated, never C-quoted
        return [p for p in text.split("\0") if p]

    def list_modified_paths(self) -> List[str]:
        return self._paths(self._run("diff", "--name-only", "-z"))

    def list_staged_paths(self) -> List[str]:
        return self._paths(self._run("diff", "--cached", "--name-only", "-z"))

    def list_untracked_paths(self) -> List[str]:
        return self._paths(self._run("ls-files", "--others", "--exclude-standard", "-z"))

    def diff(self, path: str) -> str:
        try:
            return self._run("diff", "HEAD", "--", path)
        except GitError as e:
            # no HEAD yet: only the index has something to compare against
            if e.code != "COMMAND_FAILED":
                raise
            logger.debug(f"git diff HEAD failed for {path}, using index diff")
            return self._run("diff", "--cached", "--", path)

    def current_branch(self) -> str:
        branch = self._run("branch", "--show-current").strip()
        if not branch:
            raise GitError("HEAD is detached; cannot determine branch", code="DETACHED")
        return branch

    def stage_all(self) -> None:
        self._run("add", "-A")

    def commit(self, message: str) -> None:
        self._run("commit", "-m", message)

    def push(self, branch: str) -> None:
        self._run("push", self.remote, branch)
