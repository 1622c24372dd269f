#!/usr/bin/env python3
"""Deployment descriptor handling: which lane a run releases into."""

from __future__ import annotations

import logging
import os
import shutil
from typing import Any, Dict, Optional

import yaml

from configs.config import Config
from utils.release_models import Environment

logger = logging.getLogger(__name__)


class DescriptorError(Exception):
    def __init__(self, message: str, code: str = "UNKNOWN", *, cause: Exception | None = None):
        super().__init__(message)
        self.code = code
        self.cause = cause


def variant_for_branch(branch: str, cfg: Optional[Dict[str, Any]] = None) -> str:
    cfg = cfg or Config.get_descriptor_config()
    return cfg["prod_variant"] if branch == cfg["prod_branch"] else cfg["dev_variant"]


def sync_descriptor(branch: str) -> Optional[str]:
    """Copy the branch's descriptor variant over the canonical descriptor.

    Returns the variant path, or None when the variant does not exist.
    """
    cfg = Config.get_descriptor_config()
    variant = variant_for_branch(branch, cfg)
    if not os.path.exists(variant):
        logger.warning(f"No descriptor variant {variant} for branch {branch}; keeping {cfg['canonical']}")
        return None
    try:
        shutil.copyfile(variant, cfg["canonical"])
    except OSError as e:
        raise DescriptorError(f"Cannot copy {variant} to {cfg['canonical']}: {e}", code="WRITE", cause=e)
    logger.info(f"✓ Using {os.path.basename(variant)} for branch {branch}")
    return variant


def read_environment(path: Optional[str] = None) -> Environment:
    """Read ``run.env[name=ENVIRONMENT].value`` from the canonical descriptor."""
    cfg = Config.get_descriptor_config()
    path = path or cfg["canonical"]
    default = Environment.parse(cfg["default"])
    if not os.path.exists(path):
        logger.warning(f"{path} not found; defaulting to {default.value}")
        return default
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise DescriptorError(f"Invalid YAML in {path}: {e}", code="PARSE", cause=e)
    except (OSError, UnicodeDecodeError) as e:
        raise DescriptorError(f"Cannot read {path}: {e}", code="READ", cause=e)
    env_vars = ((data.get("run") or {}).get("env") or []) if isinstance(data, dict) else []
    for entry in env_vars:
        if isinstance(entry, dict) and entry.get("name") == cfg["key"]:
            return Environment.parse(str(entry.get("value", "")))
    logger.warning(f"{cfg['key']} not set in {path}; defaulting to {default.value}")
    return default
