#!/usr/bin/env python3
"""Persistence collaborator contract and backend selection."""

from __future__ import annotations

from typing import List, Optional

from configs.config import Config
from utils.release_models import Environment, FeatureRecord, ReleaseRecord


class StoreError(Exception):
    def __init__(self, message: str, code: str = "UNKNOWN", *, cause: Exception | None = None):
        super().__init__(message)
        self.code = code
        self.cause = cause


class ReleaseStore:
    """Reads and appends release data for one lane.

    Implementations must return their own prior writes on the next read.
    """

    def get_all_features(self) -> List[FeatureRecord]:
        raise NotImplementedError

    def save_feature(self, record: FeatureRecord) -> bool:
        """Store a feature; False when a record with the same id exists."""
        raise NotImplementedError

    def get_releases(self) -> List[ReleaseRecord]:
        raise NotImplementedError

    def save_release(self, record: ReleaseRecord) -> None:
        raise NotImplementedError

    def save_setting(self, key: str, value: str) -> None:
        raise NotImplementedError

    def get_setting(self, key: str) -> Optional[str]:
        raise NotImplementedError


def build_store(environment: Environment) -> ReleaseStore:
    cfg = Config.get_store_config(environment.value)
    backend = (cfg["backend"] or "file").lower()
    if backend == "file":
        from cache.file_store import FileReleaseStore
        return FileReleaseStore(cfg["root"])
    if backend == "dynamodb":
        from clients.dynamodb_store import DynamoReleaseStore
        return DynamoReleaseStore(
            releases_table=cfg["releases_table"],
            features_table=cfg["features_table"],
            settings_table=cfg["settings_table"],
            region_name=cfg["region_name"],
        )
    raise StoreError(f"Unknown STORE_BACKEND: {backend}", code="CONFIG")
