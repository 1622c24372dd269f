#!/usr/bin/env python3
from __future__ import annotations

import json
import os
import tempfile
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from clients.release_store import ReleaseStore, StoreError
from configs.config import Config
from utils.release_models import FeatureRecord, ReleaseRecord

FEATURES_FILE = "features.json"
RELEASES_FILE = "releases.json"
SETTINGS_FILE = "settings.json"


class FileReleaseStore(ReleaseStore):
	"""JSON-file store for one lane, one file per collection."""

	def __init__(self, root_dir: str = None) -> None:
		self.root_dir = root_dir or os.path.join(Config.STORE_ROOT, Config.DEFAULT_ENVIRONMENT)
		self.atomic = bool(getattr(Config, "STORE_ATOMIC_WRITES", True))

	def _path(self, name: str) -> str:
		return os.path.join(self.root_dir, name)

	def _read(self, name: str, default: Any) -> Any:
		path = self._path(name)
		if not os.path.exists(path):
			return default
		try:
			with open(path, "r", encoding="utf-8") as f:
				return json.load(f)
		except (OSError, json.JSONDecodeError) as e:
			raise StoreError(f"Cannot read {path}: {e}", code="READ", cause=e)

	def _write(self, name: str, data: Any) -> None:
		path = self._path(name)
		text = json.dumps(data, indent=2, sort_keys=True) + "\n"
		try:
			os.makedirs(self.root_dir, exist_ok=True)
			if not self.atomic:
				with open(path, "w", encoding="utf-8") as f:
					f.write(text)
				return
			# Atomic via temp file and rename
			tmp_fd, tmp_path = tempfile.mkstemp(dir=self.root_dir, prefix=".tmp_", suffix=".json")
			with os.fdopen(tmp_fd, "w", encoding="utf-8") as f:
				f.write(text)
				f.flush()
				os.fsync(f.fileno())
			os.replace(tmp_path, path)
		except OSError as e:
			raise StoreError(f"Cannot write {path}: {e}", code="WRITE", cause=e)

	def get_all_features(self) -> List[FeatureRecord]:
		try:
			return [FeatureRecord.model_validate(item) for item in self._read(FEATURES_FILE, [])]
		except ValidationError as e:
			raise StoreError(f"Corrupt feature ledger: {e}", code="READ", cause=e)

	def save_feature(self, record: FeatureRecord) -> bool:
		items: List[Dict[str, Any]] = self._read(FEATURES_FILE, [])
		if any(item.get("id") == record.id for item in items):
			return False
		items.append(record.to_item())
		self._write(FEATURES_FILE, items)
		return True

	def get_releases(self) -> List[ReleaseRecord]:
		try:
			return [ReleaseRecord.model_validate(item) for item in self._read(RELEASES_FILE, [])]
		except ValidationError as e:
			raise StoreError(f"Corrupt release collection: {e}", code="READ", cause=e)

	def save_release(self, record: ReleaseRecord) -> None:
		items = self._read(RELEASES_FILE, [])
		items.append(record.to_item())
		self._write(RELEASES_FILE, items)

	def save_setting(self, key: str, value: str) -> None:
		settings = self._read(SETTINGS_FILE, {})
		settings[key] = value
		self._write(SETTINGS_FILE, settings)

	def get_setting(self, key: str) -> Optional[str]:
		return self._read(SETTINGS_FILE, {}).get(key)
