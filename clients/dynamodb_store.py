#!/usr/bin/env python3
from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from pydantic import ValidationError

from clients.release_store import ReleaseStore, StoreError
from configs.config import Config
from utils.release_models import FeatureRecord, ReleaseRecord

logger = logging.getLogger(__name__)

_LIST_FIELDS = ("breaking", "features", "bugFixes", "improvements")


def _error_code(exc: ClientError) -> str:
	return (exc.response or {}).get("Error", {}).get("Code", "")


def _map_client_error(exc: ClientError, action: str) -> StoreError:
	code = _error_code(exc)
	if code == "ResourceNotFoundException":
		mapped = "NOT_FOUND"
	elif code in ("ProvisionedThroughputExceededException", "ThrottlingException", "RequestLimitExceeded"):
		mapped = "THROTTLED"
	elif code in ("AccessDeniedException", "UnrecognizedClientException"):
		mapped = "UNAUTHORIZED"
	else:
		mapped = "UNKNOWN"
	return StoreError(f"DynamoDB {action} failed: {code or exc}", code=mapped, cause=exc)


def _to_attrs(item: Dict[str, Any]) -> Dict[str, Dict[str, str]]:
	out = {}
	for key, value in item.items():
		if value is None:
			continue
		if isinstance(value, list):
			out[key] = {"S": json.dumps(value)}
		else:
			out[key] = {"S": str(value)}
	return out


def _from_attrs(attrs: Dict[str, Dict[str, str]]) -> Dict[str, Any]:
	out: Dict[str, Any] = {}
	for key, value in attrs.items():
		text = value.get("S")
		if key in _LIST_FIELDS:
			out[key] = json.loads(text or "[]")
		else:
			out[key] = text
	return out


class DynamoReleaseStore(ReleaseStore):
	def __init__(
		self,
		*,
		releases_table: str,
		features_table: str,
		settings_table: str,
		region_name: Optional[str] = None,
		client=None,
	) -> None:
		self.releases_table = releases_table
		self.features_table = features_table
		self.settings_table = settings_table
		self._client = client or boto3.client("dynamodb", region_name=region_name or Config.AWS_REGION)

	def _scan(self, table: str) -> List[Dict[str, Any]]:
		items: List[Dict[str, Any]] = []
		kwargs: Dict[str, Any] = {"TableName": table}
		try:
			while True:
				resp = self._client.scan(**kwargs)
				items.extend(_from_attrs(i) for i in resp.get("Items", []))
				last = resp.get("LastEvaluatedKey")
				if not last:
					return items
				kwargs["ExclusiveStartKey"] = last
		except ClientError as e:
			raise _map_client_error(e, f"scan {table}")
		except BotoCoreError as e:
			raise StoreError(f"DynamoDB scan {table} failed: {e}", code="NETWORK", cause=e)
		except ValueError as e:
			raise StoreError(f"Undecodable list attribute in {table}: {e}", code="READ", cause=e)

	def _put(self, table: str, item: Dict[str, Any], **extra) -> None:
		try:
			self._client.put_item(TableName=table, Item=_to_attrs(item), **extra)
		except BotoCoreError as e:
			raise StoreError(f"DynamoDB put {table} failed: {e}", code="NETWORK", cause=e)

	def _validate(self, model, table: str, items: List[Dict[str, Any]]) -> list:
		out = []
		for item in items:
			try:
				out.append(model.model_validate(item))
			except ValidationError as e:
				key = item.get("id") or item.get("version") or "?"
				raise StoreError(f"Malformed row {key} in {table}: {e}", code="READ", cause=e)
		return out

	def get_all_features(self) -> List[FeatureRecord]:
		return self._validate(FeatureRecord, self.features_table, self._scan(self.features_table))

	def save_feature(self, record: FeatureRecord) -> bool:
		try:
			self._put(self.features_table, record.to_item(), ConditionExpression="attribute_not_exists(id)")
		except ClientError as e:
			if _error_code(e) == "ConditionalCheckFailedException":
				logger.info(f"Feature {record.id} already stored")
				return False
			raise _map_client_error(e, f"put {self.features_table}")
		return True

	def get_releases(self) -> List[ReleaseRecord]:
		return self._validate(ReleaseRecord, self.releases_table, self._scan(self.releases_table))

	def save_release(self, record: ReleaseRecord) -> None:
		try:
			self._put(self.releases_table, record.to_item())
		except ClientError as e:
			raise _map_client_error(e, f"put {self.releases_table}")
		logger.info(f"Release {record.version} saved to {self.releases_table}")

	def save_setting(self, key: str, value: str) -> None:
		item = {
			"setting_key": key,
			"setting_value": value,
			"updated_at": datetime.now(timezone.utc).isoformat(),
		}
		try:
			self._put(self.settings_table, item)
		except ClientError as e:
			raise _map_client_error(e, f"put {self.settings_table}")

	def get_setting(self, key: str) -> Optional[str]:
		try:
			resp = self._client.get_item(TableName=self.settings_table, Key={"setting_key": {"S": key}})
		except ClientError as e:
			raise _map_client_error(e, f"get {self.settings_table}")
		except BotoCoreError as e:
			raise StoreError(f"DynamoDB get {self.settings_table} failed: {e}", code="NETWORK", cause=e)
		return ((resp.get("Item") or {}).get("setting_value") or {}).get("S")
