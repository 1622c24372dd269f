import os
from typing import Dict, Any, List


def _csv(value: str) -> List[str]:
	return [part.strip() for part in value.split(",") if part.strip()]


class Config:
	"""Configuration for the release agent."""

	PRODUCT_NAME = os.getenv("PRODUCT_NAME", "the application")
	REPO_ROOT = os.getenv("REPO_ROOT", ".")
	LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

	# Persistence
	STORE_BACKEND = os.getenv("STORE_BACKEND", "file")
	STORE_ROOT = os.getenv("STORE_ROOT", ".release-store")
	STORE_ATOMIC_WRITES = bool(int(os.getenv("STORE_ATOMIC_WRITES", "1")))
	AWS_REGION = os.getenv("AWS_REGION", "us-east-1")
	DYNAMODB_TABLE_PREFIX = os.getenv("DYNAMODB_TABLE_PREFIX", "ReleaseTracker")

	# Deployment descriptor
	DEPLOY_DESCRIPTOR = os.getenv("DEPLOY_DESCRIPTOR", "apprunner.yaml")
	DEPLOY_DESCRIPTOR_PROD = os.getenv("DEPLOY_DESCRIPTOR_PROD", "apprunner-prod.yaml")
	DEPLOY_DESCRIPTOR_DEV = os.getenv("DEPLOY_DESCRIPTOR_DEV", "apprunner-dev.yaml")
	PROD_BRANCH = os.getenv("PROD_BRANCH", "main")
	ENVIRONMENT_KEY = os.getenv("ENVIRONMENT_KEY", "ENVIRONMENT")
	DEFAULT_ENVIRONMENT = os.getenv("DEFAULT_ENVIRONMENT", "dev")

	# Source control
	GIT_REMOTE = os.getenv("GIT_REMOTE", "origin")
	GIT_TIMEOUT_S = int(os.getenv("GIT_TIMEOUT_S", "60"))
	COMMIT_NOTES_LINES = int(os.getenv("COMMIT_NOTES_LINES", "10"))

	# Scanner filters (substring match against "/" + path)
	RELEVANT_PATTERNS = _csv(os.getenv(
		"RELEVANT_PATTERNS",
		"/api/,/components/,/app/,/lib/,/hooks/,page.js,route.js,layout.js",
	))
	NOISE_PATTERNS = _csv(os.getenv(
		"NOISE_PATTERNS",
		".md,.json,.yaml,.yml,test.,spec.,__tests__,node_modules,/.git/,debug-,check-,fix-,release-agent",
	))

	# Classification
	RELEASE_RULES_PATH = os.getenv("RELEASE_RULES_PATH", "release_rules.yaml")
	LARGE_CHANGE_LINES = int(os.getenv("LARGE_CHANGE_LINES", "10"))

	# Display surface
	RELEASE_PAGE_PATH = os.getenv("RELEASE_PAGE_PATH", "app/release-notes/page.js")

	@classmethod
	def get_store_config(cls, environment: str) -> Dict[str, Any]:
		"""Get persistence configuration for one lane."""
		prefix = f"{cls.DYNAMODB_TABLE_PREFIX}-{environment}"
		return {
			"backend": cls.STORE_BACKEND,
			"root": os.path.join(cls.STORE_ROOT, environment),
			"region_name": cls.AWS_REGION,
			"releases_table": f"{prefix}-Releases",
			"features_table": f"{prefix}-Features",
			"settings_table": f"{prefix}-Settings",
		}

	@classmethod
	def get_descriptor_config(cls) -> Dict[str, Any]:
		return {
			"canonical": os.path.join(cls.REPO_ROOT, cls.DEPLOY_DESCRIPTOR),
			"prod_variant": os.path.join(cls.REPO_ROOT, cls.DEPLOY_DESCRIPTOR_PROD),
			"dev_variant": os.path.join(cls.REPO_ROOT, cls.DEPLOY_DESCRIPTOR_DEV),
			"prod_branch": cls.PROD_BRANCH,
			"key": cls.ENVIRONMENT_KEY,
			"default": cls.DEFAULT_ENVIRONMENT,
		}

	@classmethod
	def get_git_config(cls) -> Dict[str, Any]:
		"""Get source control configuration.

		Returns:
			Mapping with repository root, remote name and command timeout.
		"""
		return {
			"root": cls.REPO_ROOT,
			"remote": cls.GIT_REMOTE,
			"timeout_s": cls.GIT_TIMEOUT_S,
		}
