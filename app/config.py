"""
Configuration module for loading settings from AWS Parameter Store.

This module provides a cached mechanism for loading configuration from AWS
Systems Manager Parameter Store, with fallback to environment variables for
local development and for hosts that inject plain environment variables.
"""

import os
import logging
import secrets
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path
from typing import Optional, Dict, Any
from functools import lru_cache

import boto3
from botocore.exceptions import ClientError

logger = logging.getLogger(__name__)

# Value the deployment templates write before the real one is known
PLACEHOLDER_VALUE = "WILL_BE_SET_BY_CDK"

DEFAULT_SESSION_TTL_HOURS = 24
# Keeps now + ttl inside the datetime range
MAX_SESSION_TTL_HOURS = 24 * 365 * 100
DEFAULT_SESSION_COOKIE_NAME = "admin_session"


class ConfigError(Exception):
    """Raised when configuration cannot be loaded."""
    pass


@dataclass(frozen=True)
class SessionSettings:
    """Admin session settings."""
    secret: str
    ttl: timedelta
    cookie_name: str = DEFAULT_SESSION_COOKIE_NAME
    cookie_secure: bool = True


class Config:
    """
    Configuration manager for AWS Parameter Store and environment variables.

    Provides cached access to settings stored in AWS Systems Manager Parameter
    Store, with automatic fallback to environment variables for local development.

    Usage:
        config = Config()
        database_url = config.get_database_url()
        session = config.get_session_config()
    """

    def __init__(self, parameter_prefix: str = "/mining-hosting", use_local: Optional[bool] = None):
        """
        Initialize configuration manager.

        Args:
            parameter_prefix: Prefix for Parameter Store keys (default: /mining-hosting)
            use_local: Force local mode (env vars only). If None, auto-detect based on AWS_REGION.
        """
        self.parameter_prefix = parameter_prefix
        self._cache: Dict[str, Any] = {}

        # Auto-detect local vs AWS environment
        if use_local is None:
            self.use_local = os.getenv("AWS_REGION") is None
        else:
            self.use_local = use_local

        self.ssm_client = None
        if not self.use_local:
            try:
                self.ssm_client = boto3.client("ssm")
                logger.info("Initialized AWS SSM client for Parameter Store")
            except Exception as e:
                logger.warning(f"Failed to initialize SSM client, falling back to env vars: {e}")
                self.use_local = True

    def get(self, key: str, default: Optional[str] = None, required: bool = False) -> Optional[str]:
        """
        Get configuration value from Parameter Store or environment variables.

        Order of precedence:
        1. Cache (if already loaded)
        2. Parameter Store (if in AWS environment)
        3. Environment variable
        4. Default value

        Empty strings and the deployment placeholder count as unset.

        Raises:
            ConfigError: If required=True and value not found
        """
        if key in self._cache:
            return self._cache[key]

        value = None

        if not self.use_local and self.ssm_client:
            try:
                value = self._get_from_parameter_store(key)
            except Exception as e:
                logger.warning(f"Failed to get {key} from Parameter Store: {e}")

        if value is None:
            value = os.getenv(key)

        if value is not None and (not value.strip() or value == PLACEHOLDER_VALUE):
            value = None

        if value is None:
            value = default

        if value is None and required:
            raise ConfigError(f"Required configuration key '{key}' not found")

        if value is not None:
            self._cache[key] = value

        return value

    def _get_from_parameter_store(self, key: str) -> Optional[str]:
        """
        Fetch value from AWS Parameter Store.

        Returns:
            Parameter value or None if not found
        """
        parameter_name = f"{self.parameter_prefix}/{key}"

        try:
            response = self.ssm_client.get_parameter(
                Name=parameter_name,
                WithDecryption=True  # Decrypt SecureString parameters
            )
            value = response["Parameter"]["Value"]
            logger.debug(f"Loaded {key} from Parameter Store")
            return value
        except ClientError as e:
            if e.response["Error"]["Code"] == "ParameterNotFound":
                logger.debug(f"Parameter {parameter_name} not found in Parameter Store")
                return None
            raise

    def get_database_url(self) -> Optional[str]:
        """
        Get the database connection string, or None when not configured.

        DATABASE_URL wins; otherwise, when DB_SECRET_ARN is set, the URL is
        built from the Secrets Manager secret.
        """
        database_url = self.get("DATABASE_URL")
        if database_url:
            return database_url

        if self.get("DB_SECRET_ARN"):
            from utils.aws_secrets import get_database_url as get_url_from_secrets
            try:
                return get_url_from_secrets()
            except RuntimeError as e:
                logger.error(f"Failed to build DATABASE_URL from Secrets Manager: {e}")

        return None

    def get_session_config(self) -> SessionSettings:
        """
        Get admin session settings.

        Without SESSION_SECRET a random per-process secret is used, which
        invalidates every session whenever a new container starts.
        """
        secret = self.get("SESSION_SECRET")
        if not secret:
            logger.warning(
                "SESSION_SECRET is not set; using a random per-process secret. "
                "Admin sessions will not survive a cold start."
            )
            secret = secrets.token_urlsafe(32)
            self._cache["SESSION_SECRET"] = secret

        ttl_raw = self.get("SESSION_TTL_HOURS", default=str(DEFAULT_SESSION_TTL_HOURS))
        try:
            ttl_hours = float(ttl_raw)
            # Comparisons with nan are false, so nan is rejected here too
            if not 0 < ttl_hours <= MAX_SESSION_TTL_HOURS:
                raise ValueError(ttl_raw)
            ttl = timedelta(hours=ttl_hours)
        except ValueError:
            logger.warning(f"Invalid SESSION_TTL_HOURS '{ttl_raw}', using {DEFAULT_SESSION_TTL_HOURS}")
            ttl = timedelta(hours=DEFAULT_SESSION_TTL_HOURS)

        return SessionSettings(
            secret=secret,
            ttl=ttl,
            cookie_name=self.get("SESSION_COOKIE_NAME", default=DEFAULT_SESSION_COOKIE_NAME),
            cookie_secure=self.get("SESSION_COOKIE_SECURE", default="true").lower() == "true",
        )

    def get_bootstrap_admin(self) -> Optional[tuple[str, str]]:
        """Username/password for the first admin, if both are configured."""
        username = self.get("ADMIN_BOOTSTRAP_USERNAME")
        password = self.get("ADMIN_BOOTSTRAP_PASSWORD")
        if username and password:
            return username, password
        return None

    def get_static_dir(self) -> Path:
        """Build output directory holding index.html and assets/."""
        static_dir = self.get("STATIC_DIR")
        if static_dir:
            return Path(static_dir).resolve()
        return (Path.cwd() / "dist" / "public").resolve()

    def clear_cache(self):
        """Clear the configuration cache."""
        self._cache.clear()
        logger.info("Configuration cache cleared")


# Global singleton instance
@lru_cache(maxsize=1)
def get_config() -> Config:
    """
    Get the global Config instance (cached).

    Returns:
        Config singleton instance
    """
    return Config()
