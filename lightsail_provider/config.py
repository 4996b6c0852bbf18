"""
Application configuration loaded from environment variables.
Uses pydantic-settings so every value can be overridden via a .env file.

Collection-valued settings (``DEFAULT_TAGS``, ``IGNORE_TAG_KEYS`` …) are
given as JSON, e.g. ``DEFAULT_TAGS='{"Team": "platform"}'``.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # ── JWT ──────────────────────────────────────────────────────────────────
    # Secret used to sign/verify JWT tokens.  Change this in production!
    jwt_secret_key: str = "changeme-super-secret-key"
    jwt_algorithm: str = "HS256"
    # Token lifetime in minutes
    jwt_expire_minutes: int = 60

    # ── Demo users ────────────────────────────────────────────────────────────
    # Comma-separated list of "username:password" pairs used for the built-in
    # credential store.
    demo_users: str = "admin:secret,user1:password1"

    # ── AWS ──────────────────────────────────────────────────────────────────
    aws_region: str = "us-east-1"
    # Leave blank to use the default credential chain (IAM role, env vars, …)
    aws_access_key_id: str = ""
    aws_secret_access_key: str = ""
    # Point at a Lightsail-compatible endpoint (e.g. LocalStack) when set
    lightsail_endpoint_url: str = ""

    # ── DynamoDB (tracked resource state) ────────────────────────────────────
    dynamodb_table_name: str = "lightsail_resource_state"
    dynamodb_endpoint_url: str = ""

    # ── Tags ─────────────────────────────────────────────────────────────────
    # Provider-wide tags merged into every resource's tags on create/update.
    default_tags: dict[str, str] = {}
    # Tags the provider never reports back (in addition to "aws:" keys).
    ignore_tag_keys: list[str] = []
    ignore_tag_key_prefixes: list[str] = []

    # ── Operation polling (seconds) ──────────────────────────────────────────
    operation_timeout: float = 600
    operation_initial_delay: float = 5
    operation_poll_interval: float = 3
    operation_max_poll_interval: float = 10
    operation_backoff_factor: float = 1.5
    operation_max_transient_retries: int = 3

    # ── Helpers ───────────────────────────────────────────────────────────────
    def get_demo_users(self) -> dict[str, str]:
        """Return the demo user map {username: password}."""
        users: dict[str, str] = {}
        for pair in self.demo_users.split(","):
            pair = pair.strip()
            if ":" in pair:
                username, password = pair.split(":", 1)
                users[username.strip()] = password.strip()
        return users


settings = Settings()
