from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=None, extra="ignore")

    # Runtime
    environment: str = Field(default="development", validation_alias="NODE_ENV")
    port: int = Field(default=8080, validation_alias="PORT")
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

    # CORS / Frontend
    frontend_base_url: str = Field(
        default="http://localhost:3000", validation_alias="FRONTEND_BASE_URL"
    )
    frontend_urls: str | None = Field(default=None, validation_alias="FRONTEND_URLS")

    # AWS / data
    aws_region: str = Field(default="eu-west-2", validation_alias="AWS_REGION")
    ddb_table_name: str | None = Field(default=None, validation_alias="DDB_TABLE_NAME")
    # Points boto3 at DynamoDB Local when set (dev and integration runs).
    ddb_endpoint_url: str | None = Field(default=None, validation_alias="DDB_ENDPOINT_URL")

    # Auth (Cognito)
    cognito_user_pool_id: str | None = Field(
        default=None, validation_alias="COGNITO_USER_POOL_ID"
    )
    cognito_client_id: str | None = Field(
        default=None, validation_alias="COGNITO_CLIENT_ID"
    )
    cognito_region: str | None = Field(default=None, validation_alias="COGNITO_REGION")
    # Local development only: requests without a bearer token act as this user.
    dev_user_email: str | None = Field(default=None, validation_alias="DEV_USER_EMAIL")

    # OpenAI (text-completion collaborator)
    openai_api_key: str | None = Field(default=None, validation_alias="OPENAI_API_KEY")
    openai_project_id: str | None = Field(default=None, validation_alias="OPENAI_PROJECT_ID")
    openai_organization_id: str | None = Field(default=None, validation_alias="OPENAI_ORG_ID")
    openai_model: str = Field(default="gpt-4o-mini", validation_alias="OPENAI_MODEL")
    openai_model_opportunities: str | None = Field(
        default=None, validation_alias="OPENAI_MODEL_OPPORTUNITIES"
    )
    # Guardrail: clamp max output tokens (prevents accidental cost explosions).
    openai_max_output_tokens_cap: int = Field(
        default=2000, validation_alias="OPENAI_MAX_OUTPUT_TOKENS_CAP"
    )
    openai_timeout_seconds: int = Field(default=60, validation_alias="OPENAI_TIMEOUT_SECONDS")

    # Opportunity generation policy
    opportunities_min_drafts: int = Field(default=1, validation_alias="OPPORTUNITIES_MIN_DRAFTS")
    opportunities_max_drafts: int = Field(default=6, validation_alias="OPPORTUNITIES_MAX_DRAFTS")

    # ---- helpers / derived flags ----
    @property
    def normalized_environment(self) -> str:
        v = (self.environment or "").strip().lower()
        if v in ("prod", "production"):
            return "production"
        if v in ("stage", "staging"):
            return "staging"
        if v in ("dev", "development"):
            return "development"
        if v == "test":
            return "test"
        return v or "development"

    @property
    def is_production(self) -> bool:
        return self.normalized_environment == "production"

    def require_in_production(self) -> None:
        """
        Enforce required settings in production.

        Development and test runs may start with partial config for local work.
        """
        if not self.is_production:
            return

        missing: list[str] = []
        if not self.cognito_user_pool_id:
            missing.append("COGNITO_USER_POOL_ID")
        if not self.cognito_client_id:
            missing.append("COGNITO_CLIENT_ID")
        if not self.ddb_table_name:
            missing.append("DDB_TABLE_NAME")
        if not self.openai_api_key:
            missing.append("OPENAI_API_KEY")

        if missing:
            raise RuntimeError(
                "Missing required production environment variables: "
                + ", ".join(missing)
            )

    def to_log_safe_dict(self) -> dict[str, object]:
        """
        A redacted representation safe for structured logs / diagnostics.
        """
        def _has(v: object) -> bool:
            return v is not None and str(v).strip() != ""

        return {
            "environment": self.normalized_environment,
            "port": self.port,
            "log_level": self.log_level,
            "frontend": {
                "frontend_base_url": self.frontend_base_url,
                "frontend_urls": self.frontend_urls,
            },
            "aws": {
                "aws_region": self.aws_region,
                "ddb_table_name": self.ddb_table_name,
                "ddb_endpoint_url": self.ddb_endpoint_url,
            },
            "auth": {
                "cognito_user_pool_id": self.cognito_user_pool_id,
                "cognito_client_id": self.cognito_client_id,
                "cognito_region": self.cognito_region,
                "dev_user_configured": _has(self.dev_user_email),
            },
            "openai": {
                "api_key_configured": _has(self.openai_api_key),
                "project_id_configured": _has(self.openai_project_id),
                "organization_id_configured": _has(self.openai_organization_id),
                "model": self.openai_model,
                "model_opportunities": self.openai_model_opportunities,
                "timeout_seconds": self.openai_timeout_seconds,
            },
            "opportunities": {
                "min_drafts": self.opportunities_min_drafts,
                "max_drafts": self.opportunities_max_drafts,
            },
        }

    def openai_model_for(self, purpose: str) -> str:
        # Allow per-purpose override, else fall back to OPENAI_MODEL.
        purpose = (purpose or "").strip().lower()
        override_map = {
            "simulate_opportunities": self.openai_model_opportunities,
        }
        ov = override_map.get(purpose)
        if ov and str(ov).strip():
            return str(ov).strip()
        return str(self.openai_model or "gpt-4o-mini").strip() or "gpt-4o-mini"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    s = Settings()
    s.require_in_production()
    return s


# Backwards-compatible module-level singleton.
settings = get_settings()
