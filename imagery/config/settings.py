from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    # Environment
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    # Database settings
    DATABASE_URL: str | None = None
    PGUSER: str = "postgres"
    PGPASSWORD: str = "postgres"
    PGHOST: str = "db"
    PGPORT: str = "5432"
    PGDATABASE: str = "upscale_imagery"

    # URLs
    FRONTEND_URL: str = "http://localhost:3000"
    BACKEND_URL: str = "http://localhost:8000"

    # Authentication (tokens are issued by the auth provider, we only verify them)
    SECRET_KEY: str = Field(
        default="change-me",
        validation_alias=AliasChoices("SECRET_KEY", "SUPABASE_JWT_SECRET"),
    )
    AUTH_JWT_AUDIENCE: str = "authenticated"
    AUTH_JWT_ALGORITHM: str = "HS256"

    # Generative AI
    AI_PROVIDER: str = "gemini"
    GEMINI_API_KEY: str | None = Field(
        default=None,
        validation_alias=AliasChoices("GEMINI_API_KEY", "API_KEY", "GOOGLE_API_KEY"),
    )
    GEMINI_MODEL: str = "gemini-2.5-flash-image"
    OPENAI_API_KEY: str | None = None
    OPENAI_IMAGE_MODEL: str = "gpt-image-1"
    AI_TIMEOUT_SECONDS: float = 60.0

    # Stripe
    STRIPE_SECRET_KEY: str | None = None
    STRIPE_PUBLIC_KEY: str | None = None
    STRIPE_WEBHOOK_SECRET: str | None = None
    STRIPE_CURRENCY: str = "usd"

    # Request limits
    MAX_REQUEST_BYTES: int = 4_718_592  # 4.5 MiB
    MIN_IMAGE_PAYLOAD_CHARS: int = 100
    GUEST_PREVIEW_LIMIT: int = 1
    TRUST_FORWARDED_FOR: bool = False

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="allow"
    )

    @property
    def database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return f"postgresql://{self.PGUSER}:{self.PGPASSWORD}@{self.PGHOST}:{self.PGPORT}/{self.PGDATABASE}"
