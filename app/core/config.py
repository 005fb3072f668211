from pydantic_settings import BaseSettings, SettingsConfigDict
from dotenv import load_dotenv

load_dotenv()


class Settings(BaseSettings):
    PROJECT_NAME: str = "Blog CMS"
    API_PREFIX: str = "/api"
    ENVIRONMENT: str = "development"  # "development", "production", "test"

    DATABASE_URL: str = "sqlite:///./blog.db"

    SECRET_KEY: str = ""  # Must be set via environment variable
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60  # 1 hour (matches cookie max-age)
    BCRYPT_ROUNDS: int = 12

    # Verification token lifetimes
    EMAIL_VERIFICATION_EXPIRE_HOURS: int = 24
    PASSWORD_RESET_EXPIRE_MINUTES: int = 60
    VERIFICATION_RESEND_LIMIT_PER_HOUR: int = 3

    # Frontend URL for links in emails
    FRONTEND_URL: str = "http://localhost:3000"

    # Cookie security (False for local dev without HTTPS)
    COOKIE_SECURE: bool = False

    # Resend Email
    RESEND_API_KEY: str = ""
    FROM_EMAIL: str = "Blog <noreply@example.com>"

    # Uploads: "local", "s3", "cloudinary" or "auto"
    STORAGE_BACKEND: str = "auto"
    UPLOAD_DIR: str = "public/uploads"
    UPLOAD_MAX_BYTES: int = 5 * 1024 * 1024  # 5MB

    # AWS S3
    AWS_ACCESS_KEY_ID: str = ""
    AWS_SECRET_ACCESS_KEY: str = ""
    AWS_REGION: str = ""
    AWS_S3_BUCKET_NAME: str = ""
    AWS_CLOUDFRONT_DOMAIN: str = ""

    # Cloudinary
    CLOUDINARY_CLOUD_NAME: str = ""
    CLOUDINARY_API_KEY: str = ""
    CLOUDINARY_API_SECRET: str = ""

    CATEGORY_CACHE_TTL_SECONDS: int = 600  # 10 minutes

    # Downstream page cache purge after reordering posts (optional)
    REVALIDATE_URL: str = ""

    LOG_JSON: bool = False
    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(case_sensitive=True, env_file=".env", extra="ignore")

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"


settings = Settings()
