"""Application configuration"""
import os
from dotenv import load_dotenv

load_dotenv()


class Settings:
    # Database Configuration
    DATABASE_USER = os.getenv("DATABASE_USER", "postgres")
    DATABASE_PASSWORD = os.getenv("DATABASE_PASSWORD", "123456")
    DATABASE_HOST = os.getenv("DATABASE_HOST", "localhost")
    DATABASE_PORT = os.getenv("DATABASE_PORT", "5432")
    DATABASE_NAME = os.getenv("DATABASE_NAME", "blog")

    @property
    def DATABASE_URL(self) -> str:
        """Explicit DATABASE_URL wins, otherwise construct a PostgreSQL URL"""
        explicit = os.getenv("DATABASE_URL")
        if explicit:
            return explicit
        return f"postgresql://{self.DATABASE_USER}:{self.DATABASE_PASSWORD}@{self.DATABASE_HOST}:{self.DATABASE_PORT}/{self.DATABASE_NAME}"

    # Logging Configuration
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    LOG_FILE = os.getenv("LOG_FILE", "app/logs/logs.txt")

    # CORS (comma separated)
    CORS_ORIGINS = [
        origin.strip()
        for origin in os.getenv(
            "CORS_ORIGINS",
            "http://localhost:5173,http://localhost:5174,http://localhost:5175,http://localhost:3000",
        ).split(",")
        if origin.strip()
    ]

    # Development/Production Settings
    ENVIRONMENT = os.getenv("ENVIRONMENT", "production")
    DEBUG = os.getenv("DEBUG", "false").lower() == "true"

    # Project Metadata
    PROJECT_NAME = "Blog Auth API"
    PROJECT_VERSION = "1.0.0"
    API_PREFIX = "/api"

    # JWT Authentication
    SECRET_KEY = os.getenv("SECRET_KEY", "your-secret-key-change-this-in-production-min-32-chars")
    ALGORITHM = os.getenv("ALGORITHM", "HS256")
    ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", 60 * 24 * 7))  # 7 days

    # Password hashing cost
    BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", 10))

    # Login responses flag this address as the blog admin
    ADMIN_EMAIL = os.getenv("ADMIN_EMAIL", "").strip().lower()

    # SMTP / Email configuration
    MAIL_USER = os.getenv("MAIL_USER", "")
    MAIL_PASS = os.getenv("MAIL_PASS", "")
    MAIL_FROM_NAME = os.getenv("MAIL_FROM_NAME", "Auth System")
    SMTP_HOST = os.getenv("SMTP_HOST", "smtp.gmail.com")
    SMTP_SSL_PORT = int(os.getenv("SMTP_SSL_PORT", 465))
    SMTP_STARTTLS_PORT = int(os.getenv("SMTP_STARTTLS_PORT", 587))
    SMTP_TIMEOUT = int(os.getenv("SMTP_TIMEOUT", 10))

    # OTP
    OTP_EXPIRE_MINUTES = int(os.getenv("OTP_EXPIRE_MINUTES", 10))
    OTP_LENGTH = int(os.getenv("OTP_LENGTH", 6))


settings = Settings()
