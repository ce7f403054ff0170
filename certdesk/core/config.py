# certdesk/core/config.py
import os
from typing import ClassVar, List
from pydantic import BaseModel, Field

def _data_dir() -> str:
    return os.path.abspath(os.getenv("DATA_DIR", "./data"))

def _default_database_url() -> str:
    data_dir = _data_dir()
    os.makedirs(data_dir, exist_ok=True)
    return os.getenv("DATABASE_URL", f"sqlite:///{os.path.join(data_dir, 'certificates.db')}")

def _public_site_url() -> str:
    return os.getenv("PUBLIC_SITE_URL", "http://localhost:8000").rstrip("/")

def _verify_base_url() -> str:
    return os.getenv("VERIFY_BASE_URL", f"{_public_site_url()}/verify").rstrip("/")

def _template_path() -> str:
    default = os.path.join(_data_dir(), "templates", "certificate-template.pdf")
    return os.getenv("CERT_TEMPLATE_PATH", default)

def _cors_origins() -> List[str]:
    raw = os.getenv("CORS_ORIGINS", "*")
    return [o.strip() for o in raw.split(",") if o.strip()]

class Settings(BaseModel):
    # Constante (não vira campo Pydantic)
    DATA_DIR: ClassVar[str] = _data_dir()

    DATABASE_URL: str = Field(default_factory=_default_database_url)
    SECRET_KEY: str = Field(default_factory=lambda: os.getenv("SECRET_KEY", "CHANGE_ME_SUPER_SECRET"))
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(default_factory=lambda: int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "30")))
    REFRESH_TOKEN_EXPIRE_DAYS: int = Field(default_factory=lambda: int(os.getenv("REFRESH_TOKEN_EXPIRE_DAYS", "7")))

    # numeração: <PREFIX>/<YEAR-SEGMENT>/<seq>
    CERT_PREFIX: str = Field(default_factory=lambda: os.getenv("CERT_PREFIX", "DARE/AIR/LP"))
    CERT_YEAR_SEGMENT: str = Field(default_factory=lambda: os.getenv("CERT_YEAR_SEGMENT", "25-26"))
    CERT_SEQUENCE_MAX_ATTEMPTS: int = Field(default_factory=lambda: int(os.getenv("CERT_SEQUENCE_MAX_ATTEMPTS", "100")))

    PUBLIC_SITE_URL: str = Field(default_factory=_public_site_url)
    VERIFY_BASE_URL: str = Field(default_factory=_verify_base_url)
    CERT_TEMPLATE_PATH: str = Field(default_factory=_template_path)
    DEFAULT_COURSE_NAME: str = Field(
        default_factory=lambda: os.getenv(
            "DEFAULT_COURSE_NAME", "AI-Powered Logistics Practitioner - Foundation Level"
        )
    )

    ROLE_LOOKUP_TIMEOUT_SECONDS: float = Field(default_factory=lambda: float(os.getenv("ROLE_LOOKUP_TIMEOUT_SECONDS", "2")))
    LOG_LEVEL: str = Field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO").upper())
    CORS_ORIGINS: List[str] = Field(default_factory=_cors_origins)

    # seed opcional do super admin
    SUPERADMIN_EMAIL: str = Field(default_factory=lambda: os.getenv("SUPERADMIN_EMAIL", ""))
    SUPERADMIN_PASSWORD: str = Field(default_factory=lambda: os.getenv("SUPERADMIN_PASSWORD", ""))

settings = Settings()
