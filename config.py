# config.py
"""
Application settings.

Values are read from the environment (a local .env file is loaded first)
and collected in a single Settings object. The object is built once by
create_app() and handed to the components that need it; nothing else in
the codebase reads os.environ directly.

Usage:
     from config import Settings

     settings = Settings.from_env()
     app = create_app(settings)
"""
import os
from pathlib import Path
from typing import List, Optional
from urllib.parse import quote_plus

from dotenv import load_dotenv
from pydantic import BaseModel, Field


BASE_DIR = Path(__file__).resolve().parent
DEFAULT_POSITIONS_FILE = BASE_DIR / "assets" / "templates" / "positions.json"
DEFAULT_FONT_FILE = BASE_DIR / "assets" / "fonts" / "DejaVuSans.ttf"
DEFAULT_BOLD_FONT_FILE = BASE_DIR / "assets" / "fonts" / "DejaVuSans-Bold.ttf"


def _env_bool(name: str, default: str = "false") -> bool:
     return os.getenv(name, default).lower() in ("1", "true", "yes")


def _build_mssql_url() -> str:
     """Build the MS SQL Server URL (pymssql driver) from DB_* variables."""
     server = os.getenv("DB_SERVER")
     port = os.getenv("DB_PORT", "1433")
     user = quote_plus(os.getenv("DB_USER") or "")
     password = quote_plus(os.getenv("DB_PASS") or "")
     name = os.getenv("DB_NAME")
     return f"mssql+pymssql://{user}:{password}@{server}:{port}/{name}"


class Settings(BaseModel):
     """Runtime configuration for the mandate service."""

     database_url: str
     sql_echo: bool = False

     jwt_secret: Optional[str] = None
     jwt_algorithm: str = "HS256"

     # Never logged, never echoed in errors
     field_encryption_key: str = Field(..., repr=False)

     session_token_ttl_hours: int = 48

     signature_storage: str = "inline"  # inline | blob
     document_storage: str = "local"  # local | azure
     document_storage_dir: str = "uploads"
     azure_storage_account: Optional[str] = None
     azure_storage_key: Optional[str] = Field(None, repr=False)
     azure_storage_container: str = "mandates"

     mandate_renderer: str = "template"  # template | scratch
     template_positions_file: str = str(DEFAULT_POSITIONS_FILE)
     template_version: str = "v1"
     font_file: str = str(DEFAULT_FONT_FILE)
     bold_font_file: str = str(DEFAULT_BOLD_FONT_FILE)
     logo_path: Optional[str] = None
     render_timeout_seconds: float = 15.0

     cors_origins: List[str] = []
     public_base_url: str = "http://localhost:3000"
     log_level: str = "INFO"

     @classmethod
     def from_env(cls) -> "Settings":
          """Load settings from environment variables (and .env)."""
          load_dotenv()

          origins = [o.strip() for o in os.getenv("CORS_ORIGINS", "").split(",") if o.strip()]

          return cls(
               database_url=os.getenv("DATABASE_URL") or _build_mssql_url(),
               sql_echo=_env_bool("SQL_ECHO"),
               jwt_secret=os.getenv("JWT_SECRET"),
               field_encryption_key=os.getenv("FIELD_ENCRYPTION_KEY", ""),
               session_token_ttl_hours=int(os.getenv("SESSION_TOKEN_TTL_HOURS", "48")),
               signature_storage=os.getenv("SIGNATURE_STORAGE", "inline"),
               document_storage=os.getenv("DOCUMENT_STORAGE", "local"),
               document_storage_dir=os.getenv("DOCUMENT_STORAGE_DIR", "uploads"),
               azure_storage_account=os.getenv("AZURE_STORAGE_ACCOUNT"),
               azure_storage_key=os.getenv("AZURE_STORAGE_KEY"),
               azure_storage_container=os.getenv("AZURE_STORAGE_CONTAINER", "mandates"),
               mandate_renderer=os.getenv("MANDATE_RENDERER", "template"),
               template_positions_file=os.getenv("TEMPLATE_POSITIONS_FILE", str(DEFAULT_POSITIONS_FILE)),
               template_version=os.getenv("TEMPLATE_VERSION", "v1"),
               font_file=os.getenv("FONT_FILE", str(DEFAULT_FONT_FILE)),
               bold_font_file=os.getenv("BOLD_FONT_FILE", str(DEFAULT_BOLD_FONT_FILE)),
               logo_path=os.getenv("LOGO_PATH") or None,
               render_timeout_seconds=float(os.getenv("RENDER_TIMEOUT_SECONDS", "15")),
               cors_origins=origins,
               public_base_url=os.getenv("PUBLIC_BASE_URL", "http://localhost:3000"),
               log_level=os.getenv("LOG_LEVEL", "INFO"),
          )
