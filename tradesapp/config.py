import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./tradesapp.db")

# Security - CRITICAL: No default secret key in production
SECRET_KEY = os.getenv("SECRET_KEY")
if not SECRET_KEY:
    import warnings

    warnings.warn(
        "SECRET_KEY not set! Using insecure default - DO NOT USE IN PRODUCTION", RuntimeWarning, stacklevel=2
    )
    SECRET_KEY = "INSECURE-DEV-KEY-CHANGE-IN-PRODUCTION"  # noqa: S105 - Dev fallback only

# Fernet key for secrets stored at rest (generate with: python -c "from cryptography.fernet import Fernet; print(Fernet.generate_key().decode())")
# Falls back to a key derived from SECRET_KEY
TOKEN_ENCRYPTION_KEY = os.getenv("TOKEN_ENCRYPTION_KEY")

# Frontend base URL for redirects
APP_URL = os.getenv("APP_URL", "http://localhost:3000").rstrip("/")

# Xero OAuth Configuration
# Client id/secret are supplied per user and stored in xero_tokens
XERO_REDIRECT_URI = os.getenv("XERO_REDIRECT_URI", f"{APP_URL}/api/xero/callback")
XERO_SCOPES = os.getenv(
    "XERO_SCOPES",
    "accounting.transactions accounting.contacts accounting.settings offline_access",
)

# Xero API URLs
XERO_AUTHORIZE_URL = os.getenv("XERO_AUTHORIZE_URL", "https://login.xero.com/identity/connect/authorize")
XERO_TOKEN_URL = os.getenv("XERO_TOKEN_URL", "https://identity.xero.com/connect/token")
XERO_REVOKE_URL = os.getenv("XERO_REVOKE_URL", "https://identity.xero.com/connect/revocation")
XERO_CONNECTIONS_URL = os.getenv("XERO_CONNECTIONS_URL", "https://api.xero.com/connections")
XERO_API_BASE_URL = os.getenv("XERO_API_BASE_URL", "https://api.xero.com/api.xro/2.0")

XERO_HTTP_TIMEOUT = float(os.getenv("XERO_HTTP_TIMEOUT", "30"))
# Signed OAuth state lifetime in seconds
XERO_STATE_MAX_AGE = int(os.getenv("XERO_STATE_MAX_AGE", "900"))
# Refresh the access token when it expires within this many seconds
XERO_TOKEN_REFRESH_BUFFER_SECONDS = int(os.getenv("XERO_TOKEN_REFRESH_BUFFER_SECONDS", "300"))

# Google userinfo endpoint used to resolve Google access tokens
GOOGLE_USERINFO_URL = os.getenv("GOOGLE_USERINFO_URL", "https://www.googleapis.com/oauth2/v3/userinfo")

# CORS
ALLOWED_ORIGINS = os.getenv("ALLOWED_ORIGINS", "http://localhost:3000,http://localhost:5173").split(",")
