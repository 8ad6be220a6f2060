import os

# ✅ Database
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./pharmalink.db")
AUTO_CREATE_TABLES = os.getenv("AUTO_CREATE_TABLES", "1") == "1"
RUN_MIGRATIONS = os.getenv("RUN_MIGRATIONS", "0") == "1"

# ✅ Security
SECRET_KEY = os.getenv("SECRET_KEY", "change-me-in-production")
ALGORITHM = os.getenv("ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "60"))

# ✅ Calendar
# Daily super-like resets and monthly usage periods follow this timezone
REFERENCE_TIMEZONE = os.getenv("REFERENCE_TIMEZONE", "Europe/Paris")

# ✅ Billing
FEE_CURRENCY = os.getenv("FEE_CURRENCY", "EUR")

# ✅ Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_DIR = os.getenv("LOG_DIR", "logs")

# ✅ CORS
CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", "http://localhost:8081,http://localhost:19006").split(",")
    if origin.strip()
]
