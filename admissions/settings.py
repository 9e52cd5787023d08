import os
from dotenv import load_dotenv

load_dotenv()

BASE_DIR = os.path.dirname(__file__)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///" + os.path.join(BASE_DIR, "..", "admissions.db"))

# JWT Settings
JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "your-secret-key-change-in-production")
JWT_ALGORITHM = "HS256"
JWT_ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("JWT_ACCESS_TOKEN_EXPIRE_MINUTES", 12 * 60))

# Bootstrap admin account, created on startup when missing
ADMIN_EMAIL = os.getenv("ADMIN_EMAIL")
ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD")

# SMTP (fastapi-mail)
MAIL_USERNAME = os.getenv("MAIL_USERNAME", "")
MAIL_PASSWORD = os.getenv("MAIL_PASSWORD", "")
MAIL_FROM = os.getenv("MAIL_FROM", "admissions@example.com")
MAIL_FROM_NAME = os.getenv("MAIL_FROM_NAME", "East Africa Vision Institute")
MAIL_PORT = int(os.getenv("MAIL_PORT", 587))
MAIL_SERVER = os.getenv("MAIL_SERVER", "smtp.gmail.com")
MAIL_STARTTLS = os.getenv("MAIL_STARTTLS", "true").lower() == "true"
MAIL_SSL_TLS = os.getenv("MAIL_SSL_TLS", "false").lower() == "true"
MAIL_SUPPRESS_SEND = os.getenv("MAIL_SUPPRESS_SEND", "false").lower() == "true"

# Institute identity used in admission numbers, letters and messages
INSTITUTE_NAME = os.getenv("INSTITUTE_NAME", "East Africa Vision Institute")
INSTITUTE_SHORT_NAME = os.getenv("INSTITUTE_SHORT_NAME", "EAVI")
ADMISSION_PREFIX = os.getenv("ADMISSION_PREFIX", INSTITUTE_SHORT_NAME)
DEFAULT_STARTING_NUMBER = int(os.getenv("DEFAULT_STARTING_NUMBER", 1000))
CONTACT_PHONES = os.getenv("CONTACT_PHONES", "0726022044 / 0748022044")
CONTACT_EMAIL = os.getenv("CONTACT_EMAIL", MAIL_FROM)
CAMPUS_ADDRESS = os.getenv("CAMPUS_ADDRESS", "Skymart Building, Room F45")
FEE_CURRENCY = os.getenv("FEE_CURRENCY", "KES")

# Phone normalization for tel/sms/WhatsApp links
PHONE_COUNTRY_CODE = os.getenv("PHONE_COUNTRY_CODE", "254")
PHONE_PATTERN = os.getenv("PHONE_PATTERN", r"^254[127]\d{8}$")

# Absolute base used in shared letter download links
PUBLIC_BASE_URL = os.getenv("PUBLIC_BASE_URL", "http://localhost:8000")

# Offset between backlog auto-approvals when automatic mode is switched on
AUTO_APPROVAL_STAGGER_SECONDS = float(os.getenv("AUTO_APPROVAL_STAGGER_SECONDS", 5))

CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "http://localhost:3000").split(",") if o.strip()]

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
