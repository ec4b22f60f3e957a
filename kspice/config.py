import os
from dotenv import load_dotenv

load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///kspice.db")

# JWT (for production, store secret safely!)
JWT_SECRET = os.getenv("JWT_SECRET", "super-secret-change-this")
JWT_ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", 60 * 24))
BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", 12))

OTP_EXPIRE_MINUTES = int(os.getenv("OTP_EXPIRE_MINUTES", 10))

# Brevo HTTP API key (not the SMTP key)
BREVO_API_KEY = os.getenv("BREVO_API_KEY", "")
MAIL_SENDER_EMAIL = os.getenv("MAIL_SENDER_EMAIL", "no-reply@kspice.vn")
MAIL_SENDER_NAME = os.getenv("MAIL_SENDER_NAME", "K-Spice")

CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "http://localhost:5173,http://127.0.0.1:5173").split(",") if o.strip()]

ADMIN_EMAIL = os.getenv("ADMIN_EMAIL", "admin@kspice.vn")
ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD", "Admin@1234")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FILE = os.getenv("LOG_FILE")

PORT = int(os.getenv("PORT", 8000))
