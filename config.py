"""
Application configuration, loaded once at startup from the environment.
"""

import os

DATABASE_URL = os.getenv("DATABASE_URL", "mongodb://localhost:27017")
DATABASE_NAME = os.getenv("DATABASE_NAME", "joestar_peptide")

JWT_SECRET = os.getenv("JWT_SECRET", "devsecret")
JWT_ALGO = "HS256"
JWT_EXPIRY_DAYS = int(os.getenv("JWT_EXPIRY_DAYS", "7"))

PORT = int(os.getenv("PORT", "8000"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
SEED_ON_STARTUP = os.getenv("SEED_ON_STARTUP", "1") == "1"

AFFILIATE_CODE_PREFIX = "JOESTAR"
AFFILIATE_COMMISSION_RATE = 0.04
