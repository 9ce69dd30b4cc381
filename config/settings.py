"""
Silai POS - Centralized Configuration
======================================
All environment variables and constants are loaded here.
No other module should call os.getenv() directly.
"""

import os
import sys
from dotenv import load_dotenv

load_dotenv()


# ==========================================
# 🗄️ Database
# ==========================================
DB_USER = os.getenv("DB_USER")
DB_PASSWORD = os.getenv("DB_PASSWORD")
DB_HOST = os.getenv("DB_HOST", "localhost")
DB_PORT = os.getenv("DB_PORT", "5432")
DB_NAME = os.getenv("DB_NAME")

DATABASE_URL = os.getenv("DATABASE_URL")

if not DATABASE_URL:
    if not all([DB_USER, DB_PASSWORD, DB_HOST, DB_NAME]):
        print("[ERROR] Critical: Database config missing in .env (DATABASE_URL or DB_USER, DB_PASSWORD, DB_HOST, DB_NAME)")
        sys.exit(1)
    DATABASE_URL = f"postgresql://{DB_USER}:{DB_PASSWORD}@{DB_HOST}:{DB_PORT}/{DB_NAME}"


# ==========================================
# 🔐 Security
# ==========================================
SECRET_KEY = os.getenv("SECRET_KEY")

if not SECRET_KEY:
    print("[ERROR] Critical: Security key missing in .env (SECRET_KEY)")
    sys.exit(1)

ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", str(60 * 12)))  # one shift


# ==========================================
# 🧾 Business / Billing
# ==========================================
BUSINESS_NAME = os.getenv("BUSINESS_NAME", "FabricCraft Clothing Store")
BUSINESS_ADDRESS = os.getenv("BUSINESS_ADDRESS", "")
BUSINESS_PHONE = os.getenv("BUSINESS_PHONE", "")
BUSINESS_GSTIN = os.getenv("BUSINESS_GSTIN", "")

BILL_NUMBER_PREFIX = os.getenv("BILL_NUMBER_PREFIX", "CS")
BILL_SEQUENCE_WIDTH = int(os.getenv("BILL_SEQUENCE_WIDTH", "3"))

CURRENCY_SYMBOL = os.getenv("CURRENCY_SYMBOL", "₹")

# Calendar days (bill numbers, daily reports) are counted in this zone
BUSINESS_TIMEZONE = os.getenv("BUSINESS_TIMEZONE", "Asia/Kolkata")


# ==========================================
# 📱 Messaging
# ==========================================
DEFAULT_COUNTRY_CODE = os.getenv("DEFAULT_COUNTRY_CODE", "91")
WHATSAPP_WEB_URL = "https://web.whatsapp.com/send"


# ==========================================
# 🔧 App
# ==========================================
DEBUG = os.getenv("DEBUG", "false").lower() == "true"
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Base URL for invoice links
API_URL = os.getenv("API_URL", "http://127.0.0.1:8000")

# Pagination
DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100

# Reports
TOP_PRODUCTS_LIMIT = 10
DAILY_SERIES_LIMIT = 30
