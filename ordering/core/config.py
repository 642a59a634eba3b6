# ordering/core/config.py
import os
from decimal import Decimal
from dotenv import load_dotenv

load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL")
SQL_ECHO = os.getenv("SQL_ECHO", "false").lower() in ("1", "true", "yes")
SESSION_SECRET = os.getenv("SESSION_SECRET", "fallback-secret")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Pricing
TAX_RATE = Decimal(os.getenv("TAX_RATE", "0.085"))
MAX_ITEM_QUANTITY = int(os.getenv("MAX_ITEM_QUANTITY", "99"))

# Restaurants without an explicit timezone evaluate discount days here
DEFAULT_TIMEZONE = os.getenv("DEFAULT_TIMEZONE", "America/New_York")
