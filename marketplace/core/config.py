import os
from decimal import Decimal

# Database Configuration
# Uses default credentials for local Docker Compose setup
DB_URL = os.getenv("DATABASE_URL", "postgres://user:password@db:5432/marketplace_db")

# Application Metadata
PROJECT_NAME = "Marketplace Order Lifecycle Service"
VERSION = "1.0.0"

# Pricing values read at placement time only
DELIVERY_FEE = Decimal(os.getenv("DELIVERY_FEE", "40.00"))
TAX_PERCENT = Decimal(os.getenv("TAX_PERCENT", "5"))

# Admins may move an order out of delivered/cancelled/refund_issued
ADMIN_CAN_REOPEN_TERMINAL = os.getenv("ADMIN_CAN_REOPEN_TERMINAL", "true").lower() in ("1", "true", "yes")

ORDER_NUMBER_ATTEMPTS = int(os.getenv("ORDER_NUMBER_ATTEMPTS", 5)) # Retries on order number collision
MAX_PAGE_SIZE = int(os.getenv("MAX_PAGE_SIZE", 100)) # Upper bound for list endpoints
