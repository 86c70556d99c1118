import os

# Must run before any floorline module reads its configuration
os.environ.setdefault("ENV", "test")
os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")
os.environ.setdefault("TAX_RATE", "0.16")
os.environ.setdefault("BUSINESS_TIMEZONE", "UTC")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret")
os.environ["REALTIME_RELAY_URL"] = ""
os.environ["PUSH_GATEWAY_URL"] = ""
