import os

os.environ.setdefault("LABSITE_OTEL_ENABLED", "false")
os.environ.pop("LABSITE_SHEETS_ID", None)
os.environ.pop("LABSITE_CLIENT_CACHE_DIR", None)
