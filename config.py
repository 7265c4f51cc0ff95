import os
from dotenv import load_dotenv

load_dotenv()

REDIS_URL = os.environ.get("REDIS_URL", "redis://localhost:6379/0")
GCS_BUCKET_NAME = os.environ.get("GCS_BUCKET_NAME", "")

CU_ENDPOINT = os.environ.get("CU_ENDPOINT", "")
CU_API_KEY = os.environ.get("CU_API_KEY", "")
CU_AAD_TOKEN = os.environ.get("CU_AAD_TOKEN", "")
CU_ANALYZER_ID = os.environ.get("CU_ANALYZER_ID", "")
CU_API_VERSION = os.environ.get("CU_API_VERSION", "2025-05-01-preview")
CU_USER_AGENT = os.environ.get("CU_USER_AGENT", "docvalidator-service")
CU_REQUEST_TIMEOUT_SEC = float(os.environ.get("CU_REQUEST_TIMEOUT_SEC", "30"))

ANALYSIS_POLL_TIMEOUT_SEC = float(os.environ.get("ANALYSIS_POLL_TIMEOUT_SEC", "270"))
ANALYSIS_POLL_INTERVAL_SEC = float(os.environ.get("ANALYSIS_POLL_INTERVAL_SEC", "3"))
ANALYSIS_MAX_CONCURRENCY = int(os.environ.get("ANALYSIS_MAX_CONCURRENCY", "4"))
SIGNED_URL_EXPIRATION_MIN = int(os.environ.get("SIGNED_URL_EXPIRATION_MIN", "120"))

APPROVAL_MIDDLE_BAND_POLICY = os.environ.get("APPROVAL_MIDDLE_BAND_POLICY", "random").strip().lower()
