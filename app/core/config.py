import os
from dotenv import load_dotenv

# Load Environment Variables
load_dotenv()

# --- GCP / FIREBASE ---
PROJECT_ID = os.getenv("GCP_PROJECT_ID")
SA_KEY_PATH = os.getenv("GOOGLE_APPLICATION_CREDENTIALS")
STORAGE_BUCKET = os.getenv("GCP_STORAGE_BUCKET")

FIREBASE_WEB_CONFIG = {
    "apiKey": os.getenv("FIREBASE_API_KEY"),
    "authDomain": os.getenv("FIREBASE_AUTH_DOMAIN"),
    "projectId": PROJECT_ID,
    "storageBucket": STORAGE_BUCKET,
    "messagingSenderId": os.getenv("FIREBASE_MESSAGING_SENDER_ID"),
    "appId": os.getenv("FIREBASE_APP_ID"),
}

# --- REMOTE PROCEDURES (Cloud Functions) ---
RPC_BASE_URL = os.getenv("RPC_BASE_URL", "")
RPC_API_KEY = os.getenv("RPC_API_KEY", "")
RPC_TIMEOUT_SECONDS = float(os.getenv("RPC_TIMEOUT_SECONDS", "15"))

# --- DATASTORE ---
DATASTORE_TIMEOUT_SECONDS = float(os.getenv("DATASTORE_TIMEOUT_SECONDS", "10"))

# --- RBAC ---
# Upper bound on how long a resolved role may be served without a fresh lookup.
PERMISSION_CACHE_TTL_SECONDS = float(os.getenv("PERMISSION_CACHE_TTL_SECONDS", "300"))

# --- HTTP ---
CORS_ALLOW_ORIGINS = [o.strip() for o in os.getenv("CORS_ALLOW_ORIGINS", "*").split(",") if o.strip()]

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
