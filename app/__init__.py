"""Top-level package for the DKIM archive batch-update FastAPI application."""

__all__ = [
    "APP_ENV",
    "SUPABASE_URL",
    "SUPABASE_KEY",
    "WITNESS_SERVICE_URL",
]

from dotenv import load_dotenv
import os
load_dotenv()

# Environment variables
SUPABASE_URL = os.environ.get("SUPABASE_URL")
SUPABASE_KEY = os.environ.get("SUPABASE_KEY")

if not SUPABASE_URL or not SUPABASE_KEY:
    raise RuntimeError("Supabase env vars not configured")

# Prover endpoint for key-record witnesses (unset ⇒ witness generation skipped)
WITNESS_SERVICE_URL = os.environ.get("WITNESS_SERVICE_URL")

APP_ENV = os.getenv("APP_ENV", "production")
