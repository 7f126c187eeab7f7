"""
Configuration for SmartCube Core
"""
import os
from pathlib import Path
from typing import Optional
from dotenv import load_dotenv

load_dotenv()


class Config:
    """Configuration class for SmartCube Core"""

    # Mode: "solo" (local JSON storage) or "prod" (Supabase)
    MODE: str = os.getenv("SMARTCUBE_MODE", "solo")

    # Storage configuration
    STORAGE_PATH: Optional[str] = os.getenv("SMARTCUBE_STORAGE_PATH")
    if STORAGE_PATH is None:
        STORAGE_PATH = str(Path.home() / ".smartcube" / "data")

    # Where saver cubes write their files
    UPLOADS_PATH: str = os.getenv("SMARTCUBE_UPLOADS_PATH", str(Path.cwd() / "uploads"))

    # Supabase configuration (for prod mode)
    SUPABASE_URL: Optional[str] = os.getenv("SUPABASE_URL") or os.getenv("NEXT_PUBLIC_SUPABASE_URL")
    SUPABASE_KEY: Optional[str] = os.getenv("SUPABASE_SERVICE_ROLE_KEY")

    # AI provider configuration
    AI_PROVIDER: str = os.getenv("AI_PROVIDER", "openrouter")
    # Wall-clock budget for AI-backed cubes (milliseconds)
    AI_TIMEOUT_MS: int = int(os.getenv("AI_TIMEOUT_MS", "60000"))
    # HTTP timeout for a single provider request (seconds)
    AI_REQUEST_TIMEOUT: float = float(os.getenv("SMARTCUBE_AI_REQUEST_TIMEOUT", "120"))

    OPENROUTER_API_KEY: Optional[str] = os.getenv("OPENROUTER_API_KEY")
    OPENROUTER_MODEL: str = os.getenv("OPENROUTER_MODEL", "openai/gpt-4o-mini")
    APP_URL: str = os.getenv("NEXT_PUBLIC_APP_URL", "http://localhost:3000")

    AZURE_OPENAI_API_KEY: Optional[str] = os.getenv("AZURE_OPENAI_API_KEY")
    AZURE_OPENAI_ENDPOINT: Optional[str] = os.getenv("AZURE_OPENAI_ENDPOINT")
    AZURE_OPENAI_DEPLOYMENT: Optional[str] = os.getenv("AZURE_OPENAI_DEPLOYMENT")

    GOOGLE_AI_API_KEY: Optional[str] = os.getenv("GOOGLE_AI_API_KEY")

    # API server configuration
    API_HOST: str = os.getenv("SMARTCUBE_HOST", "0.0.0.0")
    API_PORT: int = int(os.getenv("SMARTCUBE_PORT", "7790"))

    # Debug mode (set SMARTCUBE_DEBUG=true to enable)
    DEBUG: bool = os.getenv("SMARTCUBE_DEBUG", "").lower() in ("true", "1", "yes")

    @classmethod
    def validate(cls) -> bool:
        """Validate configuration"""
        if cls.MODE == "prod":
            if not cls.SUPABASE_URL or not cls.SUPABASE_KEY:
                print("[CONFIG] Error: SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY required for prod mode")
                return False
        if cls.AI_TIMEOUT_MS <= 0:
            print("[CONFIG] Error: AI_TIMEOUT_MS must be positive")
            return False
        return True

