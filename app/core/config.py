from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # MongoDB settings
    MONGO_URI: str = "mongodb://localhost:27017/clinic"
    MONGO_DB_NAME: str = "clinic"

    # OTP settings
    OTP_TTL_SECONDS: int = 300
    OTP_MAX_ATTEMPTS: int = 5
    OTP_LENGTH: int = 6
    # Mongo TTL index, removes records a fixed time after creation
    OTP_RECORD_RETENTION_SECONDS: int = 86400

    # SMS gateway settings ("sonali", "boomcast" or "log").
    # Unset means "sonali" in production and "log" elsewhere
    SMS_PROVIDER: Optional[str] = None
    SMS_API_KEY: str = ""
    SMS_SECRET_KEY: str = ""
    SMS_SENDER_ID: str = ""
    SMS_SEND_URL: str = "http://api.sonalisms.com:7788/sendtext"
    SMS_STATUS_URL: str = "http://api.sonalisms.com:7788/getstatus"
    SMS_BALANCE_URL: str = "http://api.sonalisms.com/sms/smsConfiguration/smsClientBalance.jsp"
    SMS_TIMEOUT_SECONDS: float = 10.0

    # Boomcast gateway
    BOOMCAST_USERNAME: str = ""
    BOOMCAST_PASSWORD: str = ""
    BOOMCAST_MASKING: str = ""
    BOOMCAST_SEND_URL: str = "http://api.boom-cast.com/boomcast/WebFramework/boomCastWebService/OTPMessage.php"

    # CORS
    CORS_ORIGINS: List[str] = ["http://127.0.0.1:5500"]

    # Project settings
    PROJECT_NAME: str = "Clinic OTP Service"
    API_V1_STR: str = "/api/v1"

    # Environment (development, production, testing)
    ENVIRONMENT: str = "development"

    # Load environment variables from .env file
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )


# Instantiate settings
settings = Settings()
