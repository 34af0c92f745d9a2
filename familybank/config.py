import os
from typing import List

from dotenv import load_dotenv


load_dotenv()

MONGO_URI = os.getenv("MONGO_URI", "mongodb://localhost:27017")
MONGO_DB = os.getenv("MONGO_DB", "familybank")

# Socket.IO fanout goes through Redis only when this is set
REDIS_URL = os.getenv("REDIS_URL")

JWT_SECRET = os.getenv("JWT_SECRET", "familybank-development-secret-change-me")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "43200"))

FCM_SERVICE_ACCOUNT_FILE = os.getenv("FCM_SERVICE_ACCOUNT_FILE")
FCM_PROJECT_ID = os.getenv("FCM_PROJECT_ID")


def allowed_origins() -> List[str]:
    raw = os.getenv("FRONTEND_ORIGIN", "http://localhost:3000")
    return [o.strip() for o in raw.split(",") if o.strip()]
