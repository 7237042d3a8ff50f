import os

HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", 8080))

# Comma separated, "*" allows every origin
CORS_ORIGINS = [origin.strip() for origin in os.getenv("CORS_ORIGIN", "*").split(",") if origin.strip()]

ONE_TO_ONE = os.getenv("ONE_TO_ONE", "false").lower() in ("1", "true", "yes")
MAX_ROOM_SIZE = 2 if ONE_TO_ONE else int(os.getenv("MAX_ROOM_SIZE", 10))

MAX_NAME_LENGTH = 64
MAX_CHAT_LENGTH = 2000

ROOM_FULL_ERROR = "room-full"

# Frames buffered per connection before new ones are dropped
MAX_OUTBOUND_QUEUE = int(os.getenv("MAX_OUTBOUND_QUEUE", 256))
