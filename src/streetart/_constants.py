"""Internal constants shared across the library."""

DB_NAME = "StreetArtDB"
STORE_NAME = "spots"
DB_VERSION = 1

LOCAL_STORAGE_FILE = "localStorage.json"
LEGACY_SPOTS_KEY = "streetart_spots"
SESSION_KEY = "streetart_session"

DEFAULT_SPOT_TITLE = "Новый спот"

# ------------------------------------------------------------------
# Map view
# ------------------------------------------------------------------

DEFAULT_CENTER: tuple[float, float] = (55.7558, 37.6173)
DEFAULT_ZOOM = 13
FOCUS_ZOOM = 16
FLY_DURATION_S = 0.8

PLACEHOLDER_GLYPH = "fa-spray-can"
MARKER_SIZE: tuple[int, int] = (40, 40)
MARKER_ANCHOR: tuple[int, int] = (20, 20)
Z_INDEX_ELEVATED = 1000
Z_INDEX_NORMAL = 0

# ------------------------------------------------------------------
# Image pipeline
# ------------------------------------------------------------------

IMAGE_MAX_WIDTH = 800
IMAGE_QUALITY = 70
IMAGE_MIME_TYPE = "image/jpeg"

# ------------------------------------------------------------------
# Generative description service
# ------------------------------------------------------------------

GEMINI_BASE_URL = "https://generativelanguage.googleapis.com"
GEMINI_MODEL = "gemini-2.5-flash"
DESCRIPTION_PROMPT = (
    "Ты эксперт по уличному искусству. Проанализируй это изображение. "
    "Опиши стиль (граффити, мурал, тэг, инсталляция), основные цвета, настроение и то, что изображено. "
    "Напиши краткое, но яркое описание (до 300 символов) для карты стрит-арта. "
    "Не используй фраз 'на этом изображении'. Сразу к делу."
)

DESCRIPTION_FAILED_NOTICE = "Не удалось сгенерировать описание. Попробуйте еще раз."
DELETE_FAILED_NOTICE = "Метка скрыта с карты, но не удалена из базы данных. Попробуйте еще раз."
