"""
Environment configuration.

Values come from the process environment, optionally seeded from a `.env`
file next to the project. Only `GEMINI_API_KEY` is required, and only when
the real Gemini client is built.
"""
import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()

BASE_DIR = os.path.dirname(os.path.abspath(__file__))
STRINGS_PATH = os.path.join(BASE_DIR, "strings.csv")

HOST = os.environ.get("LAB_HOST", "0.0.0.0")
PORT = int(os.environ.get("LAB_PORT", "8000"))
LOG_LEVEL = os.environ.get("LAB_LOG_LEVEL", "INFO").upper()
LOG_FILE = os.environ.get("LAB_LOG_FILE") or None

# Keep the last N chat turns sent to the model
MAX_HISTORY_TURNS = 20


@dataclass(frozen=True)
class ModelNames:
    student: str = "gemini-3-flash-preview"
    teacher: str = "gemini-3-pro-preview"
    judge: str = "gemini-3-pro-preview"
    chat: str = "gemini-3-pro-preview"
    image: str = "gemini-2.5-flash-image"

    @classmethod
    def from_env(cls) -> "ModelNames":
        defaults = cls()
        return cls(
            student=os.environ.get("LAB_STUDENT_MODEL", defaults.student),
            teacher=os.environ.get("LAB_TEACHER_MODEL", defaults.teacher),
            judge=os.environ.get("LAB_JUDGE_MODEL", defaults.judge),
            chat=os.environ.get("LAB_CHAT_MODEL", defaults.chat),
            image=os.environ.get("LAB_IMAGE_MODEL", defaults.image),
        )


def gemini_api_key() -> str:
    key = os.environ.get("GEMINI_API_KEY")
    if not key:
        raise RuntimeError("GEMINI_API_KEY is not set")
    return key
