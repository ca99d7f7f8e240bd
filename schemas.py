import re
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Language(str, Enum):
    EN = "en"
    RU = "ru"
    KK = "kk"


class Role(str, Enum):
    STUDENT = "student"
    TEACHER = "teacher"


class ChatRole(str, Enum):
    USER = "user"
    MODEL = "model"


LANGUAGE_NAMES = {
    Language.EN: "English",
    Language.RU: "Russian",
    Language.KK: "Kazakh",
}


# --- Experiment content ---

class SeedPlacement(BaseModel):
    """Canonical equipment position, in percent of the canvas (0-100, top-left origin)."""
    model_config = ConfigDict(frozen=True)

    name: str
    x: float
    y: float


class ExperimentData(BaseModel):
    title: str
    objective: str
    equipment: List[str] = []
    reagents: List[str] = []
    steps: List[str] = []
    safety: List[str] = []
    errors: List[str] = []
    initialAssembly: List[SeedPlacement] = []


class ExperimentRequest(BaseModel):
    topic: str = Field(min_length=1)
    role: Role = Role.STUDENT
    language: Language = Language.EN


class EquipmentPrototype(BaseModel):
    id: str
    name: str


# --- Judging ---

class Verdict(BaseModel):
    isCorrect: bool
    feedback: str


class JudgeItem(BaseModel):
    name: str
    x: int
    y: int


class JudgeRequest(BaseModel):
    experimentTitle: str
    canvasWidth: float
    canvasHeight: float
    language: Language
    items: List[JudgeItem] = []


# --- Canvas HTTP bodies ---

class CanvasSize(BaseModel):
    width: Optional[float] = Field(default=None, allow_inf_nan=False)
    height: Optional[float] = Field(default=None, allow_inf_nan=False)


class MeasuredCanvas(BaseModel):
    width: float = Field(gt=0, allow_inf_nan=False)
    height: float = Field(gt=0, allow_inf_nan=False)


class InsertItemRequest(BaseModel):
    name: str
    x: float = Field(allow_inf_nan=False)
    y: float = Field(allow_inf_nan=False)


class MoveItemRequest(BaseModel):
    x: float = Field(allow_inf_nan=False)
    y: float = Field(allow_inf_nan=False)


class PlacedItemOut(BaseModel):
    id: str
    name: str
    x: float
    y: float


class CanvasOut(BaseModel):
    state: str
    items: List[PlacedItemOut]
    verdict: Optional[Verdict] = None


# --- Chat ---

class ChatTurn(BaseModel):
    role: ChatRole
    text: str


class ExperimentChatRequest(BaseModel):
    history: List[ChatTurn] = []
    message: str = Field(min_length=1)


class GeneralChatRequest(BaseModel):
    history: List[ChatTurn] = []
    message: str = Field(min_length=1)
    language: Language = Language.EN


# --- Image lab ---

_DATA_URI = re.compile(r"^data:(?P<mime>[\w/+.-]+);base64,(?P<data>.*)$", re.DOTALL)


class ImageEditRequest(BaseModel):
    image: str = Field(min_length=1)
    prompt: str = Field(min_length=1)
    mimeType: str = "image/png"
    language: Language = Language.EN

    @field_validator("image")
    @classmethod
    def strip_whitespace(cls, value: str) -> str:
        return value.strip()

    def split_image(self):
        """Return (mime_type, base64_payload), unwrapping a data URI if one was sent."""
        match = _DATA_URI.match(self.image)
        if match:
            return match.group("mime"), match.group("data")
        return self.mimeType, self.image
