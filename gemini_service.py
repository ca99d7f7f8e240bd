"""
Gemini-backed implementation of the lab oracle.

Prompts are written here; the model is asked for strict JSON wherever the
caller needs structure, and the reply is validated with the same pydantic
models the HTTP layer uses.
"""
import base64
import binascii
import logging
from typing import List, Optional

from google import genai
from google.genai import types
from pydantic import ValidationError

import config
from oracle import OracleError
from schemas import (
    LANGUAGE_NAMES, ChatTurn, ExperimentData, ExperimentRequest, JudgeRequest, Language, Role, Verdict,
)

logger = logging.getLogger(__name__)

NO_REPLY_TEXT = "No response received."
GENERAL_NO_REPLY_TEXT = "No response."

_STRING_LIST = types.Schema(type=types.Type.ARRAY, items=types.Schema(type=types.Type.STRING))

EXPERIMENT_SCHEMA = types.Schema(
    type=types.Type.OBJECT,
    properties={
        "title": types.Schema(type=types.Type.STRING),
        "objective": types.Schema(type=types.Type.STRING),
        "equipment": _STRING_LIST,
        "reagents": _STRING_LIST,
        "steps": _STRING_LIST,
        "safety": _STRING_LIST,
        "errors": _STRING_LIST,
        "initialAssembly": types.Schema(
            type=types.Type.ARRAY,
            items=types.Schema(
                type=types.Type.OBJECT,
                properties={
                    "name": types.Schema(type=types.Type.STRING),
                    "x": types.Schema(type=types.Type.NUMBER, description="X position percentage 0-100"),
                    "y": types.Schema(type=types.Type.NUMBER, description="Y position percentage 0-100"),
                },
                required=["name", "x", "y"],
            ),
        ),
    },
    required=["title", "objective", "equipment", "reagents", "steps", "safety", "errors", "initialAssembly"],
)


def _experiment_system_prompt(role: Role, lang_name: str) -> str:
    if role == Role.TEACHER:
        return (
            "You are a senior chemistry methodology expert aiding university professors. "
            "Provide detailed, rigorous academic content with pedagogical notes. "
            f"Output in {lang_name}."
        )
    return (
        "You are a helpful chemistry tutor for students. "
        "Provide clear, simplified, safety-first step-by-step instructions. "
        f"Output in {lang_name}."
    )


def _experiment_prompt(topic: str, lang_name: str) -> str:
    return (
        f'Generate a chemistry experiment guide for: "{topic}".\n'
        f"The content MUST be in {lang_name}. Keys stay in English, values are in {lang_name}.\n\n"
        "Also provide 'initialAssembly': the correct setup of the equipment on a 2D canvas.\n"
        "Give 'x' and 'y' as percentages (0-100) of the canvas width and height, origin (0,0) top-left.\n"
        "Position items so they form a proper diagram (e.g. burner at the bottom (y~80), "
        "flask above it (y~60), stand holding them).\n\n"
        "Return JSON with: title, objective, equipment[], reagents[], steps[], safety[], errors[], "
        "initialAssembly[{name, x, y}]."
    )


def _layout_prompt(request: JudgeRequest) -> str:
    lang_name = LANGUAGE_NAMES[request.language]
    if request.items:
        layout = "\n".join(f"- {item.name} at position (x: {item.x}, y: {item.y})" for item in request.items)
    else:
        layout = "- (no items placed)"
    return (
        f'I am simulating a 2D lab assembly check for the experiment: "{request.experimentTitle}".\n'
        f"The canvas size is {request.canvasWidth:g}x{request.canvasHeight:g}. Origin (0,0) is top-left.\n\n"
        f"The user has placed the following items:\n{layout}\n\n"
        "Analyze if this spatial arrangement makes sense for the experiment.\n"
        "For example, a burner should be below a flask. A funnel should be above a container.\n"
        "If it looks correct, return specific praise.\n"
        'If incorrect, explain why (e.g. "The burner is above the flask, which is dangerous").\n'
        f"Provide the feedback in {lang_name}.\n\n"
        'Output strictly JSON: {"isCorrect": boolean, "feedback": "string message"}'
    )


def _chat_system_prompt(role: Optional[Role], lang_name: str, has_context: bool) -> str:
    if not has_context:
        return f"You are a helpful chemistry AI assistant. Answer general chemistry questions in {lang_name}."
    if role == Role.TEACHER:
        return (
            "You are a methodology expert. Answer questions about the current experiment "
            f"with academic rigour. Answer in {lang_name}."
        )
    return (
        "You are a lab tutor. Answer questions simply and safely, focusing on the current experiment. "
        f"Answer in {lang_name}."
    )


class GeminiOracle:
    def __init__(self, client: genai.Client, models: Optional[config.ModelNames] = None):
        self.client = client
        self.models = models or config.ModelNames()

    @classmethod
    def from_env(cls) -> "GeminiOracle":
        client = genai.Client(api_key=config.gemini_api_key())
        return cls(client, config.ModelNames.from_env())

    async def _generate(self, model: str, contents, generation_config: Optional[types.GenerateContentConfig] = None):
        try:
            return await self.client.aio.models.generate_content(model=model, contents=contents, config=generation_config)
        except Exception as e:
            raise OracleError(f"{model} request failed: {e}") from e

    async def generate_experiment(self, request: ExperimentRequest) -> ExperimentData:
        lang_name = LANGUAGE_NAMES[request.language]
        model = self.models.teacher if request.role == Role.TEACHER else self.models.student
        response = await self._generate(
            model,
            _experiment_prompt(request.topic, lang_name),
            types.GenerateContentConfig(
                system_instruction=_experiment_system_prompt(request.role, lang_name),
                response_mime_type="application/json",
                response_schema=EXPERIMENT_SCHEMA,
            ),
        )
        try:
            return ExperimentData.model_validate_json(response.text or "")
        except ValidationError as e:
            raise OracleError("Experiment response was not valid JSON") from e

    async def judge_layout(self, request: JudgeRequest) -> Verdict:
        response = await self._generate(
            self.models.judge,
            _layout_prompt(request),
            types.GenerateContentConfig(
                response_mime_type="application/json",
                response_schema=Verdict,
            ),
        )
        try:
            return Verdict.model_validate_json(response.text or "")
        except ValidationError as e:
            raise OracleError("Layout verdict was not valid JSON") from e

    async def chat(self, history: List[ChatTurn], message: str, language: Language,
                   role: Optional[Role] = None, context: Optional[str] = None) -> str:
        lang_name = LANGUAGE_NAMES[language]
        contents = []
        if context:
            # Prime the conversation with the experiment
            contents.append(types.Content(role="user", parts=[types.Part(text=f"Context: {context}")]))
        for turn in history:
            contents.append(types.Content(
                role=turn.role.value,
                parts=[types.Part(text=turn.text)],
            ))
        contents.append(types.Content(role="user", parts=[types.Part(text=message)]))

        response = await self._generate(
            self.models.chat,
            contents,
            types.GenerateContentConfig(
                system_instruction=_chat_system_prompt(role, lang_name, bool(context)),
            ),
        )
        if response.text:
            return response.text
        return NO_REPLY_TEXT if context else GENERAL_NO_REPLY_TEXT

    async def edit_image(self, image_base64: str, instruction: str,
                         mime_type: str = "image/png") -> Optional[str]:
        try:
            image_bytes = base64.b64decode(image_base64, validate=True)
        except (binascii.Error, ValueError) as e:
            raise OracleError("Source image is not valid base64") from e

        parts = [
            types.Part(inline_data=types.Blob(mime_type=mime_type, data=image_bytes)),
            types.Part(text=instruction),
        ]
        response = await self._generate(self.models.image, [types.Content(role="user", parts=parts)])

        if not response.candidates:
            return None
        content = response.candidates[0].content
        for part in (content.parts if content else None) or []:
            if part.inline_data and part.inline_data.data:
                data = base64.b64encode(part.inline_data.data).decode("utf-8")
                mime = part.inline_data.mime_type or "image/png"
                return f"data:{mime};base64,{data}"
        logger.warning("Image model returned no image part")
        return None
