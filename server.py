import base64
import binascii
import logging
import uuid
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import List, Optional

import uvicorn
from fastapi import FastAPI, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

# Import local modules
import config
from canvas import LayoutStore, palette_from_equipment
from experiment_context import build_experiment_context
from judge import LayoutJudge
from logging_config import setup_logging
from oracle import LabOracle, OracleError
from schemas import (
    CanvasOut, CanvasSize, ChatTurn, EquipmentPrototype, ExperimentChatRequest, ExperimentData,
    ExperimentRequest, GeneralChatRequest, ImageEditRequest, InsertItemRequest, Language, MeasuredCanvas,
    MoveItemRequest, Role,
)
from strings_loader import load_string_table, translate

logger = logging.getLogger(__name__)


@dataclass
class LabSession:
    id: str
    experiment: ExperimentData
    role: Role
    language: Language
    palette: List[EquipmentPrototype]
    store: LayoutStore = field(default_factory=LayoutStore)

    def summary(self) -> dict:
        return {
            "sessionId": self.id,
            "role": self.role.value,
            "language": self.language.value,
            "experiment": self.experiment.model_dump(),
            "palette": [proto.model_dump() for proto in self.palette],
        }


def _trim_history(history: List[ChatTurn]) -> List[ChatTurn]:
    return history[-config.MAX_HISTORY_TURNS:]


def create_app(oracle: Optional[LabOracle] = None, strings_path: Optional[str] = None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if app.state.oracle is None:
            # Deferred so importing this module never needs an API key
            from gemini_service import GeminiOracle
            app.state.oracle = GeminiOracle.from_env()
            app.state.judge = LayoutJudge(app.state.oracle)
            logger.info("Gemini oracle ready.")
        yield

    app = FastAPI(lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError):
        # Rejected input is left out: it may hold infinities JSON cannot encode
        errors = [{k: v for k, v in error.items() if k != "input"} for error in exc.errors()]
        return JSONResponse(status_code=422, content={"detail": jsonable_encoder(errors)})

    # State
    app.state.oracle = oracle
    app.state.judge = LayoutJudge(oracle) if oracle is not None else None
    app.state.sessions = {}
    app.state.strings = load_string_table(strings_path or config.STRINGS_PATH)
    logger.info("Loaded UI strings for %d languages.", len(app.state.strings))

    def text(language: Language, key: str, default: str) -> str:
        return translate(app.state.strings, language.value, key, default)

    def get_session(request: Request, session_id: str) -> LabSession:
        session = request.app.state.sessions.get(session_id)
        if session is None:
            raise HTTPException(status_code=404, detail=f"Session {session_id} not found.")
        return session

    def canvas_out(session: LabSession) -> CanvasOut:
        return CanvasOut(**session.store.to_dict())

    # --- Experiment ---

    @app.post("/experiments")
    async def create_experiment(request: Request, body: ExperimentRequest):
        try:
            experiment = await request.app.state.oracle.generate_experiment(body)
        except OracleError as e:
            logger.error("Experiment generation failed for %r: %s", body.topic, e)
            raise HTTPException(
                status_code=502,
                detail=text(body.language, "generationFailed", "Failed to generate experiment data."),
            )

        session = LabSession(
            id=uuid.uuid4().hex,
            experiment=experiment,
            role=body.role,
            language=body.language,
            palette=palette_from_equipment(experiment.equipment),
        )
        session.store.subscribe(
            lambda store: logger.debug("Session %s canvas is %s with %d items",
                                       session.id, store.state.value, len(store.items))
        )
        request.app.state.sessions[session.id] = session
        logger.info("Created session %s for %r (%s, %s)", session.id, experiment.title,
                    body.role.value, body.language.value)
        return session.summary()

    @app.get("/sessions/{session_id}")
    async def read_session(request: Request, session_id: str):
        return get_session(request, session_id).summary()

    # --- Canvas ---

    @app.get("/sessions/{session_id}/canvas", response_model=CanvasOut)
    async def read_canvas(request: Request, session_id: str):
        return canvas_out(get_session(request, session_id))

    @app.post("/sessions/{session_id}/canvas/initialize", response_model=CanvasOut)
    async def initialize_canvas(request: Request, session_id: str, size: CanvasSize):
        session = get_session(request, session_id)
        session.store.initialize(session.experiment.initialAssembly, size.width, size.height,
                                 experiment_key=session.experiment.title)
        return canvas_out(session)

    @app.post("/sessions/{session_id}/canvas/items", response_model=CanvasOut)
    async def insert_item(request: Request, session_id: str, body: InsertItemRequest):
        session = get_session(request, session_id)
        session.store.insert(body.name, body.x, body.y)
        return canvas_out(session)

    @app.put("/sessions/{session_id}/canvas/items/{item_id}", response_model=CanvasOut)
    async def move_item(request: Request, session_id: str, item_id: str, body: MoveItemRequest):
        session = get_session(request, session_id)
        session.store.reposition(item_id, body.x, body.y)
        return canvas_out(session)

    @app.post("/sessions/{session_id}/canvas/reset", response_model=CanvasOut)
    async def reset_canvas(request: Request, session_id: str, size: CanvasSize):
        session = get_session(request, session_id)
        session.store.reset(session.experiment.initialAssembly, size.width, size.height)
        return canvas_out(session)

    @app.post("/sessions/{session_id}/canvas/clear", response_model=CanvasOut)
    async def clear_canvas(request: Request, session_id: str):
        session = get_session(request, session_id)
        session.store.clear()
        return canvas_out(session)

    @app.post("/sessions/{session_id}/canvas/check", response_model=CanvasOut)
    async def check_canvas(request: Request, session_id: str, size: MeasuredCanvas):
        session = get_session(request, session_id)
        await request.app.state.judge.check(
            session.store, session.experiment.title, size.width, size.height, session.language,
        )
        return canvas_out(session)

    # --- Chat ---

    @app.post("/sessions/{session_id}/chat")
    async def experiment_chat(request: Request, session_id: str, body: ExperimentChatRequest):
        session = get_session(request, session_id)
        context = build_experiment_context(session.experiment, session.store.items)
        try:
            reply = await request.app.state.oracle.chat(
                _trim_history(body.history), body.message, session.language,
                role=session.role, context=context,
            )
        except OracleError as e:
            logger.error("Experiment chat failed: %s", e)
            reply = text(session.language, "chatUnavailable", "I am having trouble connecting to the lab assistant.")
        return {"reply": reply}

    @app.post("/chat")
    async def general_chat(request: Request, body: GeneralChatRequest):
        try:
            reply = await request.app.state.oracle.chat(_trim_history(body.history), body.message, body.language)
        except OracleError as e:
            logger.error("General chat failed: %s", e)
            reply = text(body.language, "generalUnavailable", "Service unavailable.")
        return {"reply": reply}

    # --- Image lab ---

    @app.post("/images/edit")
    async def edit_image(request: Request, body: ImageEditRequest):
        mime_type, payload = body.split_image()
        try:
            base64.b64decode(payload, validate=True)
        except (binascii.Error, ValueError):
            raise HTTPException(status_code=400, detail=text(body.language, "invalidImage", "Invalid image data."))

        try:
            image = await request.app.state.oracle.edit_image(payload, body.prompt, mime_type)
        except OracleError as e:
            logger.error("Image edit failed: %s", e)
            image = None
        if not image:
            raise HTTPException(status_code=502, detail=text(body.language, "imageEditFailed", "Failed to edit image."))
        return {"image": image}

    # --- UI strings ---

    @app.get("/strings/{language}")
    async def read_strings(request: Request, language: Language):
        table = request.app.state.strings
        merged = dict(table.get(Language.EN.value, {}))
        merged.update(table.get(language.value, {}))
        return {"language": language.value, "strings": merged}

    return app


app = create_app()

if __name__ == "__main__":
    setup_logging(config.LOG_LEVEL, config.LOG_FILE)
    uvicorn.run(app, host=config.HOST, port=config.PORT)
