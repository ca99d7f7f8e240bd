from typing import List, Optional, Protocol

from schemas import ChatTurn, ExperimentData, ExperimentRequest, JudgeRequest, Language, Role, Verdict


class OracleError(Exception):
    """Transport failure, empty reply or malformed JSON from the generative model."""


class LabOracle(Protocol):
    """Everything the lab asks of the generative model."""

    async def generate_experiment(self, request: ExperimentRequest) -> ExperimentData: ...

    async def judge_layout(self, request: JudgeRequest) -> Verdict: ...

    async def chat(self, history: List[ChatTurn], message: str, language: Language,
                   role: Optional[Role] = None, context: Optional[str] = None) -> str: ...

    async def edit_image(self, image_base64: str, instruction: str,
                         mime_type: str = "image/png") -> Optional[str]: ...
