from typing import Optional

import pytest
from fastapi.testclient import TestClient

from oracle import OracleError
from schemas import ExperimentData, SeedPlacement, Verdict
from server import create_app


def sample_experiment() -> ExperimentData:
    return ExperimentData(
        title="Distillation of Water",
        objective="Separate water from dissolved salt.",
        equipment=["Burner", "Flask", "Stand", "Condenser"],
        reagents=["Salt water"],
        steps=["Assemble the apparatus.", "Heat gently."],
        safety=["Wear goggles."],
        errors=["Heating too fast."],
        initialAssembly=[
            SeedPlacement(name="Burner", x=25, y=75),
            SeedPlacement(name="Flask", x=25, y=50),
        ],
    )


class FakeOracle:
    """Deterministic stand-in for the generative model."""

    def __init__(self):
        self.experiment = sample_experiment()
        self.verdict = Verdict(isCorrect=True, feedback="Looks right.")
        self.reply = "Use a boiling chip."
        self.image = "data:image/png;base64,aGVsbG8="
        self.fail = False
        self.judge_requests = []
        self.chat_calls = []
        self.image_calls = []

    async def generate_experiment(self, request):
        if self.fail:
            raise OracleError("boom")
        return self.experiment

    async def judge_layout(self, request):
        self.judge_requests.append(request)
        if self.fail:
            raise OracleError("boom")
        return self.verdict

    async def chat(self, history, message, language, role=None, context=None):
        self.chat_calls.append({"history": history, "message": message, "language": language,
                                "role": role, "context": context})
        if self.fail:
            raise OracleError("boom")
        return self.reply

    async def edit_image(self, image_base64, instruction, mime_type="image/png") -> Optional[str]:
        self.image_calls.append((image_base64, instruction, mime_type))
        if self.fail:
            raise OracleError("boom")
        return self.image


@pytest.fixture
def oracle():
    return FakeOracle()


@pytest.fixture
def client(oracle):
    return TestClient(create_app(oracle=oracle))


@pytest.fixture
def session_id(client):
    response = client.post("/experiments", json={"topic": "distillation", "role": "student", "language": "en"})
    assert response.status_code == 200
    return response.json()["sessionId"]


@pytest.fixture
def experiment():
    return sample_experiment()
