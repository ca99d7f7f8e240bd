"""
Layout judge adapter.

Sends the full current bench layout to the oracle and turns whatever comes
back into a displayable Verdict. Failures never escape: they become a
localized "analysis unavailable" verdict.
"""
import logging
from typing import Dict, Iterable, Optional

from canvas import LayoutStore, PlacedItem, round_half_up
from oracle import LabOracle
from schemas import JudgeItem, JudgeRequest, Language, Verdict

logger = logging.getLogger(__name__)

FALLBACK_FEEDBACK: Dict[Language, str] = {
    Language.EN: "AI analysis unavailable.",
    Language.RU: "Анализ ИИ недоступен.",
    Language.KK: "ЖИ талдауы қолжетімсіз.",
}


class LayoutJudge:
    def __init__(self, oracle: LabOracle, fallback_feedback: Optional[Dict[Language, str]] = None):
        self.oracle = oracle
        self.fallback_feedback = fallback_feedback or FALLBACK_FEEDBACK

    def fallback(self, language: Language) -> Verdict:
        text = self.fallback_feedback.get(language) or FALLBACK_FEEDBACK[Language.EN]
        return Verdict(isCorrect=False, feedback=text)

    @staticmethod
    def build_request(title: str, items: Iterable[PlacedItem], width: float, height: float,
                      language: Language) -> JudgeRequest:
        return JudgeRequest(
            experimentTitle=title,
            canvasWidth=width,
            canvasHeight=height,
            language=language,
            items=[JudgeItem(name=item.name, x=round_half_up(item.x), y=round_half_up(item.y))
                   for item in items],
        )

    async def evaluate(self, title: str, items: Iterable[PlacedItem], width: float, height: float,
                       language: Language) -> Verdict:
        """Single best-effort oracle call; an empty layout is judged like any other."""
        try:
            request = self.build_request(title, items, width, height, language)
            return await self.oracle.judge_layout(request)
        except Exception:
            logger.exception("Assembly analysis failed for %r", title)
            return self.fallback(language)

    async def check(self, store: LayoutStore, title: str, width: float, height: float,
                    language: Language) -> Verdict:
        # Whichever call finishes last owns the verdict.
        items = store.snapshot()
        store.begin_evaluation()
        try:
            verdict = await self.evaluate(title, items, width, height, language)
            store.set_verdict(verdict)
        finally:
            store.end_evaluation()
        return verdict
