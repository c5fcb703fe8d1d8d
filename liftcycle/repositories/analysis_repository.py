from __future__ import annotations

import logging
from datetime import datetime, timezone

from liftcycle.models.enums import ItemType
from liftcycle.repositories import keys
from liftcycle.repositories.base import Repository
from liftcycle.schemas.analysis import AnalysisResult, ExerciseSuggestion

logger = logging.getLogger(__name__)


class AnalysisRepository(Repository):
    """Stored analyses and the per-exercise "latest suggestions" projection."""

    async def save(self, result: AnalysisResult) -> None:
        if result.cycle_number is None:
            raise ValueError("analysis result must carry a cycle number")

        await self._store.put({
            "PK": self.partition_key,
            "SK": keys.analysis_sk(result.cycle_number),
            "GSI2PK": keys.cycle_index_pk(self.user_id, result.cycle_number),
            "GSI2SK": "ANALYSIS",
            "type": ItemType.AI_ANALYSIS.value,
            **result.model_dump(mode="json"),
        })

        # A degraded result carries no recommendations; keep the previous projection
        if not result.exercise_recommendations:
            return

        current = await self._store.get(self.partition_key, keys.SUGGESTIONS_SK)
        if current is not None and current.get("cycle_number", 0) > result.cycle_number:
            logger.info(
                f"Keeping suggestions from cycle {current['cycle_number']}; "
                f"analysis of cycle {result.cycle_number} is older"
            )
            return

        suggestions = {
            name: ExerciseSuggestion(
                exercise=name,
                suggested_weight=rec.suggested_weight,
                suggested_reps=rec.suggested_reps,
                confidence=rec.confidence,
                reasoning=rec.reasoning,
                cycle_number=result.cycle_number,
            ).model_dump(mode="json")
            for name, rec in result.exercise_recommendations.items()
        }
        await self._store.put({
            "PK": self.partition_key,
            "SK": keys.SUGGESTIONS_SK,
            "type": ItemType.AI_SUGGESTIONS.value,
            "cycle_number": result.cycle_number,
            "generated_at": datetime.now(timezone.utc).isoformat(),
            "suggestions": suggestions,
        })

    async def get(self, cycle_number: int) -> AnalysisResult | None:
        item = await self._store.get(self.partition_key, keys.analysis_sk(cycle_number))
        if item is None:
            return None
        return AnalysisResult.model_validate(
            {k: v for k, v in item.items() if k in AnalysisResult.model_fields}
        )

    async def get_latest_suggestions(self) -> dict[str, ExerciseSuggestion]:
        item = await self._store.get(self.partition_key, keys.SUGGESTIONS_SK)
        if item is None:
            return {}
        return {
            name: ExerciseSuggestion.model_validate(value)
            for name, value in (item.get("suggestions") or {}).items()
        }

    async def get_suggestion(self, exercise_name: str) -> ExerciseSuggestion:
        suggestions = await self.get_latest_suggestions()
        return suggestions.get(exercise_name) or ExerciseSuggestion(exercise=exercise_name)
