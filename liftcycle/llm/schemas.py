"""LLM response schemas for structured output."""

_ADJUSTMENT = {"type": "string", "enum": ["increase", "maintain", "decrease"]}

CYCLE_ANALYSIS_SCHEMA = {
    "type": "object",
    "properties": {
        "overall_assessment": {
            "type": "object",
            "properties": {
                "fatigue_level": {"type": "string", "enum": ["low", "moderate", "high"]},
                "progress_rate": {"type": "string", "enum": ["slow", "optimal", "fast"]},
                "summary": {"type": "string"}
            },
            "required": ["fatigue_level", "progress_rate", "summary"]
        },
        "exercise_recommendations": {
            "type": "object",
            "additionalProperties": {
                "type": "object",
                "properties": {
                    "current_weight": {"type": "number"},
                    "suggested_weight": {"type": "number"},
                    "current_reps": {"type": "string"},
                    "suggested_reps": {"type": "string"},
                    "reasoning": {"type": "string"},
                    "confidence": {"type": "number", "minimum": 0, "maximum": 1}
                },
                "required": ["reasoning", "confidence"]
            }
        },
        "training_modifications": {
            "type": "object",
            "properties": {
                "volume": _ADJUSTMENT,
                "frequency": _ADJUSTMENT,
                "intensity": _ADJUSTMENT,
                "reasoning": {"type": "string"}
            }
        },
        "recovery_recommendations": {
            "type": "array",
            "items": {"type": "string"}
        },
        "warnings": {
            "type": "array",
            "items": {"type": "string"}
        }
    },
    "required": ["overall_assessment", "exercise_recommendations"]
}
