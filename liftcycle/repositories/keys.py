"""Key scheme for the single-table item store."""
from datetime import date

GSI_BY_DATE = "GSI1"
GSI_BY_CYCLE = "GSI2"

PROFILE_SK = "PROFILE"
WORKOUT_PREFIX = "WORKOUT#"
SESSION_PREFIX = "SESSION#"
CYCLE_PREFIX = "CYCLE#"
CURRENT_CYCLE_SK = "CYCLE#CURRENT"
ANALYSIS_PREFIX = "ANALYSIS#"
SUGGESTIONS_SK = "SUGGESTIONS#LATEST"


def user_pk(user_id: str) -> str:
    return f"USER#{user_id}"


def workout_sk(workout_date: date, template_key: str) -> str:
    return f"{WORKOUT_PREFIX}{workout_date.isoformat()}#{template_key}"


def session_draft_sk(template_key: str) -> str:
    return f"{SESSION_PREFIX}{template_key}"


def cycle_sk(cycle_number: int) -> str:
    return f"{CYCLE_PREFIX}{cycle_number:04d}"


def workouts_by_date_pk(user_id: str) -> str:
    return f"WORKOUTS#{user_id}"


def cycle_index_pk(user_id: str, cycle_number: int) -> str:
    return f"{user_pk(user_id)}#{CYCLE_PREFIX}{cycle_number}"


def analysis_sk(cycle_number: int) -> str:
    return f"{ANALYSIS_PREFIX}{cycle_number:04d}"
