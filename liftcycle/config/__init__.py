"""Application configuration module.

- **settings.py**: Environment-based settings (Pydantic BaseSettings)
  - Item store URL, LLM config, token secret, timeouts and retry policy
  - Loaded from .env file via pydantic-settings

- **features.py**: Feature flags with environment overrides
  - Behaviours whose intended semantics are still open (cycle reset on
    selection change, RPE for exercises without target sets)

- **workout_templates.py**: Read-only workout template catalog
  - Default A/B/C/D rotation plus optional recovery session
"""
from liftcycle.config.settings import Settings, get_settings

__all__ = ["Settings", "get_settings"]
