"""
Settings that control parameter generation.
"""

import os

from pydantic import BaseModel


def _env_flag(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


class GenerationSettings(BaseModel):
    # Example value shown for the reusable $top parameter
    top_example: int = 50
    # Name key parameters "<EntityType>-<Key><Index>" instead of "<Key><Index>"
    prefix_entity_type_name_before_key: bool = False
    verbose: bool = False

    @classmethod
    def from_env(cls) -> 'GenerationSettings':
        """Create settings from ODATA_OPENAPI_* environment variables."""
        top_example = os.getenv("ODATA_OPENAPI_TOP_EXAMPLE")
        return cls(
            top_example=int(top_example) if top_example else 50,
            prefix_entity_type_name_before_key=_env_flag("ODATA_OPENAPI_PREFIX_KEY_TYPE"),
            verbose=_env_flag("ODATA_OPENAPI_VERBOSE"),
        )
