"""
Generation context bundling the metadata model with the generation settings.
"""

from typing import Optional

from .errors import check_argument_null
from .models import ODataMetadata
from .schema_mapper import PrimitiveSchemaMapper
from .settings import GenerationSettings


class ODataContext:
    """Read-only view of the model and settings shared by all builders."""

    def __init__(self, model: ODataMetadata, settings: Optional[GenerationSettings] = None):
        self.model = check_argument_null(model, "model")
        self.settings = settings or GenerationSettings()
        self.verbose = self.settings.verbose
        self.schema_mapper = PrimitiveSchemaMapper(model, verbose=self.verbose)
