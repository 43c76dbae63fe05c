"""
Mapping of EDM primitive and enum types to OpenAPI schema objects.
"""

import sys
from datetime import datetime

from .constants import EDM_PRIMITIVE_SCHEMAS
from .errors import check_argument_null
from .models import ODataMetadata, simple_name
from .openapi import OpenApiSchema


class PrimitiveSchemaMapper:
    """Maps primitive and enum type names to schema objects."""

    def __init__(self, model: ODataMetadata, verbose: bool = False):
        self.model = model
        self.verbose = verbose

    def _log_verbose(self, message: str):
        """Prints message to stderr only if verbose mode is enabled."""
        if self.verbose:
            timestamp = datetime.now().strftime('%Y-%m-%d %H:%M:%S.%f')[:-3]
            print(f"[{timestamp} Schema VERBOSE] {message}", file=sys.stderr)

    def map(self, edm_type: str) -> OpenApiSchema:
        """
        Map an EDM type name to a schema object.

        Args:
            edm_type: Primitive type (e.g. 'Edm.Int32') or enum type name

        Returns:
            A freshly allocated OpenApiSchema
        """
        check_argument_null(edm_type, "edm_type")

        primitive = EDM_PRIMITIVE_SCHEMAS.get(edm_type)
        if primitive is not None:
            return OpenApiSchema(**primitive)

        enum_type = self.model.enum_types.get(simple_name(edm_type))
        if enum_type is not None:
            return OpenApiSchema(type="string", enum=list(enum_type.members),
                                 description=enum_type.description)

        # Type definitions and unknown types are passed as plain strings
        self._log_verbose(f"No schema mapping for type '{edm_type}', using string.")
        return OpenApiSchema(type="string")
