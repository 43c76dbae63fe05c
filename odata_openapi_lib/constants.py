"""
Constants used throughout the OData OpenAPI library.
"""

# EDM primitive type mappings to OpenAPI schema fragments
EDM_PRIMITIVE_SCHEMAS = {
    "Edm.Binary": {"type": "string", "format": "base64url"},
    "Edm.Boolean": {"type": "boolean"},
    "Edm.Byte": {"type": "integer", "format": "uint8"},
    "Edm.Date": {"type": "string", "format": "date"},
    "Edm.DateTime": {"type": "string", "format": "date-time"},  # OData v2
    "Edm.DateTimeOffset": {"type": "string", "format": "date-time"},
    "Edm.Decimal": {"type": "number", "format": "decimal"},
    "Edm.Double": {"type": "number", "format": "double"},
    "Edm.Duration": {"type": "string", "format": "duration"},
    "Edm.Guid": {"type": "string", "format": "uuid"},
    "Edm.Int16": {"type": "integer", "format": "int16", "minimum": -32768, "maximum": 32767},
    "Edm.Int32": {"type": "integer", "format": "int32", "minimum": -2147483648, "maximum": 2147483647},
    "Edm.Int64": {"type": "integer", "format": "int64"},
    "Edm.SByte": {"type": "integer", "format": "int8", "minimum": -128, "maximum": 127},
    "Edm.Single": {"type": "number", "format": "float"},
    "Edm.String": {"type": "string"},
    "Edm.Time": {"type": "string", "format": "time"},  # OData v2
    "Edm.TimeOfDay": {"type": "string", "format": "time"},
}

# Ids of the reusable query option parameters in components/parameters
TOP_PARAMETER_ID = "top"
SKIP_PARAMETER_ID = "skip"
COUNT_PARAMETER_ID = "count"
FILTER_PARAMETER_ID = "filter"
SEARCH_PARAMETER_ID = "search"

PARAMETER_REFERENCE_PREFIX = "#/components/parameters/"

# Vendor extension naming the entity type a key parameter belongs to
KEY_TYPE_EXTENSION = "x-ms-key-type"

# Vocabulary namespaces
CAPABILITIES_NAMESPACE = "Org.OData.Capabilities.V1"
CORE_DESCRIPTION_TERM = "Org.OData.Core.V1.Description"
SAP_NAMESPACE = "http://www.sap.com/Protocols/SAPData"
