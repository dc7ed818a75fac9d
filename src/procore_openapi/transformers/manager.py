"""Manager to orchestrate the conversion of Procore docs to OpenAPI.

This module coordinates the complete transformation pipeline:
1. Convert each Procore API documentation object to an OpenAPI document
2. Combine the documents into one
3. Apply all fixup operations in sequence
4. Optionally downgrade the result to OpenAPI 3.0
"""

import logging
from collections.abc import Callable, Sequence

from procore_openapi.core.errors import CombineError
from procore_openapi.transformers.base import WarningHandler
from procore_openapi.transformers.combine import combine_openapi
from procore_openapi.transformers.downgrade import downgrade_to_openapi30
from procore_openapi.transformers.endpoint_filter import EndpointFilter
from procore_openapi.transformers.op1_doc_bugs import fix_doc_bugs
from procore_openapi.transformers.op2_nullable_to_type_null import convert_nullable_to_type_null
from procore_openapi.transformers.op3_date_enum import convert_date_enums
from procore_openapi.transformers.op4_time_min_max import add_time_min_max
from procore_openapi.transformers.op5_format_from_context import add_formats_from_context
from procore_openapi.transformers.op6_deprecated import extract_deprecation_notices
from procore_openapi.transformers.op7_multipart import convert_multipart_bodies
from procore_openapi.transformers.op8_error_responses import normalize_error_responses
from procore_openapi.transformers.op9_api_metadata import add_api_metadata
from procore_openapi.transformers.procore_docs import ProcoreApiDocToOpenApiTransformer

logger = logging.getLogger(__name__)

Fixup = Callable[[dict, WarningHandler | None], dict]

_PIPELINE: list[tuple[str, Fixup]] = [
    ("op1: fix documentation bugs", fix_doc_bugs),
    ("op2: convert nullable to type null", convert_nullable_to_type_null),
    ("op3: convert date format enums", convert_date_enums),
    ("op4: add time min/max", add_time_min_max),
    ("op5: add formats from context", add_formats_from_context),
    ("op6: extract deprecation notices", extract_deprecation_notices),
    ("op7: convert multipart request bodies", convert_multipart_bodies),
    ("op8: normalize error responses", normalize_error_responses),
    ("op9: add API metadata", add_api_metadata),
]


def apply_fixups(doc: dict, warn: WarningHandler | None = None) -> dict:
    """
    Apply all fixup operations to an OpenAPI document, in order.

    Args:
        doc: OpenAPI document converted from the Procore docs
        warn: Handler for warnings from every operation

    Returns:
        The fixed document. `doc` is not modified.

    Raises:
        TransformError: If an operation fails
    """
    for label, fixup in _PIPELINE:
        logger.debug("Applying %s", label)
        doc = fixup(doc, warn)
    return doc


def convert_documents(
    docs: Sequence[dict],
    endpoint_filter: EndpointFilter | None = None,
    source_warn: Callable[[int], WarningHandler | None] | None = None,
    warn: WarningHandler | None = None,
    openapi_30: bool = False,
) -> dict:
    """
    Convert Procore API documentation objects to a single OpenAPI document.

    Args:
        docs: Parsed Procore API documentation files
        endpoint_filter: Predicate selecting endpoints to include
        source_warn: Returns the warning handler for the document at an
            index of `docs`, so that warnings can name their input
        warn: Warning handler for the fixup and downgrade operations
        openapi_30: Downgrade the result to OpenAPI 3.0.3

    Returns:
        The OpenAPI document

    Raises:
        TransformError: If a document can not be converted
        CombineError: If the converted documents conflict, or `docs` is empty
    """
    openapi_docs = []
    for i, doc in enumerate(docs):
        transformer = ProcoreApiDocToOpenApiTransformer(
            endpoint_filter=endpoint_filter,
            warn=source_warn(i) if source_warn else None,
        )
        openapi_docs.append(transformer.transform_api_doc(doc))

    combined = openapi_docs[0] if len(openapi_docs) == 1 else combine_openapi(openapi_docs)
    if combined is None:
        raise CombineError("No documents to convert")

    fixed = apply_fixups(combined, warn)
    if openapi_30:
        logger.debug("Downgrading to OpenAPI 3.0")
        fixed = downgrade_to_openapi30(fixed, warn)
    return fixed
