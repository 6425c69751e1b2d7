"""
Catalog Services - Product catalog fetch and resolve pipeline
Provides paginated upstream access, media reference resolution and the
cached feed wrappers.
"""

from api.catalog.core import CatalogService
from api.catalog.errors import (
    CatalogError,
    TransportError,
    UpstreamCostExceeded,
    UpstreamQueryError,
    UpstreamThrottled,
)
from api.catalog.fetch_strategy import CatalogFetchStrategySelector
from api.catalog.media_index import MediaCatalogBuilder, MediaIndex
from api.catalog.models import (
    ProductRecord,
    ProductsResponse,
    ReferenceField,
    ResolvedField,
    RunReport,
)
from api.catalog.pagination import Paginator, SchedulingPolicy
from api.catalog.pipeline import TransformPipeline, TransformResult
from api.catalog.resolver import ReferenceResolver
from api.catalog.wrappers import catalog_wrapper

__all__ = [
    # Wrappers
    "catalog_wrapper",
    # Services
    "CatalogService",
    "Paginator",
    "SchedulingPolicy",
    "MediaCatalogBuilder",
    "MediaIndex",
    "ReferenceResolver",
    "CatalogFetchStrategySelector",
    "TransformPipeline",
    "TransformResult",
    # Models
    "ProductRecord",
    "ProductsResponse",
    "ReferenceField",
    "ResolvedField",
    "RunReport",
    # Errors
    "CatalogError",
    "TransportError",
    "UpstreamQueryError",
    "UpstreamCostExceeded",
    "UpstreamThrottled",
]
