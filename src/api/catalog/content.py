"""
Store content fetchers: files, pages, collections and metaobjects.

Each ``fetch_*`` drains one paginated query through the given Paginator and
returns raw nodes; each ``transform_*`` turns raw nodes into output records.
"""

import json
from typing import Any

from api.catalog.errors import CatalogError
from api.catalog.models import (
    CollectionProductRef,
    CollectionRecord,
    FileRecord,
    MetafieldRecord,
    MetaobjectRecord,
    PageRecord,
)
from api.catalog.pagination import Paginator, connection_extractor
from api.catalog.queries import (
    COLLECTION_PRODUCTS_QUERY,
    COLLECTIONS_QUERY,
    FILES_QUERY,
    METAOBJECTS_QUERY,
    PAGES_QUERY,
)
from utils.get_logger import get_logger

logger = get_logger(__name__)

CONTENT_PAGE_SIZE = 50

VIDEO_EXTENSIONS = {"mp4", "mov", "avi", "wmv", "flv", "webm"}
IMAGE_EXTENSIONS = {"jpg", "jpeg", "png", "gif", "webp", "svg"}
DOCUMENT_EXTENSIONS = {"pdf", "doc", "docx", "xls", "xlsx", "ppt", "pptx", "zip", "rar"}

MIME_TYPES = {
    "pdf": "application/pdf",
    "doc": "application/msword",
    "docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "xls": "application/vnd.ms-excel",
    "xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
    "webp": "image/webp",
    "svg": "image/svg+xml",
    "mp4": "video/mp4",
    "mov": "video/quicktime",
    "avi": "video/x-msvideo",
    "webm": "video/webm",
}
DEFAULT_MIME_TYPE = "application/octet-stream"


# --- Files -------------------------------------------------------------------


def _url_path(url: str) -> str:
    return url.split("?", 1)[0].split("#", 1)[0]


def file_extension(url: str) -> str:
    last = _url_path(url).rsplit("/", 1)[-1]
    return last.rsplit(".", 1)[-1].lower() if "." in last else ""


def file_url(file: dict[str, Any]) -> str:
    """image.url, then url, then originalSource.url, then preview.image.url."""
    candidates = (
        (file.get("image") or {}).get("url"),
        file.get("url"),
        (file.get("originalSource") or {}).get("url"),
        ((file.get("preview") or {}).get("image") or {}).get("url"),
    )
    return next((c for c in candidates if c), "")


def determine_media_type(file: dict[str, Any], url: str) -> str:
    if file.get("image"):
        return "IMAGE"
    if file.get("originalSource"):
        return "VIDEO"
    extension = file_extension(url)
    if extension in VIDEO_EXTENSIONS:
        return "VIDEO"
    if extension in IMAGE_EXTENSIONS:
        return "IMAGE"
    if extension in DOCUMENT_EXTENSIONS:
        return "DOCUMENT"
    return "OTHER"


def determine_mime_type(url: str) -> str:
    return MIME_TYPES.get(file_extension(url), DEFAULT_MIME_TYPE)


async def fetch_all_files(paginator: Paginator) -> list[dict[str, Any]]:
    stream = paginator.paginate(FILES_QUERY, CONTENT_PAGE_SIZE, connection_extractor("files"), label="files")
    files = await paginator.collect(stream)
    logger.info(f"Fetched {len(files)} files")
    return files


def transform_files(files: list[dict[str, Any]]) -> list[FileRecord]:
    records = []
    for file in files:
        url = file_url(file)
        if not url:
            logger.warning(f"No URL found for file with ID: {file.get('id')}")
        filename = _url_path(url).rsplit("/", 1)[-1] if url else ""
        records.append(
            FileRecord(
                id=file.get("id", ""),
                filename=filename or "unnamed-file",
                url=url,
                media_type=determine_media_type(file, url),
                created_at=file.get("createdAt"),
                updated_at=file.get("updatedAt"),
                alt=file.get("alt") or None,
                status=file.get("fileStatus") or None,
                mime_type=determine_mime_type(url),
            )
        )
    return records


# --- Pages -------------------------------------------------------------------


async def fetch_all_pages(paginator: Paginator) -> list[dict[str, Any]]:
    stream = paginator.paginate(PAGES_QUERY, CONTENT_PAGE_SIZE, connection_extractor("pages"), label="pages")
    pages = await paginator.collect(stream)
    logger.info(f"Fetched {len(pages)} pages")
    return pages


def transform_pages(pages: list[dict[str, Any]]) -> list[PageRecord]:
    return [PageRecord.model_validate(page) for page in pages]


# --- Collections -------------------------------------------------------------


async def fetch_all_collections(paginator: Paginator) -> list[dict[str, Any]]:
    stream = paginator.paginate(
        COLLECTIONS_QUERY, CONTENT_PAGE_SIZE, connection_extractor("collections"), label="collections"
    )
    collections = await paginator.collect(stream)
    logger.info(f"Fetched {len(collections)} collections successfully.")
    return collections


async def fetch_collection_products(paginator: Paginator, collection_id: str) -> list[dict[str, Any]]:
    """All products of one collection; an empty list if they cannot be fetched."""
    stream = paginator.paginate(
        COLLECTION_PRODUCTS_QUERY,
        CONTENT_PAGE_SIZE,
        connection_extractor("collection", "products"),
        variables={"id": collection_id},
        label=f"collection {collection_id}",
    )
    try:
        products = await paginator.collect(stream)
    except CatalogError as e:
        logger.error(f"Error fetching products for collection {collection_id}: {e}")
        return []
    logger.debug(f"Fetched {len(products)} products for collection {collection_id}.")
    return products


async def transform_collections(
    paginator: Paginator, collections: list[dict[str, Any]]
) -> list[CollectionRecord]:
    records = []
    for collection in collections:
        products = await fetch_collection_products(paginator, collection.get("id", ""))
        record = CollectionRecord.model_validate({k: v for k, v in collection.items() if k != "products"})
        record.products = [CollectionProductRef.model_validate(p) for p in products if p]
        records.append(record)
    logger.info(f"Finished transforming {len(records)} collections with all products.")
    return records


# --- Metaobjects -------------------------------------------------------------


async def fetch_metaobjects(paginator: Paginator, metaobject_type: str) -> list[dict[str, Any]]:
    stream = paginator.paginate(
        METAOBJECTS_QUERY,
        CONTENT_PAGE_SIZE,
        connection_extractor("metaobjects"),
        variables={"type": metaobject_type},
        label=f"metaobjects {metaobject_type}",
    )
    metaobjects = await paginator.collect(stream)
    logger.info(f"Fetched {len(metaobjects)} metaobjects of type {metaobject_type}")
    return metaobjects


def transform_metaobjects(metaobjects: list[dict[str, Any]]) -> list[MetaobjectRecord]:
    records = []
    for metaobject in metaobjects:
        fields = []
        for field in metaobject.get("fields") or []:
            value = field.get("value")
            # referenced objects replace the bare id
            if field.get("reference"):
                value = json.dumps(field["reference"])
            fields.append(
                MetafieldRecord(
                    namespace="metaobject",
                    key=field.get("key") or "",
                    value=value,
                    type=field.get("type") or "",
                )
            )
        records.append(
            MetaobjectRecord(
                id=metaobject.get("id", ""),
                handle=metaobject.get("handle"),
                type=metaobject.get("type"),
                display_name=metaobject.get("displayName") or metaobject.get("handle"),
                fields=fields,
                updated_at=metaobject.get("updatedAt"),
            )
        )
    return records
