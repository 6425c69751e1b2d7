"""
Reference resolver - turns media ids in reference fields into urls.

Resolution order for one id: the entity-local index, the global index, then a
direct upstream fetch. Direct fetch results (hits and misses) are memoised for
the current batch.
"""

import json

from api.catalog.errors import CatalogError, ResolutionMiss
from api.catalog.media_index import MediaIndex
from api.catalog.models import FieldKind, ReferenceField, ResolvedField, RunReport
from utils.get_logger import get_logger

logger = get_logger(__name__)

RESOLVE_STAGE = "resolve"


def _base_fields(field: ReferenceField) -> dict:
    return field.model_dump(include=set(ReferenceField.model_fields))


class ReferenceResolver:
    def __init__(self, service, report: RunReport | None = None):
        """
        Args:
            service: Object exposing ``async fetch_media_url(media_id)``
            report: Optional run report that receives one degraded item per
                unresolved id
        """
        self.service = service
        self.report = report
        self._batch_cache: dict[str, str | None] = {}

    def new_batch(self, report: RunReport | None = None) -> None:
        """Forget direct-fetch results; optionally switch to a new report."""
        self._batch_cache.clear()
        if report is not None:
            self.report = report

    async def resolve(
        self, field: ReferenceField, local_index: MediaIndex, global_index: MediaIndex | None
    ) -> ResolvedField:
        if field.type is FieldKind.SCALAR_REF and field.raw_value:
            return await self._resolve_scalar(field, local_index, global_index)
        if field.type is FieldKind.LIST_REF and field.raw_value:
            return await self._resolve_list(field, local_index, global_index)
        return self._unresolved(field)

    async def resolve_all(
        self,
        fields: list[ReferenceField],
        local_index: MediaIndex,
        global_index: MediaIndex | None,
    ) -> list[ResolvedField]:
        resolved = []
        for field in fields:
            resolved.append(await self.resolve(field, local_index, global_index))
        return resolved

    async def _resolve_scalar(
        self, field: ReferenceField, local_index: MediaIndex, global_index: MediaIndex | None
    ) -> ResolvedField:
        media_id = field.raw_value or ""
        try:
            url = await self._lookup(media_id, local_index, global_index)
        except ResolutionMiss as e:
            self._report_miss(field, e)
            return self._unresolved(field)
        return ResolvedField(
            **_base_fields(field),
            resolved_value=url,
            original_value=media_id,
            resolved=True,
        )

    async def _resolve_list(
        self, field: ReferenceField, local_index: MediaIndex, global_index: MediaIndex | None
    ) -> ResolvedField:
        try:
            media_ids = json.loads(field.raw_value or "")
        except json.JSONDecodeError as e:
            logger.warning(f"Error processing file reference metafield {field.namespace}.{field.key}: {e}")
            return self._unresolved(field)
        if not isinstance(media_ids, list) or not all(isinstance(i, str) for i in media_ids):
            logger.warning(
                f"Error processing file reference metafield {field.namespace}.{field.key}: "
                f"expected a JSON array of ids"
            )
            return self._unresolved(field)

        urls = []
        for media_id in media_ids:
            try:
                urls.append(await self._lookup(media_id, local_index, global_index))
            except ResolutionMiss as e:
                self._report_miss(field, e)
                urls.append(media_id)

        return ResolvedField(
            **_base_fields(field),
            resolved_value=json.dumps(urls),
            original_value=field.raw_value,
            resolved=True,
        )

    async def _lookup(
        self, media_id: str, local_index: MediaIndex, global_index: MediaIndex | None
    ) -> str:
        url = local_index.lookup(media_id)
        if url is None and global_index is not None:
            url = global_index.lookup(media_id)
        if url is None:
            url = await self._direct_fetch(media_id)
        return url

    async def _direct_fetch(self, media_id: str) -> str:
        if media_id in self._batch_cache:
            url = self._batch_cache[media_id]
        else:
            logger.debug(f"Fetching media {media_id} directly")
            try:
                url = await self.service.fetch_media_url(media_id)
            except CatalogError as e:
                logger.warning(f"Direct media fetch failed for {media_id}: {e}")
                url = None
            self._batch_cache[media_id] = url
        if not url:
            raise ResolutionMiss(media_id)
        return url

    def _report_miss(self, field: ReferenceField, miss: ResolutionMiss) -> None:
        logger.warning(str(miss))
        if self.report is not None:
            self.report.degraded(miss.media_id, RESOLVE_STAGE, f"{field.namespace}.{field.key}")

    @staticmethod
    def _unresolved(field: ReferenceField) -> ResolvedField:
        return ResolvedField(
            **_base_fields(field),
            resolved_value=field.raw_value,
            original_value=field.raw_value,
            resolved=False,
        )
