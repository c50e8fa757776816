"""Two-attempt delete.

Some deployments of the API expect the delete argument as a bare id, others
as ``{"id": ...}``. The policy tries the bare id first and, on any failure,
retries exactly once with the object shape. Only a failure of both attempts
reaches the caller.
"""

from __future__ import annotations

import logging
from typing import Any

from smartlinks.errors import get_error_message
from smartlinks.store import CacheStore
from smartlinks.types import MutationRecord

logger = logging.getLogger(__name__)


class DeleteRetryPolicy:
    def __init__(self, store: CacheStore, endpoint: str = "delete_site") -> None:
        self._store = store
        self._endpoint = endpoint

    @property
    def endpoint(self) -> str:
        return self._endpoint

    async def delete_resource(self, resource_id: Any) -> MutationRecord[Any]:
        """Delete ``resource_id``, falling back to the object payload once.

        Returns the successful mutation record. Raises the fallback attempt's
        :class:`~smartlinks.errors.ApiError` when both attempts fail. Failed
        attempts invalidate nothing, so a success invalidates the resource's
        tags exactly once.
        """
        record = await self._store.mutate(self._endpoint, resource_id)
        if record.is_success:
            return record

        logger.warning(
            "Delete of %r failed (%s), retrying with object payload",
            resource_id,
            get_error_message(record.error),
        )
        retry = await self._store.mutate(self._endpoint, {"id": resource_id})
        retry.unwrap()
        return retry
