"""Step-wise driver for resumable server-side copies.

A rewrite of a large object can take many round trips. The transport performs
exactly one step per ``rewrite_object`` call; progress lives in the
continuation token that the caller passes back in. :class:`Rewriter` keeps
that token for the caller and exposes the copy as a small state machine::

    PENDING --advance--> IN_PROGRESS --advance--> ... --advance--> DONE

Example:
    ```python
    rewriter = Rewriter(client, RewriteObjectRequest("src", "a", "dst", "b"))
    while rewriter.state is not RewriteState.DONE:
        resp = await rewriter.advance()
        print(f"{resp.written}/{resp.size} bytes copied")
    print(rewriter.resource)
    ```
"""

import logging
from enum import Enum
from typing import TYPE_CHECKING

from storage_client_core.errors import APIError, RewriteCompleteError
from storage_client_core.models import ObjectAttrs, RewriteObjectRequest, RewriteObjectResponse
from storage_client_core.options import StorageOption

if TYPE_CHECKING:
    from storage_client_core.client import StorageClient

logger = logging.getLogger(__name__)


class RewriteState(Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    DONE = "done"


class Rewriter:
    """Tracks one rewrite across its steps.

    Args:
        client: Transport performing the steps
        request: Initial request; a non-empty ``token`` resumes an earlier copy
    """

    def __init__(self, client: "StorageClient", request: RewriteObjectRequest):
        self._client = client
        self._request = request
        self.token: str | None = request.token
        self.written = 0
        self.size = 0
        self.resource: ObjectAttrs | None = None
        self.state = RewriteState.IN_PROGRESS if request.token else RewriteState.PENDING

    async def advance(self, *opts: StorageOption) -> RewriteObjectResponse:
        """Perform one step of the copy and record its progress.

        Raises:
            RewriteCompleteError: If the copy already finished.
            APIError: If an unfinished step returns no continuation token.
        """
        if self.state is RewriteState.DONE:
            raise RewriteCompleteError(
                f"rewrite of {self._request.src_bucket}/{self._request.src_object} "
                f"to {self._request.dst_bucket}/{self._request.dst_object} is already done"
            )

        resp = await self._client.rewrite_object(self._request.with_token(self.token), *opts)
        if not resp.done and not resp.token:
            # Without a token the next step would restart the copy
            raise APIError(
                f"rewrite of {self._request.src_bucket}/{self._request.src_object} "
                "returned an unfinished step without a rewrite token"
            )

        if resp.written < self.written:
            logger.warning(f"Rewrite progress went backwards: {resp.written} < {self.written} bytes")
        self.written = resp.written
        self.size = resp.size
        self.token = resp.token

        if resp.done:
            self.state = RewriteState.DONE
            self.resource = resp.resource
            self.token = None
        else:
            self.state = RewriteState.IN_PROGRESS
        return resp

    async def run(self, *opts: StorageOption) -> ObjectAttrs | None:
        """Advance until the copy is done and return the destination attributes."""
        while self.state is not RewriteState.DONE:
            resp = await self.advance(*opts)
            logger.debug(f"Rewrite step: {resp.written}/{resp.size} bytes, done={resp.done}")
        return self.resource
