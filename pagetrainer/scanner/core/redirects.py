"""
Redirect Chaser for PageTrainer

Follows trainable redirections so the page they point to is trained on
as well. Each follow-up response goes back through the trainer's guards,
which is what bounds redirect chains.
"""

import asyncio
from typing import Set, Callable, Optional
import logging

from pagetrainer.scanner.core.requester import AsyncRequester, Response
from pagetrainer.scanner.core.parser import to_absolute

logger = logging.getLogger(__name__)


class RedirectChaser:
    """
    Resolves redirect targets and feeds the follow-up responses back.

    Args:
        requester: Requester used for follow-up fetches
        on_response: Called with each follow-up response
        reference_url: Returns the URL relative locations resolve against
    """

    def __init__(
            self,
            requester: AsyncRequester,
            on_response: Callable[[Response], object],
            reference_url: Callable[[], Optional[str]]
    ):
        self.requester = requester
        self.on_response = on_response
        self.reference_url = reference_url
        self._pending: Set[asyncio.Task] = set()

    @staticmethod
    def is_chaseable(response: Response) -> bool:
        """A redirect whose Location is a plain, unresolved string."""
        return response.is_redirect and isinstance(response.location, str)

    def resolve(self, response: Response) -> str:
        reference = self.reference_url()
        if not reference:
            raise ValueError('No reference URL to resolve redirects against')
        return to_absolute(response.location, reference)

    def follow(self, response: Response) -> Optional[asyncio.Task]:
        """
        Schedule a follow-up fetch for a redirect response.

        Returns:
            The scheduled task, or None if the location could not be resolved
        """
        try:
            url = self.resolve(response)
        except ValueError as e:
            logger.warning(f"Unresolvable redirect from request #{response.request.id}: {e}")
            return None

        logger.debug(f"Following redirect #{response.request.id} -> {url}")
        task = asyncio.get_running_loop().create_task(self._fetch(url))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def _fetch(self, url: str):
        try:
            response = await self.requester.get(url, allow_redirects=False, use_cache=False)
        except Exception as e:
            logger.error(f"Redirect follow-up to {url} raised: {e}")
            return
        if response.error:
            logger.warning(f"Redirect follow-up to {url} failed: {response.error}")
            return
        self.on_response(response)

    async def drain(self):
        """Wait until every scheduled follow-up, including chained ones, is done."""
        while True:
            pending = [task for task in self._pending if not task.done()]
            if not pending:
                break
            await asyncio.gather(*pending, return_exceptions=True)
