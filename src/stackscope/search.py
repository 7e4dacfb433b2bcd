"""Narrow a set of stacks to those whose template contains a matching resource."""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed

from botocore.exceptions import BotoCoreError, ClientError

from stackscope.aws.client import CloudFormationClient
from stackscope.errors import StackscopeError
from stackscope.models import StackSummary
from stackscope.template import ResourceQuery, has_match

logger = logging.getLogger(__name__)


class ResourceSearch:
    """Searches stack templates concurrently. A stack that fails is skipped, not fatal."""

    def __init__(self, client: CloudFormationClient, max_concurrent: int = 5):
        self._client = client
        self._max_concurrent = max_concurrent

    def search(self, stacks: list[StackSummary], query: ResourceQuery) -> list[StackSummary]:
        """Return the stacks containing a resource matching ``query``, in input order."""
        if not stacks:
            return []

        matched: set[int] = set()
        with ThreadPoolExecutor(max_workers=self._max_concurrent) as executor:
            futures = {
                executor.submit(self._search_stack, stack, query): index
                for index, stack in enumerate(stacks)
            }
            for future in as_completed(futures):
                stack = stacks[futures[future]]
                try:
                    if future.result():
                        matched.add(futures[future])
                except (ClientError, BotoCoreError, StackscopeError) as exc:
                    logger.warning("Skipping %s: %s", stack.stack_name, exc)
                except Exception:
                    logger.exception("Failed to search template of %s", stack.stack_name)

        return [stack for index, stack in enumerate(stacks) if index in matched]

    def _search_stack(self, stack: StackSummary, query: ResourceQuery) -> bool:
        # The stack id also resolves deleted stacks, the name does not.
        body = self._client.get_template(stack.stack_id or stack.stack_name)
        return has_match(body, query)
