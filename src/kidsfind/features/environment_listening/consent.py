"""Child consent requests for listening sessions."""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from ...core.events import ListenerRegistry
from ...core.exceptions import SessionConflictError
from ...core.utils import to_iso

logger = logging.getLogger(__name__)


@dataclass
class ConsentRequest:
    """A pending question to a child: may your parent listen?"""

    child_id: str
    session_id: str
    parent_id: str
    reason: str
    requested_at: datetime = field(default_factory=datetime.now)
    timeout: float = 60.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "child_id": self.child_id,
            "session_id": self.session_id,
            "parent_id": self.parent_id,
            "reason": self.reason,
            "requested_at": to_iso(self.requested_at),
            "timeout": self.timeout,
        }


class ConsentBroker:
    """Routes consent requests to the child device and waits for the answer.

    One pending request per child. A request that is not answered within its
    timeout counts as denied.
    """

    def __init__(self) -> None:
        self._pending: Dict[str, "asyncio.Future[bool]"] = {}
        self._requests: Dict[str, ConsentRequest] = {}
        self._listeners: ListenerRegistry[ConsentRequest] = ListenerRegistry(
            "consent"
        )

    async def request(self, consent: ConsentRequest) -> Optional[bool]:
        """Ask the child and wait.

        Returns True/False for an explicit answer and None on timeout. Raises
        SessionConflictError while another request for the child is pending.
        """
        loop = asyncio.get_running_loop()
        previous = self._pending.get(consent.child_id)
        if previous is not None and not previous.done():
            raise SessionConflictError(
                consent.child_id, self._requests[consent.child_id].session_id
            )

        future: "asyncio.Future[bool]" = loop.create_future()
        self._pending[consent.child_id] = future
        self._requests[consent.child_id] = consent
        logger.info(
            f"Consent request sent to child {consent.child_id} "
            f"for session {consent.session_id}"
        )
        self._listeners.notify(consent)

        try:
            return await asyncio.wait_for(future, timeout=consent.timeout)
        except asyncio.TimeoutError:
            logger.info(f"Consent request for {consent.child_id} timed out")
            return None
        finally:
            if self._pending.get(consent.child_id) is future:
                del self._pending[consent.child_id]
                self._requests.pop(consent.child_id, None)

    def respond(self, child_id: str, granted: bool) -> bool:
        """Deliver the child's answer. Returns False if nothing is pending."""
        future = self._pending.get(child_id)
        if future is None or future.done():
            return False
        future.set_result(granted)
        logger.info(
            f"Child {child_id} {'granted' if granted else 'denied'} consent"
        )
        return True

    def pending(self, child_id: Optional[str] = None) -> List[ConsentRequest]:
        return [
            r
            for cid, r in self._requests.items()
            if child_id is None or cid == child_id
        ]

    def add_listener(
        self, callback: Callable[[ConsentRequest], None]
    ) -> Callable[[], None]:
        """Subscribe the child-side transport to new consent requests."""
        return self._listeners.add(callback)

    def cancel_all(self) -> None:
        for future in self._pending.values():
            if not future.done():
                future.cancel()
        self._pending.clear()
        self._requests.clear()
