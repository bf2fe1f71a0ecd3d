"""
Concurrent fetching over independent request contexts.
Each URL gets its own RequestContext (and cookie jar); contexts are never
shared between workers.
"""

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Optional, Dict, List, Any, Callable, Sequence

from .config import ContextConfig
from .context import RequestContext
from .exceptions import RoxException
from .request_wrapper import PayloadInput
from .transport import Transport
from .logger import get_logger

logger = get_logger("pool")


@dataclass
class FetchOutcome:
    """What one worker observed for one URL."""
    url: str
    status_code: Optional[int] = None
    body: Optional[bytes] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    error: Optional[RoxException] = None

    @property
    def success(self) -> bool:
        """Request completed with an exact 200."""
        return self.error is None and self.status_code == 200


def _fetch_one(
    url: str,
    config: Optional[ContextConfig],
    post_payload: PayloadInput,
    transport_factory: Optional[Callable[[], Transport]],
) -> FetchOutcome:
    transport = transport_factory() if transport_factory else None

    with RequestContext(config, transport=transport, uri=url) as context:
        try:
            if post_payload is not None:
                context.set_post_payload(post_payload).execute_post()
            else:
                context.execute_get()
        except RoxException as e:
            return FetchOutcome(url=url, error=e)

        return FetchOutcome(
            url=url,
            status_code=context.get_last_status_code(),
            body=context.get_response_body(),
            metadata=context.get_metadata(),
        )


def fetch_all(
    urls: Sequence[str],
    config: Optional[ContextConfig] = None,
    post_payload: PayloadInput = None,
    max_workers: int = 4,
    transport_factory: Optional[Callable[[], Transport]] = None,
) -> List[FetchOutcome]:
    """
    Fetch every URL on its own context, `max_workers` at a time.

    A POST is sent when `post_payload` is given, a GET otherwise. Failures
    are reported in `FetchOutcome.error`; results follow the order of `urls`.
    """
    if max_workers < 1:
        raise ValueError("max_workers must be at least 1")

    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        futures = [
            executor.submit(_fetch_one, url, config, post_payload, transport_factory)
            for url in urls
        ]
        outcomes = [future.result() for future in futures]

    failed = sum(1 for outcome in outcomes if outcome.error is not None)
    logger.debug(f"Fetched {len(outcomes)} URLs ({failed} failed)")
    return outcomes
