"""
Client-side gate state for metered article access.

``GateState`` mirrors what the server decided for this session: whether the
visitor's IP is blocked and whether the free-article limit is reached. It is
rebuilt from server responses and never written back. State changes go
through ``reduce_gate_state`` so every transition is explicit.
"""
import logging
from dataclasses import dataclass, field, replace
from typing import Callable, FrozenSet, Optional

from client.api import AccessBlockedError, GateAPI
from client.fingerprint import get_fingerprint
from security.access import DEFAULT_BLOCK_REASON

logger = logging.getLogger(__name__)

MAX_FREE_ARTICLES = 5
VIEW_WINDOW_DAYS = 30

STATUS_LOADING = "loading"
STATUS_BLOCKED = "blocked"
STATUS_LIMIT_REACHED = "limit_reached"
STATUS_OK = "ok"


@dataclass(frozen=True)
class GateState:
    is_loading: bool = True
    is_blocked: bool = False
    block_reason: Optional[str] = None
    viewed_articles: FrozenSet[str] = field(default_factory=frozenset)
    has_reached_limit: bool = False
    # distinct articles the server has counted for this visitor
    view_count: int = 0

    @property
    def status(self) -> str:
        # Blocked access and the upsell are separate screens
        if self.is_loading:
            return STATUS_LOADING
        if self.is_blocked:
            return STATUS_BLOCKED
        if self.has_reached_limit:
            return STATUS_LIMIT_REACHED
        return STATUS_OK


# Events

@dataclass(frozen=True)
class AccessBlocked:
    reason: Optional[str] = None


@dataclass(frozen=True)
class ViewCountLoaded:
    count: int
    max_free_articles: int = MAX_FREE_ARTICLES


@dataclass(frozen=True)
class ViewRecorded:
    article_id: str
    count: int
    will_exceed: bool
    already_counted: bool = False
    max_free_articles: int = MAX_FREE_ARTICLES


@dataclass(frozen=True)
class LoadFailed:
    pass


def reduce_gate_state(state: GateState, event) -> GateState:
    if isinstance(event, AccessBlocked):
        return replace(state, is_loading=False, is_blocked=True,
                       block_reason=event.reason or DEFAULT_BLOCK_REASON)

    if isinstance(event, ViewCountLoaded):
        return replace(state, is_loading=False, view_count=event.count,
                       has_reached_limit=state.has_reached_limit or event.count >= event.max_free_articles)

    if isinstance(event, ViewRecorded):
        # a re-read of an article already in the window does not add to the count
        count = event.count if event.already_counted else event.count + 1
        reached = event.will_exceed or count >= event.max_free_articles
        return replace(
            state,
            view_count=count,
            viewed_articles=state.viewed_articles | {event.article_id},
            # never goes back to False within a session
            has_reached_limit=state.has_reached_limit or reached,
        )

    if isinstance(event, LoadFailed):
        return replace(state, is_loading=False)

    raise TypeError(f"Unknown gate event: {event!r}")


class ArticleViewsGate:
    """
    Session-scoped owner of ``GateState``. Create one per application mount;
    ``close()`` (or leaving the ``with`` block) tears it down.

        with ArticleViewsGate(GateAPI("https://example.com")) as gate:
            gate.add_article_view("article-42")
            if gate.state.status == "limit_reached":
                ...
    """

    def __init__(self, api: GateAPI, fingerprint_provider: Callable[[], str] = get_fingerprint,
                 max_free_articles: Optional[int] = None, window_days: int = VIEW_WINDOW_DAYS):
        self.api = api
        self.fingerprint_provider = fingerprint_provider
        # an explicit limit overrides the one the server advertises
        self.max_free_articles = max_free_articles
        self.free_article_limit = max_free_articles if max_free_articles is not None else MAX_FREE_ARTICLES
        self.window_days = window_days
        self._state = GateState()

    @property
    def state(self) -> GateState:
        return self._state

    @property
    def remaining_free_articles(self) -> int:
        if self._state.has_reached_limit:
            return 0
        return max(self.free_article_limit - self._state.view_count, 0)

    def _load_view_count(self, fingerprint: str):
        view_count = self.api.get_view_count(fingerprint, self.window_days)
        if self.max_free_articles is None and view_count.max_free_articles is not None:
            self.free_article_limit = view_count.max_free_articles
        return view_count

    def dispatch(self, event) -> GateState:
        self._state = reduce_gate_state(self._state, event)
        return self._state

    def initialize(self) -> GateState:
        """Runs the IP pre-flight, then loads the server-side view count."""
        decision = self.api.check_ip()
        if not decision.allowed:
            return self.dispatch(AccessBlocked(decision.reason))

        try:
            fingerprint = self.fingerprint_provider()
        except Exception:
            logger.exception("Error collecting fingerprint")
            return self.dispatch(LoadFailed())

        view_count = self._load_view_count(fingerprint)
        return self.dispatch(ViewCountLoaded(view_count.count, self.free_article_limit))

    def add_article_view(self, article_id: str) -> GateState:
        if self._state.is_blocked:
            logger.warning("Cannot track article view: IP is blocked")
            return self._state

        try:
            fingerprint = self.fingerprint_provider()
        except Exception:
            logger.exception("Error collecting fingerprint")
            return self._state

        view_count = self._load_view_count(fingerprint)
        will_exceed = view_count.count >= self.free_article_limit

        try:
            self.api.track_view(article_id, fingerprint, saw_upsell=will_exceed)
        except AccessBlockedError as exc:
            return self.dispatch(AccessBlocked(exc.reason))

        return self.dispatch(ViewRecorded(
            article_id,
            view_count.count,
            will_exceed,
            already_counted=article_id in view_count.articles,
            max_free_articles=self.free_article_limit,
        ))

    def close(self):
        self.api.close()

    def __enter__(self):
        self.initialize()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False
