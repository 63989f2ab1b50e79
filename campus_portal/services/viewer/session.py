"""
Viewer session state machine.

One ``ViewerController`` owns at most one active ``ViewerSession``. Every
asynchronous continuation (signing, preflight, timers, frame events) carries the
generation of the session that started it and is dropped if that session is no
longer the active one. Timer handles, in-flight tasks and the one-shot flags
live on the session object, so tearing the session down disarms all of them.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from functools import partial
from typing import Callable, Dict, Optional, Set

import httpx

from campus_portal.config import app_config
from campus_portal.services.resources.exceptions import (
    PreflightError,
    PreflightErrorKind,
    RenderError,
    RenderErrorKind,
    ResolutionError,
    user_message,
)
from campus_portal.services.resources.hosts import HostCategory, is_absolute_url
from campus_portal.services.resources.normalizer import Resource
from campus_portal.services.resources.resolver import LocatorResolver, ResolvedLocator

from .preflight import preflight

logger = logging.getLogger(__name__)

OPEN_MODE_MODAL = 'modal'
OPEN_MODE_LINK = 'link'

SAFETY_TIMER = 'safety'
FALLBACK_TIMER = 'fallback'


class SessionStatus(Enum):
    CLOSED = 'closed'    # idle
    OPENING = 'opening'  # loading
    READY = 'ready'
    DEGRADED = 'degraded'
    FAILED = 'failed'


USER_ACTION_STATES = frozenset({SessionStatus.READY, SessionStatus.DEGRADED, SessionStatus.FAILED})


@dataclass(frozen=True)
class SessionMeta:
    raw: Optional[str]
    host_category: Optional[HostCategory] = None
    primary_embed: Optional[str] = None
    alternate_embed: Optional[str] = None
    is_proxied: bool = False
    final_url: Optional[str] = None

    @classmethod
    def from_resolved(cls, raw: str, resolved: ResolvedLocator) -> 'SessionMeta':
        return cls(
            raw=raw,
            host_category=resolved.host_category,
            primary_embed=resolved.primary_embed,
            alternate_embed=resolved.alternate_embed,
            is_proxied=resolved.is_proxied,
            final_url=resolved.final_url,
        )


@dataclass
class ViewerSession:
    generation: int
    title: str
    url: Optional[str]
    mime: Optional[str]
    meta: SessionMeta
    status: SessionStatus = SessionStatus.OPENING
    error_message: Optional[str] = None
    loading: bool = True
    frame_loaded: bool = False
    swapped_to_alternate: bool = False
    resign_attempted: bool = False
    timers: Dict[str, asyncio.TimerHandle] = field(default_factory=dict, repr=False)
    tasks: Set[asyncio.Task] = field(default_factory=set, repr=False)

    def arm(self, loop: asyncio.AbstractEventLoop, name: str, delay: float, callback: Callable[[], None]) -> None:
        self.disarm(name)
        self.timers[name] = loop.call_later(delay, callback)

    def disarm(self, name: str) -> None:
        handle = self.timers.pop(name, None)
        if handle is not None:
            handle.cancel()

    def teardown(self) -> None:
        for name in list(self.timers):
            self.disarm(name)
        current = asyncio.current_task() if _loop_running() else None
        for task in list(self.tasks):
            if task is not current:
                task.cancel()
        self.tasks.clear()
        self.swapped_to_alternate = False
        self.resign_attempted = False
        self.frame_loaded = False


def _loop_running() -> bool:
    try:
        asyncio.get_running_loop()
        return True
    except RuntimeError:
        return False


class ViewerController:
    """
    Drives the lifecycle of the single open resource preview.

    Args:
        resolver: LocatorResolver used for resolution and re-signing
        http_client: async client for the HEAD preflight (created lazily)
        mode: 'modal' embeds document-host links, 'link' opens them in a new tab
        open_external: side effect that opens a URL in a new tab
        on_change: called with the session (or None) after every state change
    """

    def __init__(self, resolver: LocatorResolver, *, http_client: Optional[httpx.AsyncClient] = None,
                 mode: Optional[str] = None, safety_timeout: Optional[float] = None,
                 preflight_timeout: Optional[float] = None, fallback_timeout: Optional[float] = None,
                 base_url: Optional[str] = None, open_external: Optional[Callable[[str], None]] = None,
                 on_change: Optional[Callable[[Optional[ViewerSession]], None]] = None):
        self.resolver = resolver
        self.mode = (mode or app_config.VIEWER_OPEN_MODE or OPEN_MODE_MODAL).lower()
        self.safety_timeout = app_config.VIEWER_SAFETY_TIMEOUT if safety_timeout is None else safety_timeout
        self.preflight_timeout = app_config.VIEWER_PREFLIGHT_TIMEOUT if preflight_timeout is None else preflight_timeout
        self.fallback_timeout = app_config.VIEWER_FALLBACK_TIMEOUT if fallback_timeout is None else fallback_timeout
        self.base_url = (base_url or app_config.PUBLIC_BASE_URL).rstrip('/')
        self.open_external = open_external
        self.on_change = on_change
        self.session: Optional[ViewerSession] = None
        self._http_client = http_client
        self._owns_client = http_client is None
        self._generation = 0
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    # --- state helpers -----------------------------------------------------

    @property
    def status(self) -> SessionStatus:
        return self.session.status if self.session else SessionStatus.CLOSED

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def http_client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient()
        return self._http_client

    async def aclose(self) -> None:
        self.close()
        if self._owns_client and self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None

    def _is_current(self, generation: int) -> bool:
        return self.session is not None and self.session.generation == generation

    def _notify(self) -> None:
        if self.on_change is not None:
            self.on_change(self.session)

    def _fail(self, message: str) -> None:
        session = self.session
        session.status = SessionStatus.FAILED
        session.error_message = message
        session.loading = False
        session.disarm(FALLBACK_TIMER)
        logger.warning(f"Viewer session {session.generation} failed: {message}")
        self._notify()

    def _spawn(self, session: ViewerSession, coro) -> asyncio.Task:
        task = self._loop.create_task(coro)
        session.tasks.add(task)
        task.add_done_callback(session.tasks.discard)
        return task

    def _absolute(self, url: str) -> str:
        if is_absolute_url(url):
            return url
        return f"{self.base_url}/{url.lstrip('/')}"

    def _open_in_new_tab(self, url: str) -> None:
        if self.open_external is not None:
            self.open_external(url)

    # --- lifecycle ---------------------------------------------------------

    def open(self, resource: Resource) -> asyncio.Task:
        """Replace any current session with a new one for ``resource``.

        Must be called from a running event loop. Returns the resolution task.
        """
        self._loop = asyncio.get_running_loop()
        if self.session is not None:
            self.session.teardown()
        self._generation += 1
        generation = self._generation

        session = ViewerSession(
            generation=generation,
            title=resource.title,
            url=None,
            mime=resource.mime,
            meta=SessionMeta(raw=resource.locator),
        )
        self.session = session
        session.arm(self._loop, SAFETY_TIMER, self.safety_timeout, partial(self._on_safety_timeout, generation))
        logger.info(f"Opening viewer session {generation} for '{resource.title}'")
        task = self._spawn(session, self._resolve(generation, resource))
        self._notify()
        return task

    def close(self) -> None:
        if self.session is None:
            return
        logger.info(f"Closing viewer session {self.session.generation}")
        self.session.teardown()
        self.session = None
        self._notify()

    async def _resolve(self, generation: int, resource: Resource) -> None:
        try:
            resolved = await self.resolver.resolve(resource.locator, resource.mime)
        except ResolutionError as e:
            if self._is_current(generation):
                self._fail(user_message(e))
            return

        if not self._is_current(generation):
            logger.debug(f"Discarding stale resolution for session {generation}")
            return

        session = self.session
        session.meta = SessionMeta.from_resolved(resource.locator, resolved)
        is_document = resolved.host_category is HostCategory.DOCUMENT_HOST

        if is_document and self.mode == OPEN_MODE_LINK:
            self._open_in_new_tab(resolved.primary_embed)
            self.close()
            return

        session.url = resolved.primary_embed
        session.status = SessionStatus.READY
        logger.debug(f"Viewer session {generation} ready (category={resolved.host_category.value}, proxied={resolved.is_proxied})")
        self._notify()

        if is_document:
            session.arm(self._loop, FALLBACK_TIMER, self.fallback_timeout, partial(self._on_fallback_timeout, generation))

        if resolved.is_proxied:
            await self._run_preflight(generation, resolved.final_url)

    async def _run_preflight(self, generation: int, url: str) -> None:
        while True:
            try:
                await preflight(self.http_client, self._absolute(url), self.preflight_timeout)
                return
            except PreflightError as e:
                if not self._is_current(generation):
                    return
                session = self.session
                if e.kind is not PreflightErrorKind.UNAUTHORIZED or session.resign_attempted:
                    self._fail(user_message(e))
                    return

                session.resign_attempted = True
                logger.info(f"Preflight unauthorized for session {generation}, re-signing once")
                try:
                    resolved = await self.resolver.resign(session.meta.raw, session.mime)
                except ResolutionError as resign_error:
                    logger.warning(f"Re-sign failed for session {generation}: {resign_error}")
                    if self._is_current(generation):
                        self._fail(user_message(e))
                    return

                if not self._is_current(generation):
                    return
                session.meta = replace(
                    session.meta,
                    final_url=resolved.final_url,
                    primary_embed=resolved.primary_embed,
                    is_proxied=resolved.is_proxied,
                )
                session.url = resolved.primary_embed
                self._notify()
                if not resolved.is_proxied:
                    return
                url = resolved.final_url

    # --- timers ------------------------------------------------------------

    def _on_safety_timeout(self, generation: int) -> None:
        if not self._is_current(generation):
            return
        session = self.session
        session.timers.pop(SAFETY_TIMER, None)
        session.loading = False
        if session.status is SessionStatus.OPENING:
            for task in list(session.tasks):
                task.cancel()
            self._fail('Opening this file took too long. Try again or open the original.')
        else:
            self._notify()

    def _on_fallback_timeout(self, generation: int) -> None:
        if not self._is_current(generation):
            return
        session = self.session
        session.timers.pop(FALLBACK_TIMER, None)
        if session.frame_loaded:
            return
        if self._swap_to_alternate(session):
            logger.warning(f"Primary embed did not load in time for session {generation}, using alternate viewer")

    def _swap_to_alternate(self, session: ViewerSession) -> bool:
        if session.swapped_to_alternate or not session.meta.alternate_embed:
            return False
        session.swapped_to_alternate = True
        session.disarm(FALLBACK_TIMER)
        session.url = session.meta.alternate_embed
        session.status = SessionStatus.DEGRADED
        session.error_message = None
        session.loading = True
        session.frame_loaded = False
        if SAFETY_TIMER not in session.timers:
            session.arm(self._loop, SAFETY_TIMER, self.safety_timeout,
                        partial(self._on_safety_timeout, session.generation))
        self._notify()
        return True

    # --- renderer signals --------------------------------------------------

    def frame_loaded(self, generation: int) -> None:
        if not self._is_current(generation):
            return
        session = self.session
        session.frame_loaded = True
        session.loading = False
        session.disarm(FALLBACK_TIMER)
        self._notify()

    def frame_failed(self, generation: int, message: Optional[str] = None) -> None:
        if not self._is_current(generation):
            return
        session = self.session
        session.loading = False
        if session.meta.host_category is HostCategory.DOCUMENT_HOST and self._swap_to_alternate(session):
            return
        self._fail(message or user_message(RenderError('Embed failed to load', RenderErrorKind.LOAD_FAILED)))

    # --- user actions ------------------------------------------------------

    def try_alternate(self) -> bool:
        session = self.session
        if session is None or session.status not in USER_ACTION_STATES:
            return False
        return self._swap_to_alternate(session)

    def open_original(self) -> Optional[str]:
        session = self.session
        if session is None or session.status not in USER_ACTION_STATES:
            return None
        raw = session.meta.raw
        url = raw if is_absolute_url(raw) else self._absolute(session.meta.final_url or raw)
        self._open_in_new_tab(url)
        return url
