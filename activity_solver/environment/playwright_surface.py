"""Live surface over a Playwright page (async API).

All DOM access goes through ``ElementHandle``s; events are dispatched with
``dispatch_event`` so the page's own handlers see the same event objects a
user agent would produce.
"""

from __future__ import annotations

import logging
import os
from typing import Iterable
from urllib.parse import urlparse

from playwright.async_api import Browser, BrowserContext, Page, async_playwright
from playwright.async_api import Error as PlaywrightError

from activity_solver.environment.surface import Node, Surface, TransferMedium
from activity_solver.errors import StaleReferenceError

logger = logging.getLogger(__name__)

_STALE_MARKERS = ("not attached", "detached", "adopted into another document")

# Assign through the prototype setter so framework-managed inputs register
# the change, then let the caller fire the input/change events.
_SET_VALUE_JS = """\
(el, value) => {
    const proto = el.tagName === 'TEXTAREA' ? HTMLTextAreaElement.prototype : HTMLInputElement.prototype;
    const setter = Object.getOwnPropertyDescriptor(proto, 'value').set;
    setter.call(el, value);
}"""

_MUTATE_CLASSES_JS = """\
(el, [add, remove]) => {
    remove.forEach(c => el.classList.remove(c));
    add.forEach(c => el.classList.add(c));
}"""


def _is_stale(exc: PlaywrightError) -> bool:
    message = str(exc).lower()
    return any(marker in message for marker in _STALE_MARKERS)


def _get_playwright_proxy() -> dict | None:
    """Build Playwright proxy config from HTTP_PROXY / HTTPS_PROXY if present."""
    proxy_url = os.environ.get("HTTP_PROXY") or os.environ.get("HTTPS_PROXY") or ""
    if not proxy_url:
        return None
    parsed = urlparse(proxy_url)
    if not parsed.hostname:
        return None
    proxy: dict = {"server": f"http://{parsed.hostname}:{parsed.port}"}
    if parsed.username:
        proxy["username"] = parsed.username
    if parsed.password:
        proxy["password"] = parsed.password
    return proxy


class PlaywrightSurface(Surface):
    def __init__(self, page: Page):
        self.page = page

    async def _call(self, coro):
        try:
            return await coro
        except PlaywrightError as e:
            if _is_stale(e):
                raise StaleReferenceError(str(e)) from e
            raise

    async def query_all(self, selector: str, scope: Node | None = None) -> list[Node]:
        root = self.page if scope is None else scope
        return await self._call(root.query_selector_all(selector))

    async def matches(self, node: Node, selector: str) -> bool:
        return bool(await self._call(node.evaluate("(el, sel) => el.matches(sel)", selector)))

    async def classes(self, node: Node) -> set[str]:
        return set(await self._call(node.evaluate("el => Array.from(el.classList)")))

    async def text(self, node: Node) -> str:
        return ((await self._call(node.text_content())) or "").strip()

    async def attribute(self, node: Node, name: str) -> str | None:
        return await self._call(node.get_attribute(name))

    async def is_attached(self, node: Node) -> bool:
        try:
            return bool(await node.evaluate("el => el.isConnected"))
        except PlaywrightError:
            return False

    async def is_checked(self, node: Node) -> bool:
        return bool(await self._call(node.evaluate("el => !!el.checked")))

    async def dispatch(self, node: Node, event_type: str, init: dict | None = None) -> None:
        event_init = {}
        for key, value in (init or {}).items():
            event_init[key] = value.handle if isinstance(value, TransferMedium) else value
        await self._call(node.dispatch_event(event_type, event_init or None))

    async def set_value(self, node: Node, text: str) -> None:
        await self._call(node.evaluate(_SET_VALUE_JS, text))

    async def new_transfer_medium(self) -> TransferMedium:
        handle = await self.page.evaluate_handle("() => new DataTransfer()")
        return TransferMedium(handle=handle)

    async def release_transfer_medium(self, medium: TransferMedium) -> None:
        if medium.handle is not None:
            await medium.handle.dispose()
            medium.handle = None

    async def mutate_classes(
        self, node: Node, add: Iterable[str] = (), remove: Iterable[str] = ()
    ) -> None:
        await self._call(node.evaluate(_MUTATE_CLASSES_JS, [list(add), list(remove)]))

    async def set_attribute(self, node: Node, name: str, value: str) -> None:
        await self._call(
            node.evaluate("(el, [name, value]) => el.setAttribute(name, value)", [name, value])
        )


class BrowserSession:
    """Owns the Playwright driver, browser and page for one CLI invocation."""

    def __init__(self):
        self.playwright = None
        self.browser: Browser | None = None
        self.context: BrowserContext | None = None
        self.page: Page | None = None

    async def start(
        self,
        url: str,
        headless: bool = False,
        user_data_dir: str | None = None,
        viewport: tuple[int, int] = (1280, 800),
    ) -> PlaywrightSurface:
        """Launch Chromium, navigate to *url* and return a surface over the page.

        With *user_data_dir* a persistent profile is used so an existing
        login survives between invocations.
        """
        self.playwright = await async_playwright().start()
        launch_kwargs: dict = {"headless": headless}
        proxy = _get_playwright_proxy()
        if proxy:
            launch_kwargs["proxy"] = proxy
        size = {"width": viewport[0], "height": viewport[1]}

        if user_data_dir:
            self.context = await self.playwright.chromium.launch_persistent_context(
                user_data_dir, viewport=size, **launch_kwargs
            )
            self.page = self.context.pages[0] if self.context.pages else await self.context.new_page()
        else:
            self.browser = await self.playwright.chromium.launch(**launch_kwargs)
            self.context = await self.browser.new_context(viewport=size)
            self.page = await self.context.new_page()

        logger.info("Opening %s", url)
        await self.page.goto(url, wait_until="domcontentloaded")
        return PlaywrightSurface(self.page)

    async def wait_for_load(self, timeout: int = 10000) -> bool:
        try:
            await self.page.wait_for_load_state("networkidle", timeout=timeout)
            return True
        except PlaywrightError as e:
            logger.warning("Page did not settle: %s", e)
            return False

    async def stop(self) -> None:
        if self.context:
            await self.context.close()
        if self.browser:
            await self.browser.close()
        if self.playwright:
            await self.playwright.stop()
