"""
================================================================================
In-Memory Fake Page
================================================================================

A tiny stand-in for the part of the async Playwright API the engine uses,
backed by a tree of `FakeNode`s instead of a browser.

Selectors are not parsed: every node lists the exact selector strings it
answers to in `css`, and `locator(selector)` returns the descendants that
list it. Role, placeholder and text queries follow Playwright's matching
rules (case-insensitive substring unless `exact`, regex via `search`).

Locators are lazy, as in Playwright: every call re-queries the live tree, so
nodes replaced between two calls are seen as replaced.

Network responses are not simulated beyond `respond(url)`, which records a
`FakeResponse` and hands it to any pending `expect_response` waiter.

================================================================================
"""

from __future__ import annotations

import asyncio
import re
from typing import Any, Callable, Dict, Iterable, List, Optional, Pattern, Union

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

TextMatch = Union[str, Pattern[str]]


def _normalize(text: str) -> str:
    return " ".join(text.split())


def text_matches(actual: Optional[str], expected: TextMatch, exact: bool = False) -> bool:
    if actual is None:
        return False
    actual = _normalize(actual)
    if isinstance(expected, re.Pattern):
        return expected.search(actual) is not None
    expected = _normalize(expected)
    if exact:
        return actual == expected
    return expected.casefold() in actual.casefold()


class FakeNode:
    """One element of the fake DOM."""

    def __init__(
        self,
        tag: str = "div",
        *,
        css: Iterable[str] = (),
        role: Optional[str] = None,
        name: Optional[str] = None,
        placeholder: Optional[str] = None,
        text: str = "",
        value: str = "",
        checked: Optional[bool] = None,
        visible: bool = True,
        enabled: bool = True,
        on_click: Optional[Callable[["FakeNode"], None]] = None,
        on_fill: Optional[Callable[["FakeNode", str], None]] = None,
        children: Iterable["FakeNode"] = (),
    ):
        self.tag = tag
        self.css = {tag, *css}
        self.role = role
        self.name = name
        self.placeholder = placeholder
        self.text = text
        self.value = value
        self.checked = checked
        self.visible = visible
        self.enabled = enabled
        self.on_click = on_click
        self.on_fill = on_fill
        self.parent: Optional[FakeNode] = None
        self.children: List[FakeNode] = []
        self.clicks = 0
        for child in children:
            self.append(child)

    def append(self, *children: "FakeNode") -> "FakeNode":
        for child in children:
            child.parent = self
            self.children.append(child)
        return self

    def clear_children(self) -> None:
        for child in self.children:
            child.parent = None
        self.children = []

    def remove(self) -> None:
        if self.parent is not None:
            self.parent.children.remove(self)
            self.parent = None

    def descendants(self) -> List["FakeNode"]:
        found: List[FakeNode] = []
        for child in self.children:
            found.append(child)
            found.extend(child.descendants())
        return found

    def text_content(self) -> str:
        parts = [self.text] + [c.text_content() for c in self.children if c.displayed_self]
        return _normalize(" ".join(p for p in parts if p))

    @property
    def displayed_self(self) -> bool:
        return self.visible

    @property
    def displayed(self) -> bool:
        node: Optional[FakeNode] = self
        while node is not None:
            if not node.visible:
                return False
            node = node.parent
        return True

    @property
    def accessible_name(self) -> str:
        return self.name if self.name is not None else self.text_content()

    def __repr__(self) -> str:
        label = self.name or self.text or self.placeholder or ""
        return f"<{self.tag} {label!r}>"


Query = Callable[[], List[FakeNode]]


class FakeLocator:
    """Lazy query over the fake DOM with the Locator methods the engine calls."""

    def __init__(self, page: "FakePage", query: Query, description: str):
        self._page = page
        self._query = query
        self._description = description

    def __repr__(self) -> str:
        return f"FakeLocator({self._description})"

    def _nodes(self) -> List[FakeNode]:
        self._page.queries += 1
        return self._query()

    def _derive(self, description: str, select: Callable[[FakeNode], Iterable[FakeNode]]) -> "FakeLocator":
        def query() -> List[FakeNode]:
            seen: Dict[int, FakeNode] = {}
            for base in self._query():
                for node in select(base):
                    seen.setdefault(id(node), node)
            return list(seen.values())

        return FakeLocator(self._page, query, f"{self._description} >> {description}")

    # -- query builders ------------------------------------------------------

    def locator(self, selector: str) -> "FakeLocator":
        return self._derive(selector, lambda base: [n for n in base.descendants() if selector in n.css])

    def get_by_role(self, role: str, name: Optional[TextMatch] = None, exact: bool = False) -> "FakeLocator":
        def select(base: FakeNode) -> List[FakeNode]:
            return [
                n for n in base.descendants()
                if n.role == role and (name is None or text_matches(n.accessible_name, name, exact))
            ]

        return self._derive(f"role={role}[{name!r}]", select)

    def get_by_placeholder(self, text: TextMatch, exact: bool = False) -> "FakeLocator":
        return self._derive(
            f"placeholder={text!r}",
            lambda base: [n for n in base.descendants() if text_matches(n.placeholder, text, exact)],
        )

    def get_by_text(self, text: TextMatch, exact: bool = False) -> "FakeLocator":
        return self._derive(
            f"text={text!r}",
            lambda base: [n for n in base.descendants() if n.text and text_matches(n.text, text, exact)],
        )

    def filter(self, has_text: Optional[TextMatch] = None) -> "FakeLocator":
        def query() -> List[FakeNode]:
            nodes = self._query()
            if has_text is None:
                return nodes
            return [n for n in nodes if text_matches(n.text_content(), has_text)]

        return FakeLocator(self._page, query, f"{self._description} >> has_text={has_text!r}")

    def nth(self, index: int) -> "FakeLocator":
        def query() -> List[FakeNode]:
            nodes = self._query()
            return [nodes[index]] if index < len(nodes) else []

        return FakeLocator(self._page, query, f"{self._description} >> nth={index}")

    @property
    def first(self) -> "FakeLocator":
        return self.nth(0)

    # -- state ---------------------------------------------------------------

    def _single(self) -> FakeNode:
        nodes = self._nodes()
        if not nodes:
            raise PlaywrightTimeoutError(f"Timeout exceeded waiting for {self._description}")
        if len(nodes) > 1:
            raise PlaywrightError(f"strict mode violation: {self._description} resolved to {len(nodes)} elements")
        return nodes[0]

    def _actionable(self) -> FakeNode:
        node = self._single()
        if not node.displayed or not node.enabled:
            raise PlaywrightTimeoutError(f"Timeout exceeded: {self._description} not actionable")
        return node

    async def count(self) -> int:
        return len(self._nodes())

    async def is_visible(self) -> bool:
        nodes = self._nodes()
        return bool(nodes) and nodes[0].displayed

    async def is_enabled(self, timeout: Optional[float] = None) -> bool:
        return self._single().enabled

    async def is_checked(self) -> bool:
        node = self._single()
        if node.checked is None:
            raise PlaywrightError("Not a checkbox or radio button")
        return node.checked

    async def input_value(self) -> str:
        return self._single().value

    async def inner_text(self, timeout: Optional[float] = None) -> str:
        return self._single().text_content()

    # -- actions -------------------------------------------------------------

    async def click(self, timeout: Optional[float] = None) -> None:
        node = self._actionable()
        node.clicks += 1
        self._page.clicked.append(node)
        if node.on_click is not None:
            node.on_click(node)
        elif node.checked is not None:
            node.checked = not node.checked

    async def clear(self, timeout: Optional[float] = None) -> None:
        await self.fill("", timeout=timeout)

    async def fill(self, value: str, timeout: Optional[float] = None) -> None:
        node = self._actionable()
        if node.on_fill is not None:
            node.on_fill(node, value)
        else:
            node.value = value


class FakeResponse:
    """Network response as seen by `page.expect_response` predicates."""

    def __init__(self, url: str, status: int = 200):
        self.url = url
        self.status = status

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    def __repr__(self) -> str:
        return f"<FakeResponse {self.status} {self.url}>"


class ResponseWaiter:
    """
    `async with page.expect_response(predicate)`: on a clean exit, waits for
    the first matching response. Only predicates are supported.
    """

    def __init__(self, page: "FakePage", predicate: Callable[[FakeResponse], bool], timeout: Optional[float]):
        self._page = page
        self._predicate = predicate
        self._timeout_ms = timeout if timeout is not None else 30000
        self._future: Optional[asyncio.Future] = None

    async def __aenter__(self) -> "ResponseWaiter":
        self._future = asyncio.get_running_loop().create_future()
        self._page.response_waiters.append(self)
        return self

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        try:
            if exc_type is None:
                await asyncio.wait_for(asyncio.shield(self._future), self._timeout_ms / 1000.0)
        except asyncio.TimeoutError:
            raise PlaywrightTimeoutError(
                f'Timeout {self._timeout_ms}ms exceeded while waiting for event "response"'
            ) from None
        finally:
            self._page.response_waiters.remove(self)
        return False

    def offer(self, response: FakeResponse) -> None:
        if not self._future.done() and self._predicate(response):
            self._future.set_result(response)

    @property
    def value(self) -> Any:
        return self._future


class FakePage:
    """Page holding one document tree and a URL."""

    def __init__(self, url: str = "about:blank"):
        self.url = url
        self.document = FakeNode("html")
        self.clicked: List[FakeNode] = []
        self.visited: List[str] = []
        self.queries = 0
        self.router: Optional[Callable[[str], None]] = None
        self.handlers: Dict[str, List[Callable]] = {}
        self.responses: List[FakeResponse] = []
        self.response_waiters: List[ResponseWaiter] = []

    def _root(self) -> FakeLocator:
        return FakeLocator(self, lambda: [self.document], "page")

    def locator(self, selector: str) -> FakeLocator:
        return self._root().locator(selector)

    def get_by_role(self, role: str, name: Optional[TextMatch] = None, exact: bool = False) -> FakeLocator:
        return self._root().get_by_role(role, name=name, exact=exact)

    def get_by_placeholder(self, text: TextMatch, exact: bool = False) -> FakeLocator:
        return self._root().get_by_placeholder(text, exact=exact)

    def get_by_text(self, text: TextMatch, exact: bool = False) -> FakeLocator:
        return self._root().get_by_text(text, exact=exact)

    def on(self, event: str, handler: Callable) -> None:
        self.handlers.setdefault(event, []).append(handler)

    async def goto(self, url: str, wait_until: Optional[str] = None, timeout: Optional[float] = None) -> None:
        self.visited.append(url)
        self.url = url
        if self.router is not None:
            self.router(url)

    async def reload(self, wait_until: Optional[str] = None, timeout: Optional[float] = None) -> None:
        await self.goto(self.url)

    async def wait_for_load_state(self, state: str = "load", timeout: Optional[float] = None) -> None:
        return None

    def expect_response(
        self, predicate: Callable[[FakeResponse], bool], timeout: Optional[float] = None
    ) -> ResponseWaiter:
        return ResponseWaiter(self, predicate, timeout)

    def respond(self, url: str, status: int = 200) -> FakeResponse:
        """Deliver a response to the page (and to anyone expecting it)."""
        response = FakeResponse(url, status)
        self.responses.append(response)
        for waiter in list(self.response_waiters):
            waiter.offer(response)
        return response

    def show(self, *nodes: FakeNode) -> "FakePage":
        """Replace the document body with `nodes`."""
        self.document.clear_children()
        self.document.append(*nodes)
        return self


__all__ = [
    "FakeNode",
    "FakeLocator",
    "FakePage",
    "FakeResponse",
    "text_matches",
]
