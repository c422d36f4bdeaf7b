"""Abstract interactive surface the solving engine reads from and writes to.

Node references are opaque: a Playwright ``ElementHandle`` for the live
browser, a BeautifulSoup ``Tag`` for the offline surface.  Solvers only
ever hand them back to the surface that produced them.
"""

from __future__ import annotations

import itertools
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Iterable

Node = Any

_medium_ids = itertools.count(1)


@dataclass(eq=False)
class TransferMedium:
    """Shared drag session object carried by both legs of a transfer."""

    handle: Any = None
    key: int = field(default_factory=lambda: next(_medium_ids))


class Surface(ABC):
    """Read/write access to the document being automated."""

    @abstractmethod
    async def query_all(self, selector: str, scope: Node | None = None) -> list[Node]:
        """Return descendants of *scope* (the document when None) matching *selector*."""

    async def query(self, selector: str, scope: Node | None = None) -> Node | None:
        nodes = await self.query_all(selector, scope)
        return nodes[0] if nodes else None

    @abstractmethod
    async def matches(self, node: Node, selector: str) -> bool: ...

    @abstractmethod
    async def classes(self, node: Node) -> set[str]: ...

    @abstractmethod
    async def text(self, node: Node) -> str: ...

    @abstractmethod
    async def attribute(self, node: Node, name: str) -> str | None: ...

    @abstractmethod
    async def is_attached(self, node: Node) -> bool: ...

    @abstractmethod
    async def is_checked(self, node: Node) -> bool: ...

    @abstractmethod
    async def dispatch(self, node: Node, event_type: str, init: dict | None = None) -> None:
        """Dispatch a bubbling, cancelable synthetic event on *node*."""

    @abstractmethod
    async def set_value(self, node: Node, text: str) -> None: ...

    @abstractmethod
    async def new_transfer_medium(self) -> TransferMedium: ...

    async def release_transfer_medium(self, medium: TransferMedium) -> None:
        """Free whatever *medium* holds once its transfer is over."""

    @abstractmethod
    async def mutate_classes(
        self, node: Node, add: Iterable[str] = (), remove: Iterable[str] = ()
    ) -> None: ...

    @abstractmethod
    async def set_attribute(self, node: Node, name: str, value: str) -> None: ...

    async def present(self, scope: Node, selector: str | None) -> bool:
        """True when *scope* itself or one of its descendants matches *selector*."""
        if not selector:
            return False
        if await self.matches(scope, selector):
            return True
        return await self.query(selector, scope) is not None
