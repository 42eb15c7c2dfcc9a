"""
Host document abstraction consumed by the scanner and scheduler.

The detection pipeline only needs two capabilities from a page: query elements
by CSS selector in document order, and get notified when the tree changes.
``HtmlDocument`` provides both on top of BeautifulSoup for page snapshots
pushed in by a browser relay.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional
from urllib.parse import urlsplit

from bs4 import BeautifulSoup, Tag


logger = logging.getLogger(__name__)


CHILD_LIST = "childList"
CHARACTER_DATA = "characterData"


@dataclass(frozen=True)
class Mutation:
	kind: str
	added_nodes: int = 0
	removed_nodes: int = 0


@dataclass(frozen=True)
class BoundingBox:
	width: float
	height: float


MutationHandler = Callable[[List[Mutation]], None]


class Element(ABC):
	@property
	@abstractmethod
	def text(self) -> str:
		"""Concatenated text of the element and its descendants."""

	@abstractmethod
	def bounding_box(self) -> BoundingBox:
		...

	@abstractmethod
	def computed_style(self) -> Dict[str, str]:
		"""At least ``display``, ``visibility`` and ``opacity``."""


class Observation:
	def __init__(self, on_disconnect: Callable[[], None]) -> None:
		self._on_disconnect = on_disconnect
		self._connected = True

	@property
	def connected(self) -> bool:
		return self._connected

	def disconnect(self) -> None:
		if self._connected:
			self._connected = False
			self._on_disconnect()


class HostDocument(ABC):
	@property
	@abstractmethod
	def url(self) -> str:
		...

	@property
	def hostname(self) -> str:
		return (urlsplit(self.url).hostname or "").lower()

	@abstractmethod
	def query_all(self, selector: str) -> List[Element]:
		...

	def query(self, selector: str) -> Optional[Element]:
		found = self.query_all(selector)
		return found[0] if found else None

	@abstractmethod
	def observe(self, handler: MutationHandler) -> Observation:
		...


def _parse_style(raw: Optional[str]) -> Dict[str, str]:
	style: Dict[str, str] = {}
	if not raw:
		return style
	for declaration in raw.split(";"):
		if ":" not in declaration:
			continue
		name, value = declaration.split(":", 1)
		style[name.strip().lower()] = value.strip().lower()
	return style


def _parse_px(value: Optional[str]) -> Optional[float]:
	if value is None:
		return None
	value = value.strip()
	if value.endswith("px"):
		value = value[:-2]
	try:
		return float(value)
	except ValueError:
		return None


class HtmlElement(Element):
	"""Element view over a BeautifulSoup tag.

	Static markup has no layout, so geometry is approximated: explicit inline
	``width``/``height`` in px win, hidden subtrees measure 0x0, and otherwise an
	element has a nominal size when it holds any text or child elements.
	"""

	def __init__(self, tag: Tag) -> None:
		self._tag = tag

	@property
	def tag(self) -> Tag:
		return self._tag

	@property
	def text(self) -> str:
		return self._tag.get_text()

	def _chain(self) -> List[Tag]:
		chain = [self._tag]
		chain.extend(p for p in self._tag.parents if isinstance(p, Tag) and p.name != "[document]")
		return chain

	def _display_none(self) -> bool:
		for tag in self._chain():
			if tag.has_attr("hidden"):
				return True
			if _parse_style(tag.get("style")).get("display") == "none":
				return True
		return False

	def computed_style(self) -> Dict[str, str]:
		own = _parse_style(self._tag.get("style"))
		visibility = "visible"
		# visibility is inherited: the nearest explicit value wins
		for tag in self._chain():
			declared = _parse_style(tag.get("style")).get("visibility")
			if declared:
				visibility = declared
				break
		return {
			"display": "none" if self._display_none() else own.get("display", "block"),
			"visibility": visibility,
			"opacity": own.get("opacity", "1"),
		}

	def bounding_box(self) -> BoundingBox:
		if self._display_none():
			return BoundingBox(0.0, 0.0)
		own = _parse_style(self._tag.get("style"))
		has_content = bool(self._tag.get_text().strip()) or self._tag.find(True) is not None
		width = _parse_px(own.get("width"))
		height = _parse_px(own.get("height"))
		if width is None:
			width = 100.0 if has_content else 0.0
		if height is None:
			height = 20.0 if has_content else 0.0
		return BoundingBox(width, height)


class HtmlDocument(HostDocument):
	"""Mutable HTML document with MutationObserver-style change batches."""

	def __init__(self, html: str = "", url: str = "") -> None:
		self._soup = BeautifulSoup(html or "", "html.parser")
		self._url = url
		self._handlers: List[MutationHandler] = []

	@property
	def url(self) -> str:
		return self._url

	@property
	def html(self) -> str:
		return str(self._soup)

	def query_all(self, selector: str) -> List[Element]:
		return [HtmlElement(tag) for tag in self._soup.select(selector)]

	def observe(self, handler: MutationHandler) -> Observation:
		self._handlers.append(handler)
		return Observation(lambda: self._handlers.remove(handler))

	@property
	def observer_count(self) -> int:
		return len(self._handlers)

	def load(self, html: str, url: Optional[str] = None) -> bool:
		"""Replace the whole document. Returns True when the markup changed."""
		if url is not None:
			self._url = url
		soup = BeautifulSoup(html or "", "html.parser")
		if str(soup) == str(self._soup):
			return False
		# top-level text nodes count too
		removed = len(self._soup.contents)
		self._soup = soup
		added = len(soup.contents)
		self._notify([Mutation(CHILD_LIST, added_nodes=added, removed_nodes=removed)])
		return True

	def set_text(self, selector: str, text: str) -> bool:
		tag = self._soup.select_one(selector)
		if tag is None:
			return False
		tag.string = text
		self._notify([Mutation(CHARACTER_DATA)])
		return True

	def append_html(self, selector: str, html: str) -> bool:
		parent = self._soup.select_one(selector)
		if parent is None:
			return False
		fragment = BeautifulSoup(html, "html.parser")
		nodes = list(fragment.contents)
		for node in nodes:
			parent.append(node.extract())
		self._notify([Mutation(CHILD_LIST, added_nodes=len(nodes))])
		return True

	def remove(self, selector: str) -> int:
		tags = self._soup.select(selector)
		for tag in tags:
			# nested matches die with their ancestor
			if not tag.decomposed:
				tag.decompose()
		if tags:
			self._notify([Mutation(CHILD_LIST, removed_nodes=len(tags))])
		return len(tags)

	def _notify(self, batch: List[Mutation]) -> None:
		for handler in list(self._handlers):
			try:
				handler(batch)
			except Exception:
				logger.exception("Mutation handler failed")
