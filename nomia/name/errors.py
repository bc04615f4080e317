# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Errors raised while turning source text into a Name.

Two layers live here:

- storage-level reservation failures (`TryReserveError`, `AllocError`), raised
  by a storage policy when its allocator refuses a request;
- the caller-visible `ParseError` taxonomy. Every `ParseError` is terminal for
  the parse call and is never accompanied by a partial tree.
"""

from __future__ import annotations

from enum import Enum, auto
from typing import ClassVar, Optional

from nomia.core.span import Span


class TryReserveError(Exception):
	"""A collection could not reserve capacity for `requested` more items."""

	def __init__(self, requested: int) -> None:
		super().__init__(f"failed to reserve capacity for {requested} item(s)")
		self.requested = requested


class AllocError(Exception):
	"""A single owned reference could not be allocated."""

	def __init__(self) -> None:
		super().__init__("failed to allocate owned reference")


class ParseErrorKind(Enum):
	INVALID_INPUT = auto()
	SYNTAX_ERROR = auto()
	INVALID_TEXT = auto()
	OUT_OF_MEMORY = auto()
	NOT_SUPPORTED = auto()


class AllocationKind(Enum):
	"""Which kind of reservation failed. Informational only."""

	COLLECTION = auto()
	NODE = auto()
	STACK = auto()


_ALLOCATION_WHAT = {
	AllocationKind.COLLECTION: "collection growth",
	AllocationKind.NODE: "node allocation",
	AllocationKind.STACK: "tree walk (nesting too deep)",
}


class ParseError(Exception):
	"""Base class for every classified parse failure."""

	kind: ClassVar[ParseErrorKind]


class InvalidInputError(ParseError):
	"""
	Source text cannot be handed to the grammar compiler.

	Raised before the compiler runs: the text contains the compiler's
	terminator byte, or is a `str` that has no UTF-8 encoding. `position`
	is the offending offset into the source when known.
	"""

	kind = ParseErrorKind.INVALID_INPUT

	def __init__(self, message: str, *, position: Optional[int] = None) -> None:
		super().__init__(message)
		self.position = position


class NameSyntaxError(ParseError):
	"""The grammar compiler rejected the text."""

	kind = ParseErrorKind.SYNTAX_ERROR

	def __init__(self, detail: Optional[str] = None, *, span: Optional[Span] = None) -> None:
		span = span if span is not None else Span()
		if span.is_known():
			message = f"syntax error at {span}"
		else:
			message = "syntax error"
		super().__init__(message)
		self.detail = detail
		self.span = span


class InvalidTextError(ParseError):
	"""A text payload inside an otherwise valid tree is not valid UTF-8."""

	kind = ParseErrorKind.INVALID_TEXT


class OutOfMemoryError(ParseError):
	"""
	A reservation failed while building the tree.

	`allocation` is STACK when the source nests too deeply to walk.
	"""

	kind = ParseErrorKind.OUT_OF_MEMORY

	def __init__(self, allocation: AllocationKind) -> None:
		what = _ALLOCATION_WHAT[allocation]
		super().__init__(f"out of memory during {what}")
		self.allocation = allocation


class NotSupportedError(ParseError):
	"""A recognized grammar form has no translation yet."""

	kind = ParseErrorKind.NOT_SUPPORTED

	def __init__(self, construct: str) -> None:
		super().__init__(f"not supported: {construct}")
		self.construct = construct


__all__ = [
	"AllocError",
	"AllocationKind",
	"InvalidInputError",
	"InvalidTextError",
	"NameSyntaxError",
	"NotSupportedError",
	"OutOfMemoryError",
	"ParseError",
	"ParseErrorKind",
	"TryReserveError",
]
