# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
The grammar compiler boundary.

The parse adapter talks to its compiler through exactly two operations:

- `compile(buffer)`: turn a terminated UTF-8 buffer into a `TreeHandle`, or
  return a `Rejected` sentinel (or None, when there is nothing to report)
  when the text does not match the grammar;
- `release(handle)`: give the tree back. Called exactly once per handle.

`LarkCompiler` is the production implementation, built on an LALR parser
generated from `grammar.lark`. Nothing outside `views` looks inside the tree a
handle holds.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Protocol, Union

from lark import Lark, Tree
from lark.exceptions import UnexpectedInput

from nomia.core.span import Span

logger = logging.getLogger(__name__)

_GRAMMAR_PATH = Path(__file__).with_name("grammar.lark")

# Compiler input ends with this byte, so it can never appear inside the text.
TERMINATOR = b"\x00"


@dataclass(frozen=True)
class Rejected:
	"""Failure sentinel: the compiler produced no tree."""

	span: Span = field(default_factory=Span)
	message: Optional[str] = None


class TreeHandle:
	"""
	Owns one compiled tree until it is released.

	The tree is only reachable through `root` while the handle is live.
	"""

	__slots__ = ("_root",)

	def __init__(self, root: Tree) -> None:
		self._root: Optional[Tree] = root

	@property
	def released(self) -> bool:
		return self._root is None

	@property
	def root(self) -> Tree:
		if self._root is None:
			raise RuntimeError("tree handle used after release")
		return self._root

	def _invalidate(self) -> None:
		if self._root is None:
			raise RuntimeError("tree handle released twice")
		self._root = None


CompileResult = Union[TreeHandle, Rejected, None]


def _span_of(err: UnexpectedInput) -> Span:
	# Lark reports end-of-input failures at line/column -1.
	line = getattr(err, "line", None)
	if line is None or line < 1:
		return Span(raw=err)
	return Span.from_loc(err)


class GrammarCompiler(Protocol):
	"""Text-to-tree compiler used by the parse adapter."""

	def compile(self, buffer: bytes) -> CompileResult:
		...

	def release(self, handle: TreeHandle) -> None:
		...


class LarkCompiler:
	"""Compiles name source with the LALR parser generated from grammar.lark."""

	def __init__(self, grammar_path: Path = _GRAMMAR_PATH) -> None:
		self._parser = Lark(
			grammar_path.read_text(encoding="utf-8"),
			parser="lalr",
			lexer="contextual",
			start="name",
			maybe_placeholders=True,
		)

	def compile(self, buffer: bytes) -> CompileResult:
		if not buffer.endswith(TERMINATOR):
			raise ValueError("compiler input must end with the terminator byte")
		# Bytes that are not UTF-8 are carried through as lone surrogates; the
		# grammar only lets them into quoted parameter values.
		text = buffer[: -len(TERMINATOR)].decode("utf-8", errors="surrogateescape")
		try:
			tree = self._parser.parse(text)
		except UnexpectedInput as err:
			span = _span_of(err)
			logger.debug("grammar rejected input at %s", span)
			return Rejected(span=span, message=str(err))
		return TreeHandle(tree)

	def release(self, handle: TreeHandle) -> None:
		handle._invalidate()
		logger.debug("released name tree")


DEFAULT_COMPILER = LarkCompiler()


__all__ = [
	"CompileResult",
	"DEFAULT_COMPILER",
	"GrammarCompiler",
	"LarkCompiler",
	"Rejected",
	"TERMINATOR",
	"TreeHandle",
]
