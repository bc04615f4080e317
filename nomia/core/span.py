# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Source location attached to a rejected name.

Names are parsed from a single in-memory text, so a location is just a
1-based line/column and a 0-based offset into that text. Whatever object the
grammar compiler reported is kept in `raw`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional


@dataclass(frozen=True)
class Span:
	"""Best-effort position in the name source."""

	line: Optional[int] = None
	column: Optional[int] = None
	offset: Optional[int] = None
	raw: Any = None

	@classmethod
	def from_loc(cls, loc: Any) -> "Span":
		"""
		Build a Span from a lark token or exception.

		Lark exposes the offset as `pos_in_stream` on errors and `start_pos` on
		tokens; either may be missing.
		"""
		if loc is None:
			return cls()
		if isinstance(loc, cls):
			return loc
		offset = getattr(loc, "pos_in_stream", None)
		if offset is None:
			offset = getattr(loc, "start_pos", None)
		return cls(
			line=getattr(loc, "line", None),
			column=getattr(loc, "column", None),
			offset=offset,
			raw=loc,
		)

	def is_known(self) -> bool:
		return self.line is not None

	def __str__(self) -> str:
		if self.line is None:
			return "<unknown>"
		if self.column is None:
			return f"{self.line}"
		return f"{self.line}:{self.column}"


__all__ = ["Span"]
