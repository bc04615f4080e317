# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Owned storage policy for the Name AST.

References are `Box` (exclusive ownership of one node) and sequences are
`OwnedVec` (an ordered list with an explicit capacity). Both obtain their
storage through an `Allocator` using fallible reservation: the allocator is
asked, and a refusal surfaces as `AllocError` / `TryReserveError` rather than
an abort. The default allocator never refuses.
"""

from __future__ import annotations

from typing import Generic, Iterable, Iterator, List, TypeVar

from .ast import Declaration, Name, Parameter, Substitution, SubstitutionSpec
from .errors import AllocError, TryReserveError

T = TypeVar("T")


class Allocator:
	"""
	Source of reservations for owned storage.

	Subclasses override `try_reserve` / `try_allocate` to refuse requests. A
	refused request must leave the allocator usable: construction may abort
	and release everything built so far, and the same allocator is asked
	again on the next parse.
	"""

	def try_reserve(self, count: int) -> bool:
		"""Reserve room for `count` more sequence items."""
		return True

	def try_allocate(self) -> bool:
		"""Allocate storage for a single owned reference."""
		return True


class GlobalAllocator(Allocator):
	"""The process allocator; every request succeeds."""

	def __repr__(self) -> str:
		return "GlobalAllocator()"


GLOBAL = GlobalAllocator()


class Box(Generic[T]):
	"""Exclusive ownership of one node."""

	__slots__ = ("_value", "__weakref__")

	def __init__(self, value: T) -> None:
		self._value = value

	@classmethod
	def try_new_in(cls, value: T, alloc: Allocator) -> "Box[T]":
		if not alloc.try_allocate():
			raise AllocError()
		return cls(value)

	def as_ref(self) -> T:
		return self._value

	def __eq__(self, other: object) -> bool:
		if not isinstance(other, Box):
			return NotImplemented
		return self._value == other._value

	__hash__ = None  # type: ignore[assignment]

	def __repr__(self) -> str:
		return f"Box({self._value!r})"


class OwnedVec(Generic[T]):
	"""
	An ordered sequence whose growth goes through an allocator.

	`capacity` is the number of items the sequence may hold without asking
	the allocator again. `push` is the only way to add an item; once the
	builder calls `seal`, the sequence is read-only.
	"""

	__slots__ = ("_items", "_alloc", "_capacity", "_sealed", "__weakref__")

	def __init__(self, *, alloc: Allocator = GLOBAL) -> None:
		self._items: List[T] = []
		self._alloc = alloc
		self._capacity = 0
		self._sealed = False

	@classmethod
	def with_capacity(cls, count: int, alloc: Allocator = GLOBAL) -> "OwnedVec[T]":
		vec: OwnedVec[T] = cls(alloc=alloc)
		vec.try_reserve_exact(count)
		return vec

	@classmethod
	def from_iter(cls, items: Iterable[T] = (), alloc: Allocator = GLOBAL) -> "OwnedVec[T]":
		"""A sealed sequence holding `items`, reserved in one request."""
		items = list(items)
		vec: OwnedVec[T] = cls.with_capacity(len(items), alloc)
		for item in items:
			vec.push(item)
		vec.seal()
		return vec

	@property
	def capacity(self) -> int:
		return self._capacity

	@property
	def sealed(self) -> bool:
		return self._sealed

	def try_reserve_exact(self, additional: int) -> None:
		"""Ensure room for `additional` more items beyond the current length."""
		self._check_open()
		needed = len(self._items) + additional - self._capacity
		if needed <= 0:
			return
		if not self._alloc.try_reserve(needed):
			raise TryReserveError(needed)
		self._capacity += needed

	def push(self, item: T) -> None:
		self._check_open()
		if len(self._items) >= self._capacity:
			self.try_reserve_exact(1)
		self._items.append(item)

	def seal(self) -> None:
		self._sealed = True

	def _check_open(self) -> None:
		if self._sealed:
			raise RuntimeError("sequence is sealed")

	def __len__(self) -> int:
		return len(self._items)

	def __iter__(self) -> Iterator[T]:
		return iter(self._items)

	def __getitem__(self, index: int) -> T:
		return self._items[index]

	def __eq__(self, other: object) -> bool:
		if isinstance(other, OwnedVec):
			return self._items == other._items
		if isinstance(other, (list, tuple)):
			return self._items == list(other)
		return NotImplemented

	__hash__ = None  # type: ignore[assignment]

	def __repr__(self) -> str:
		return f"OwnedVec({self._items!r})"


class OwnedNameParameters:
	"""
	Binds the Name AST to `Box`, `OwnedVec` and `str`.

	Text is copied into plain `str` and does not go through the allocator.
	"""

	def __init__(self, alloc: Allocator = GLOBAL) -> None:
		self.alloc = alloc

	def declaration_ref(self, decl: Declaration) -> Box[Declaration]:
		return Box.try_new_in(decl, self.alloc)

	def declarations(self, count: int) -> OwnedVec[Box[Declaration]]:
		return OwnedVec.with_capacity(count, self.alloc)

	def nested_name(self, name: Name) -> Box[Name]:
		return Box.try_new_in(name, self.alloc)

	def substitution_ref(self, sub: Substitution) -> Box[Substitution]:
		return Box.try_new_in(sub, self.alloc)

	def substitution_specs(self, count: int) -> OwnedVec[SubstitutionSpec]:
		return OwnedVec.with_capacity(count, self.alloc)

	def parameters(self, count: int) -> OwnedVec[Parameter]:
		return OwnedVec.with_capacity(count, self.alloc)

	def identifier(self, text: str) -> str:
		return str(text)

	def parameter_name(self, text: str) -> str:
		return str(text)

	def parameter_value(self, text: str) -> str:
		return str(text)


OwnedName = Name[OwnedNameParameters]


__all__ = [
	"Allocator",
	"Box",
	"GLOBAL",
	"GlobalAllocator",
	"OwnedName",
	"OwnedNameParameters",
	"OwnedVec",
]
