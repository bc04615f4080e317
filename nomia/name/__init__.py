# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Names: composable references to named, parameterized artifacts.

Parses name source into a storage-agnostic AST. By default the tree is built
with owned storage (`OwnedName`):

	from nomia.name import parse
	name = parse("let a = f(); g(x: a)")
"""

from __future__ import annotations

from .ast import (
	AtomicRef,
	BuiltinNamespace,
	Declaration,
	Identifier,
	Name,
	NameParameters,
	NameRef,
	NamedNamespace,
	NamespaceId,
	NestedRef,
	OutputRef,
	Parameter,
	ParameterizedId,
	ResolvedRef,
	Substitution,
	SubstitutionSpec,
	VariableRef,
	deref,
)
from .errors import (
	AllocationKind,
	InvalidInputError,
	InvalidTextError,
	NameSyntaxError,
	NotSupportedError,
	OutOfMemoryError,
	ParseError,
	ParseErrorKind,
)
from .owned import GLOBAL, Allocator, Box, OwnedName, OwnedNameParameters, OwnedVec
from .serialize import parse, parse_in, parse_with

__all__ = [
	"GLOBAL",
	"Allocator",
	"AllocationKind",
	"AtomicRef",
	"Box",
	"BuiltinNamespace",
	"Declaration",
	"Identifier",
	"InvalidInputError",
	"InvalidTextError",
	"Name",
	"NameParameters",
	"NameRef",
	"NameSyntaxError",
	"NamedNamespace",
	"NamespaceId",
	"NestedRef",
	"NotSupportedError",
	"OutOfMemoryError",
	"OutputRef",
	"OwnedName",
	"OwnedNameParameters",
	"OwnedVec",
	"Parameter",
	"ParameterizedId",
	"ParseError",
	"ParseErrorKind",
	"ResolvedRef",
	"Substitution",
	"SubstitutionSpec",
	"VariableRef",
	"deref",
	"parse",
	"parse_in",
	"parse_with",
]
