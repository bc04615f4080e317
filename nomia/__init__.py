# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
nomia: the name language front-end.

Subpackages:
  - name: AST, storage policies, grammar compiler and parse adapter
  - core: shared small types (source spans)
"""

__all__ = [
	"core",
	"name",
]
