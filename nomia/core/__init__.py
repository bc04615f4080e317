# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
nomia.core: small shared types used across the name front-end.

Modules:
  - span: source span attached to parse diagnostics
"""

__all__ = [
	"span",
]
