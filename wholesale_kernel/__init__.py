"""
Wholesale Kernel - ordering admin core

A role-scoped administration kernel for a wholesale ordering platform:
- Order lifecycle with buyer approval and forward-only supplier stages
- Role and org-scope authorization on every command
- Append-only audit log with cursor pagination and bounded export
- Whole-store snapshots with migration on load
"""

__version__ = "0.1.0"

from wholesale_kernel.kernel import WholesaleKernel, backend_from_config

__all__ = ["WholesaleKernel", "backend_from_config"]
