"""
Module: wholesale_kernel.selectors.base
Responsibility: Abstract base class for all read-only query selectors.
    Selectors form the "Q" side of the kernel, providing scoped read access
    to the entity store without mutation capability.
Architecture position: Kernel > Selectors.  May import from store/ and
    domain/.  MUST NOT import from services/ or the kernel facade.

Invariants enforced:
    - Read-only access: selectors never append, remove or assign to store
      collections.
    - Every list method takes an explicit ``CallerContext``; an anonymous
      context resolves to an empty result.
"""

from abc import ABC

from wholesale_kernel.store.entity_store import EntityStore


class BaseSelector(ABC):
    """
    Abstract base class for all selectors.

    Contract:
        Selectors accept the store from the caller, perform read-only
        queries and return entities or page objects.  They MUST NOT mutate
        any data.
    """

    def __init__(self, store: EntityStore):
        self.store = store
