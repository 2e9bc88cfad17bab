"""
Entity-Component-System Core
=============================
The World is the arena for a run: every player, enemy, projectile and
explosion lives here as an integer id with dataclass components attached.

Two rules keep systems safe to run while the world changes under them:

- destroy_entity() only marks; the entity stays readable until
  process_dead_entities() runs at the end of the frame, but queries
  already skip it.
- entities created inside ``with world.staged():`` are hidden from every
  query until the outermost staged block exits, so a pass never sees
  what it spawned.
"""

from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional, Set, Tuple, Type, TypeVar

C = TypeVar('C')

_EMPTY: Dict[int, Any] = {}


class World:
    """Entity ids, one component store per type, and the pending sets."""

    def __init__(self):
        self._ids = 0
        self._entities: Set[int] = set()
        self._stores: Dict[Type, Dict[int, Any]] = {}
        self._dead: Set[int] = set()
        self._hidden: Set[int] = set()
        self._stage_depth = 0

    def _store(self, component_type: Type) -> Dict[int, Any]:
        return self._stores.get(component_type, _EMPTY)

    # ------------------------------------------------------------------
    # Entities
    # ------------------------------------------------------------------

    def create_entity(self) -> int:
        entity_id = self._ids
        self._ids += 1
        self._entities.add(entity_id)
        if self._stage_depth:
            self._hidden.add(entity_id)
        return entity_id

    @contextmanager
    def staged(self):
        """Hide entities created in this block until the outermost block exits."""
        self._stage_depth += 1
        try:
            yield self
        finally:
            self._stage_depth -= 1
            if not self._stage_depth:
                self._hidden.clear()

    def destroy_entity(self, entity_id: int) -> None:
        self._dead.add(entity_id)

    def process_dead_entities(self) -> None:
        """Drop every marked entity and its components."""
        doomed = self._dead & self._entities
        for store in self._stores.values():
            for entity_id in doomed.intersection(store):
                del store[entity_id]
        self._entities -= doomed
        self._hidden -= doomed
        self._dead.clear()

    def is_alive(self, entity_id: int) -> bool:
        return entity_id in self._entities and entity_id not in self._dead

    def entity_count(self) -> int:
        return len(self._entities - self._dead)

    # ------------------------------------------------------------------
    # Components
    # ------------------------------------------------------------------

    def add_component(self, entity_id: int, component: Any) -> None:
        self._stores.setdefault(type(component), {})[entity_id] = component

    def remove_component(self, entity_id: int, component_type: Type[C]) -> None:
        self._store(component_type).pop(entity_id, None)

    def get_component(self, entity_id: int, component_type: Type[C]) -> Optional[C]:
        return self._store(component_type).get(entity_id)

    def has_component(self, entity_id: int, component_type: Type) -> bool:
        return entity_id in self._store(component_type)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def query(self, *component_types: Type) -> Iterator[Tuple[Any, ...]]:
        """
        Yield (entity_id, component, ...) for visible entities holding every type.

        Results come in id order, which is creation order. Candidates are
        fixed when iteration starts; an entity destroyed or stripped of a
        component mid-iteration is skipped when its turn comes.
        """
        if not component_types:
            return
        stores = [self._store(ct) for ct in component_types]
        smallest = min(stores, key=len)
        candidates = sorted(e for e in smallest if all(e in s for s in stores))

        for entity_id in candidates:
            if entity_id in self._dead or entity_id in self._hidden:
                continue
            if not all(entity_id in s for s in stores):
                continue
            yield (entity_id,) + tuple(s[entity_id] for s in stores)

    def get_entities_with(self, *component_types: Type) -> Iterator[int]:
        for row in self.query(*component_types):
            yield row[0]

    def count(self, *component_types: Type) -> int:
        return sum(1 for _ in self.query(*component_types))
