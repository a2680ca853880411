"""Region lookup and creation for a single import run."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

from .. import models
from .contact_store import ContactStore, StoredUser

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class RegionResolution:
    region_id: Optional[str]
    created: bool = False


_NO_REGION = RegionResolution(region_id=None)


@dataclass
class RegionResolver:
    """Find regions by case-insensitive name, creating them when allowed.

    Each name is looked up once per run. A region created while processing a
    row that later fails must be handed back through :meth:`discard` because
    the row's writes, the region included, are rolled back.
    """

    store: ContactStore
    importer: StoredUser
    creator_roles: frozenset[str] = frozenset({models.UserRole.ROOT.value})
    _cache: dict[str, Optional[str]] = field(default_factory=dict, init=False, repr=False)

    @property
    def can_create(self) -> bool:
        return self.importer.role.value in self.creator_roles

    def resolve(self, raw_name: Optional[str]) -> RegionResolution:
        name = (raw_name or "").strip()
        if not name:
            return _NO_REGION

        key = name.lower()
        if key in self._cache:
            return RegionResolution(region_id=self._cache[key])

        existing = self.store.find_region_by_name(name)
        if existing is not None:
            self._cache[key] = existing.id
            return RegionResolution(region_id=existing.id)

        if not self.can_create:
            LOGGER.warning(
                "User %s (%s) may not create region %r during import; row keeps no region",
                self.importer.id,
                self.importer.role.value,
                name,
            )
            self._cache[key] = None
            return _NO_REGION

        region = self.store.create_region(name)
        LOGGER.info("Region %s (%r) created during import by %s", region.id, name, self.importer.id)
        self._cache[key] = region.id
        return RegionResolution(region_id=region.id, created=True)

    def discard(self, resolution: RegionResolution) -> None:
        """Forget a region whose creation was rolled back."""

        if not resolution.created:
            return
        for key, region_id in list(self._cache.items()):
            if region_id == resolution.region_id:
                del self._cache[key]


__all__ = ["RegionResolution", "RegionResolver"]
