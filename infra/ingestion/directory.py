"""Id → display-name directories (employees, suppliers) behind a TTL store."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, Iterable, Mapping

import yaml

from .lookup_store import Clock, LookupStore

LOGGER = logging.getLogger(__name__)

DirectoryLoader = Callable[[], Awaitable[Mapping[Any, Any]]]

_ALL = "__all__"


class NameDirectory:
    """Whole-directory cache: one load serves every id until the TTL expires."""

    def __init__(
        self,
        loader: DirectoryLoader,
        *,
        name: str = "directory",
        ttl_seconds: float = 3600.0,
        clock: Clock | None = None,
    ) -> None:
        self.name = name
        self._loader = loader
        self._store: LookupStore[str, Dict[str, str]] = LookupStore(self._load, ttl_seconds=ttl_seconds, clock=clock)

    @property
    def loads(self) -> int:
        return self._store.loads

    async def names(self) -> Dict[str, str]:
        return dict(await self._store.get(_ALL))

    async def resolve(self, key: Any) -> str | None:
        if key is None:
            return None
        return (await self._store.get(_ALL)).get(str(key))

    async def resolve_many(self, keys: Iterable[Any]) -> Dict[str, str]:
        directory = await self._store.get(_ALL)
        return {str(key): directory[str(key)] for key in keys if key is not None and str(key) in directory}

    async def invalidate(self) -> None:
        await self._store.invalidate()

    async def _load(self, _: str) -> Dict[str, str]:
        payload = await self._loader()
        names = {str(key): str(value) for key, value in (payload or {}).items() if value is not None}
        LOGGER.info("Loaded %d %s names", len(names), self.name)
        return names


def mapping_file_loader(path: str | Path) -> DirectoryLoader:
    """Loader reading an id → name mapping from a YAML or JSON file."""

    file_path = Path(path)

    async def load() -> Mapping[Any, Any]:
        payload = yaml.safe_load(file_path.read_text(encoding="utf-8"))
        if payload is None:
            return {}
        if not isinstance(payload, Mapping):
            raise ValueError(f"{file_path} must map ids to names")
        return payload

    return load


__all__ = ["DirectoryLoader", "NameDirectory", "mapping_file_loader"]
