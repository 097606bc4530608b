from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any, Dict, Optional


class JSONStorage:
    """JSON-file key-value store holding the OAuth session between invocations."""

    def __init__(self, path: Path) -> None:
        self.path = path
        self._lock = asyncio.Lock()

    def exists(self) -> bool:
        return self.path.exists()

    async def _read(self) -> Dict[str, Any]:
        def _load() -> Dict[str, Any]:
            if not self.path.exists():
                return {}
            try:
                data = json.loads(self.path.read_text(encoding="utf-8"))
            except json.JSONDecodeError:
                return {}
            return data if isinstance(data, dict) else {}

        return await asyncio.to_thread(_load)

    async def _write(self, payload: Dict[str, Any]) -> None:
        def _dump() -> None:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(payload, indent=2, sort_keys=True), encoding="utf-8")

        await asyncio.to_thread(_dump)

    async def get(self, key: str, default: Optional[Any] = None) -> Any:
        async with self._lock:
            data = await self._read()
            return data.get(key, default)

    async def set(self, key: str, value: Any) -> None:
        async with self._lock:
            data = await self._read()
            data[key] = value
            await self._write(data)

    async def delete(self, key: str) -> None:
        async with self._lock:
            data = await self._read()
            if key in data:
                data.pop(key)
                await self._write(data)

    async def clear(self) -> None:
        async with self._lock:
            await self._write({})
