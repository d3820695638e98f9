"""Shared helpers for the JSON-file repositories.

Each collection is one JSON array on disk. Amounts are stored as strings
so Decimal precision survives the round trip; datetimes as ISO-8601.
"""

from __future__ import annotations

import json
from datetime import datetime
from decimal import Decimal
from pathlib import Path
from typing import Any, Callable

from orderflow.domain.model.value_objects import DEFAULT_CURRENCY, Money


class JsonFile:

    def __init__(self, file_path: Path) -> None:
        self._file_path = file_path
        self._ensure_file()

    def load(self) -> list[dict]:
        return json.loads(self._file_path.read_text(encoding="utf-8"))

    def persist(self, rows: list[dict]) -> None:
        self._file_path.write_text(
            json.dumps(rows, indent=2, ensure_ascii=False) + "\n", encoding="utf-8"
        )

    def upsert(self, row: dict, match: Callable[[dict], bool]) -> None:
        """Replace the first row *match* accepts, otherwise append."""
        rows = self.load()
        for i, existing in enumerate(rows):
            if match(existing):
                rows[i] = row
                break
        else:
            rows.append(row)
        self.persist(rows)

    def find(self, match: Callable[[dict], bool]) -> dict | None:
        return next((row for row in self.load() if match(row)), None)

    def remove(self, match: Callable[[dict], bool]) -> int:
        rows = self.load()
        kept = [row for row in rows if not match(row)]
        if len(kept) != len(rows):
            self.persist(kept)
        return len(rows) - len(kept)

    def next_id(self) -> int:
        rows = self.load()
        if not rows:
            return 1
        return max(row["id"] for row in rows) + 1

    def _ensure_file(self) -> None:
        if not self._file_path.exists():
            self._file_path.parent.mkdir(parents=True, exist_ok=True)
            self._file_path.write_text("[]", encoding="utf-8")


# --- Value helpers ------------------------------------------------------------

def money_to_raw(money: Money) -> dict[str, str]:
    return {"amount": str(money.amount), "currency": money.currency}


def money_from_raw(raw: Any) -> Money:
    if isinstance(raw, dict):
        return Money(Decimal(raw["amount"]), raw.get("currency", DEFAULT_CURRENCY))
    return Money(Decimal(str(raw)))


def dt_to_raw(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def dt_from_raw(raw: str | None) -> datetime | None:
    return datetime.fromisoformat(raw) if raw else None
