"""Result writer interfaces and implementations."""

from __future__ import annotations

import csv
import json
import sqlite3
from abc import ABC, abstractmethod
from dataclasses import asdict
from pathlib import Path
from typing import Any, Dict, List, Sequence

from .models import ExtractionResult


class ResultWriter(ABC):
    """Base interface for output adapters."""

    @abstractmethod
    def write(self, result: ExtractionResult) -> None:
        """Persist an extraction result to the desired sink."""


# --------------------------------------------------------------------------- #
# Console and file writers
# --------------------------------------------------------------------------- #
class PrintWriter(ResultWriter):
    def write(self, result: ExtractionResult) -> None:
        print(f"{result.location}: {len(result.items)} items, {len(result.categories)} categories ({result.status.value})")
        current = None
        for item in result.items:
            if item.category != current:
                current = item.category
                print(f"\n[{current}]")
            station = f" @ {item.station}" if item.station and item.station != item.category else ""
            print(f"  - {item.name}{station}")


class JsonWriter(ResultWriter):
    def __init__(self, path: str = "menu.json") -> None:
        self.path = Path(path)

    def write(self, result: ExtractionResult) -> None:
        payload = {
            "location": result.location,
            "status": result.status.value,
            "stage": result.stage.value if result.stage else None,
            "categories": [asdict(category) for category in result.categories],
            "items": result.to_records(),
        }
        with self.path.open("w", encoding="utf-8") as handle:
            json.dump(payload, handle, ensure_ascii=False, indent=2)


class CsvWriter(ResultWriter):
    def __init__(self, path: str = "menu.csv") -> None:
        self.path = Path(path)

    def write(self, result: ExtractionResult) -> None:
        records = result.to_records()
        if not records:
            return
        columns = _collect_columns(records)
        with self.path.open("w", newline="", encoding="utf-8") as handle:
            writer = csv.DictWriter(handle, fieldnames=columns)
            writer.writeheader()
            for record in records:
                writer.writerow(_normalize_record(record, columns))


class SQLiteWriter(ResultWriter):
    """Append menu items to a SQLite table, one TEXT column per item field."""

    def __init__(self, db_path: str = "menu.db", table: str = "menu_items") -> None:
        self.db_path = db_path
        self.table = table

    def write(self, result: ExtractionResult) -> None:
        records = [{"location": result.location, **record} for record in result.to_records()]
        if not records:
            return

        columns = _collect_columns(records)
        rows = [[_normalize_cell(record.get(col)) for col in columns] for record in records]
        table = _quote_identifier(self.table)
        column_definitions = ", ".join(f"{_quote_identifier(col)} TEXT" for col in columns)
        column_list = ", ".join(_quote_identifier(col) for col in columns)
        placeholders = ", ".join("?" for _ in columns)

        connection = sqlite3.connect(self.db_path)
        try:
            connection.execute(f"CREATE TABLE IF NOT EXISTS {table} ({column_definitions})")
            connection.executemany(f"INSERT INTO {table} ({column_list}) VALUES ({placeholders})", rows)
            connection.commit()
        finally:
            connection.close()


# --------------------------------------------------------------------------- #
# Helper utilities
# --------------------------------------------------------------------------- #
def _quote_identifier(identifier: str) -> str:
    safe = identifier.replace('"', '""')
    return f'"{safe}"'


def _collect_columns(records: List[Dict[str, Any]]) -> List[str]:
    columns: List[str] = []
    for record in records:
        for key in record.keys():
            if key not in columns:
                columns.append(key)
    return columns


def _normalize_record(record: Dict[str, Any], columns: Sequence[str]) -> Dict[str, str]:
    return {column: _normalize_cell(record.get(column)) for column in columns}


def _normalize_cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (str, int, float)):
        return str(value)
    return json.dumps(value, ensure_ascii=False)
