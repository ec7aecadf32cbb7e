import json
import logging
import datetime as dt
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol, Tuple, Union

from pydantic import ValidationError

from app.core.config import settings
from app.models.expense import Expense, ExpenseCreate, ExpenseFilters, ExpenseUpdate

logger = logging.getLogger(__name__)

EXPENSES_KEY = "expense-tracker-expenses"


class StorageError(RuntimeError):
    """Stored state could not be read; raised instead of overwriting it."""


class KeyValueStore(Protocol):
    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> None: ...


class InMemoryKeyValueStore:
    """Dict-backed store, used for tests and when no storage path is configured."""

    def __init__(self) -> None:
        self._data: Dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)


class JsonFileKeyValueStore:
    """
    Persists every key in a single JSON object on disk. The whole file is
    rewritten on each write; a missing file reads as an empty store.
    An unreadable file raises StorageError and is never rewritten.
    """

    def __init__(self, path: Union[str, Path]) -> None:
        self._path = Path(path)

    def _load(self) -> Dict[str, str]:
        if not self._path.exists():
            return {}
        try:
            with self._path.open(encoding="utf-8") as fp:
                data = json.load(fp)
        except (OSError, json.JSONDecodeError) as e:
            raise StorageError(f"Cannot read {self._path}: {e}") from e
        if not isinstance(data, dict):
            raise StorageError(f"Cannot read {self._path}: expected a JSON object")
        return data

    def _dump(self, data: Dict[str, str]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        with self._path.open("w", encoding="utf-8") as fp:
            json.dump(data, fp, ensure_ascii=False)

    def get(self, key: str) -> Optional[str]:
        return self._load().get(key)

    def set(self, key: str, value: str) -> None:
        data = self._load()
        data[key] = value
        self._dump(data)

    def delete(self, key: str) -> None:
        data = self._load()
        if data.pop(key, None) is not None:
            self._dump(data)


class ExpenseRepository:
    """
    Expense list kept as one JSON array under a single store key.

    Records that fail validation are logged, hidden from readers and written
    back untouched. Mutations raise StorageError when the payload itself
    cannot be decoded, so unreadable history is never replaced.
    """

    def __init__(self, store: KeyValueStore, key: str = EXPENSES_KEY) -> None:
        self._store = store
        self._key = key

    def _read_records(self) -> Tuple[List[Expense], List[Any]]:
        raw = self._store.get(self._key)
        if not raw:
            return [], []
        try:
            records = json.loads(raw)
        except json.JSONDecodeError as e:
            raise StorageError(f"Stored expenses are not valid JSON: {e}") from e
        if not isinstance(records, list):
            raise StorageError("Stored expenses are not a JSON array")

        expenses: List[Expense] = []
        rejected: List[Any] = []
        for record in records:
            try:
                expenses.append(Expense.model_validate(record))
            except ValidationError as e:
                logger.error(f"Skipping invalid stored expense: {e}")
                rejected.append(record)
        return expenses, rejected

    def _read(self) -> List[Expense]:
        try:
            return self._read_records()[0]
        except StorageError as e:
            logger.error(f"Error loading expenses from storage: {e}")
            return []

    def _write(self, expenses: List[Expense], rejected: List[Any]) -> None:
        payload = [exp.model_dump(mode="json") for exp in expenses] + rejected
        self._store.set(self._key, json.dumps(payload, ensure_ascii=False))

    def is_readable(self) -> bool:
        try:
            self._read_records()
        except StorageError:
            return False
        return True

    def list_expenses(self, filters: Optional[ExpenseFilters] = None) -> List[Expense]:
        expenses = self._read()
        if filters is None:
            return expenses
        return [exp for exp in expenses if filters.matches(exp)]

    def get_expense(self, expense_id: str) -> Optional[Expense]:
        return next((exp for exp in self._read() if exp.id == expense_id), None)

    def add_expense(self, expense: ExpenseCreate) -> Expense:
        created = expense.to_expense()
        expenses, rejected = self._read_records()
        expenses.append(created)
        self._write(expenses, rejected)
        return created

    def update_expense(self, expense_id: str, updates: ExpenseUpdate) -> Optional[Expense]:
        """Apply a partial update. Returns the updated expense or None."""
        changes = updates.model_dump(exclude_unset=True, exclude_none=True)
        expenses, rejected = self._read_records()
        for index, exp in enumerate(expenses):
            if exp.id != expense_id:
                continue
            changes["updated_at"] = dt.datetime.now(dt.timezone.utc)
            updated = Expense.model_validate({**exp.model_dump(), **changes})
            expenses[index] = updated
            self._write(expenses, rejected)
            return updated
        return None

    def delete_expense(self, expense_id: str) -> bool:
        expenses, rejected = self._read_records()
        remaining = [exp for exp in expenses if exp.id != expense_id]
        if len(remaining) == len(expenses):
            return False
        self._write(remaining, rejected)
        return True

    def clear(self) -> None:
        self._store.delete(self._key)


def build_store(path: str = "") -> KeyValueStore:
    if path:
        logger.info(f"Using JSON expense storage at {path}")
        return JsonFileKeyValueStore(path)
    return InMemoryKeyValueStore()


expense_repository = ExpenseRepository(build_store(settings.STORAGE_PATH))


def get_expense_repository() -> ExpenseRepository:
    return expense_repository
