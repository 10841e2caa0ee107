"""Access ORM columns by their persisted (upper-case) field names."""

from typing import Any, Iterable

from sqlalchemy import inspect


class PersistedFieldsMixin:
    """Bridges workbook-style field names and Python attribute names.

    Columns are stored under names like ``DEMAND_7A_ACCOUNT_1_EE`` while the
    mapped attribute is the lower-case form.
    """

    def get_field(self, name: str) -> Any:
        return getattr(self, name.lower())

    def snapshot(self, names: Iterable[str]) -> dict[str, Any]:
        return {name: getattr(self, name.lower()) for name in names}

    def apply(self, values: dict[str, Any]) -> None:
        for name, value in values.items():
            setattr(self, name.lower(), value)

    def to_record(self) -> dict[str, Any]:
        """Every mapped column keyed by its column name."""
        return {
            attr.columns[0].name: getattr(self, attr.key)
            for attr in inspect(type(self)).column_attrs
        }
