"""
Row-level access filtering.

A board config may name a discriminator column. A principal's mapping to
that config carries a comma separated list of allowed discriminator
values. Rows are visible when their discriminator text matches one of
those values exactly; no mapping, or an empty list, means every row.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Protocol

from mondayease.integrations.monday.schemas import ColumnValue, MondayItem
from mondayease.storage.schemas import BoardConfig


class AccessMapping(Protocol):
    board_config_id: str
    filter_value: str | None


def parse_filter_values(filter_value: str | None) -> list[str]:
    """Split a stored filter value on commas, trimming and dropping blanks."""
    if not filter_value:
        return []
    return [v.strip() for v in filter_value.split(",") if v.strip()]


def row_matches(item: MondayItem, column_id: str, allowed: Iterable[str]) -> bool:
    cell = item.column(column_id)
    text = cell.display_text if cell else ""
    return text in set(allowed)


def visible_rows(
    rows: Sequence[MondayItem],
    config: BoardConfig,
    mapping: AccessMapping | None,
) -> list[MondayItem]:
    """Rows of one board visible under `mapping`, in their original order."""
    if mapping is None or not config.filter_column_id:
        return list(rows)
    allowed = set(parse_filter_values(mapping.filter_value))
    if not allowed:
        return list(rows)
    return [row for row in rows if row_matches(row, config.filter_column_id, allowed)]


def project_columns(item: MondayItem, visible_columns: Sequence[str]) -> list[ColumnValue]:
    """Cells of `item` on the allowlist; an empty allowlist keeps them all."""
    if not visible_columns:
        return list(item.column_values)
    keep = set(visible_columns)
    return [cv for cv in item.column_values if cv.id in keep]


def split_by_account(
    configs: Iterable[BoardConfig],
    account_id: str | None,
) -> tuple[list[BoardConfig], list[BoardConfig]]:
    """
    Split configs into (active, inactive) for the connected account.

    Inactive configs belong to another remote account, or are switched
    off, and are shown read-only.
    """
    active: list[BoardConfig] = []
    inactive: list[BoardConfig] = []
    for config in configs:
        (active if config.is_active_for(account_id) else inactive).append(config)
    return active, inactive


def mappings_by_config(mappings: Iterable[AccessMapping]) -> dict[str, AccessMapping]:
    """Index mappings by board config; the last one wins for duplicates."""
    return {m.board_config_id: m for m in mappings}
