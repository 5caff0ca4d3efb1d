"""
Conference Read Model — ストレージゲートウェイ

リードモデルのテーブルに対する汎用プリミティブ。
トランザクション境界は呼び出し側が session.begin() で管理する。

where は {カラム名: 値} の dict で、すべて AND で結合する。
"""

from collections.abc import Mapping
from typing import Any

from sqlalchemy import ColumnElement, Row, Table, and_, delete as sa_delete
from sqlalchemy import select, update as sa_update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

# ON CONFLICT DO NOTHING をサポートする方言
_UPSERT_INSERTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


def _condition(table: Table, where: Mapping[str, Any]) -> ColumnElement[bool]:
    return and_(*(table.c[name] == value for name, value in where.items()))


async def insert(
    session: AsyncSession,
    table: Table,
    row: Mapping[str, Any],
    *,
    ignore_conflict: bool = False,
) -> bool:
    """
    1 行を INSERT する。

    ignore_conflict=True の場合、主キーが既に存在すれば何もしない。
    実際に挿入されたかどうかを返す。
    """
    if not ignore_conflict:
        await session.execute(table.insert().values(**row))
        return True

    stmt = insert_ignoring_conflict(session.get_bind().dialect.name, table, row)
    result = await session.execute(stmt)
    return result.first() is not None


def insert_ignoring_conflict(dialect: str, table: Table, row: Mapping[str, Any]):
    """主キー衝突時は何もせず、挿入された行の主キーだけを返す INSERT 文を組み立てる。"""
    insert_factory = _UPSERT_INSERTS.get(dialect)
    if insert_factory is None:
        raise ValueError(f"ON CONFLICT is not supported for dialect {dialect!r}")

    return (
        insert_factory(table)
        .values(**row)
        .on_conflict_do_nothing(index_elements=list(table.primary_key.columns))
        .returning(*table.primary_key.columns)
    )


async def update(
    session: AsyncSession,
    table: Table,
    values: Mapping[str, Any],
    where: Mapping[str, Any],
    *,
    guard: ColumnElement[bool] | None = None,
) -> int:
    """
    where に一致する行を UPDATE し、更新件数を返す。

    values には table.c.x - 1 のような SQL 式も渡せる(相対更新)。
    guard を渡すと WHERE 句に追加され、条件付き更新になる。
    """
    condition = _condition(table, where)
    if guard is not None:
        condition = and_(condition, guard)
    result = await session.execute(sa_update(table).where(condition).values(**values))
    return result.rowcount


async def delete(session: AsyncSession, table: Table, where: Mapping[str, Any]) -> int:
    result = await session.execute(sa_delete(table).where(_condition(table, where)))
    return result.rowcount


async def query(session: AsyncSession, table: Table, where: Mapping[str, Any]) -> list[Row]:
    result = await session.execute(select(table).where(_condition(table, where)))
    return list(result.fetchall())
