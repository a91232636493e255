from __future__ import annotations
import aiosqlite
from datetime import datetime
from typing import List
from ..domain.models import ActionEvent


class SQLiteRepository:
    def __init__(self, path: str) -> None:
        self._path = path

    async def init(self) -> None:
        async with aiosqlite.connect(self._path) as db:
            await db.execute(
                """
                CREATE TABLE IF NOT EXISTS actions (
                    ts_utc TEXT NOT NULL,
                    actuator_id TEXT NOT NULL,
                    command TEXT NOT NULL,
                    value TEXT,
                    reason TEXT NOT NULL
                )
                """
            )
            await db.execute("CREATE INDEX IF NOT EXISTS idx_actions_ts ON actions(ts_utc)")
            await db.commit()

    async def insert_action(self, a: ActionEvent) -> None:
        async with aiosqlite.connect(self._path) as db:
            await db.execute(
                "INSERT INTO actions(ts_utc,actuator_id,command,value,reason) VALUES (?,?,?,?,?)",
                (a.ts_utc.isoformat(), a.actuator_id, a.command, a.value, a.reason),
            )
            await db.commit()

    async def query_actions(self, start_ts: str, end_ts: str, limit: int) -> List[ActionEvent]:
        async with aiosqlite.connect(self._path) as db:
            cur = await db.execute(
                """
                SELECT ts_utc,actuator_id,command,value,reason
                FROM actions
                WHERE ts_utc >= ? AND ts_utc <= ?
                ORDER BY ts_utc DESC
                LIMIT ?
                """,
                (start_ts, end_ts, limit),
            )
            rows = await cur.fetchall()
        out: list[ActionEvent] = []
        for ts, aid, command, value, reason in rows:
            out.append(
                ActionEvent(
                    ts_utc=datetime.fromisoformat(ts),
                    actuator_id=aid,
                    command=command,
                    value=value,
                    reason=reason,
                )
            )
        return list(reversed(out))
