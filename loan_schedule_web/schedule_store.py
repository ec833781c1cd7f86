"""Database persistence for loan schedule tables.

Each loan is stored as the non-blank cells of its table in a single
``schedule_cells`` table keyed by (loan id, row, column). Cell values are
JSON with Decimals and dates tagged, so any SQLAlchemy-compatible database
works. SQLite is the default for local development.
"""

from __future__ import annotations

import json
import threading
from typing import Any, Dict, List, Sequence, Tuple

from sqlalchemy import Column, Integer, String, Text, and_, create_engine, delete, func, select
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from loan_schedule.layout import a1_to_cell, decode_cell, encode_cell

Base = declarative_base()

IN_MEMORY_URLS = ("sqlite://", "sqlite:///:memory:")


class ScheduleCellModel(Base):
    __tablename__ = "schedule_cells"

    loan_id = Column(String(64), primary_key=True)
    row_index = Column(Integer, primary_key=True)
    column_index = Column(Integer, primary_key=True)
    value_json = Column(Text, nullable=False)


def _is_blank(value: Any) -> bool:
    return value is None or value == ""


class ScheduleStore:
    """Database-backed storage for all loans, with one lock per loan."""

    def __init__(self, url: str) -> None:
        if url in IN_MEMORY_URLS:
            self._engine = create_engine(
                url, future=True, connect_args={"check_same_thread": False}, poolclass=StaticPool
            )
        else:
            self._engine = create_engine(url, future=True)
        Base.metadata.create_all(self._engine)
        self._session_factory = sessionmaker(self._engine, expire_on_commit=False, future=True)
        self._locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def table(self, loan_id: str) -> "SqlTableStore":
        return SqlTableStore(self._session_factory, loan_id)

    def lock_for(self, loan_id: str) -> threading.Lock:
        """The lock serializing operations on ``loan_id``."""
        with self._locks_guard:
            lock = self._locks.get(loan_id)
            if lock is None:
                lock = self._locks[loan_id] = threading.Lock()
            return lock

    def exists(self, loan_id: str) -> bool:
        with self._session_factory() as session:
            count = session.execute(
                select(func.count()).select_from(ScheduleCellModel).where(ScheduleCellModel.loan_id == loan_id)
            ).scalar_one()
            return count > 0


class SqlTableStore:
    """The cells of one loan's table."""

    def __init__(self, session_factory, loan_id: str) -> None:
        self._session_factory = session_factory
        self.loan_id = loan_id

    def _range(self, start_row: int, start_col: int, num_rows: int, num_cols: int):
        return and_(
            ScheduleCellModel.loan_id == self.loan_id,
            ScheduleCellModel.row_index >= start_row,
            ScheduleCellModel.row_index < start_row + num_rows,
            ScheduleCellModel.column_index >= start_col,
            ScheduleCellModel.column_index < start_col + num_cols,
        )

    def _model(self, row: int, col: int, value: Any) -> ScheduleCellModel:
        return ScheduleCellModel(
            loan_id=self.loan_id,
            row_index=row,
            column_index=col,
            value_json=json.dumps(encode_cell(value)),
        )

    def get_values(self, start_row: int, start_col: int, num_rows: int, num_cols: int) -> List[List[Any]]:
        matrix: List[List[Any]] = [[""] * num_cols for _ in range(num_rows)]
        with self._session_factory() as session:
            cells = session.execute(
                select(ScheduleCellModel).where(self._range(start_row, start_col, num_rows, num_cols))
            ).scalars()
            for cell in cells:
                matrix[cell.row_index - start_row][cell.column_index - start_col] = decode_cell(
                    json.loads(cell.value_json)
                )
        return matrix

    def set_values(self, start_row: int, start_col: int, matrix: Sequence[Sequence[Any]]) -> None:
        if not matrix:
            return
        num_cols = max(len(values) for values in matrix)
        with self._session_factory() as session:
            session.execute(delete(ScheduleCellModel).where(self._range(start_row, start_col, len(matrix), num_cols)))
            session.add_all(
                self._model(start_row + i, start_col + j, value)
                for i, values in enumerate(matrix)
                for j, value in enumerate(values)
                if not _is_blank(value)
            )
            session.commit()

    def get_value(self, address: str) -> Any:
        row, col = a1_to_cell(address)
        with self._session_factory() as session:
            cell = session.get(ScheduleCellModel, (self.loan_id, row, col))
            return decode_cell(json.loads(cell.value_json)) if cell else ""

    def set_value(self, address: str, value: Any) -> None:
        row, col = a1_to_cell(address)
        self.set_values(row, col, [[value]])

    def insert_row_after(self, row: int) -> None:
        """Shift every row below ``row`` down by one."""
        with self._session_factory() as session:
            below = session.execute(
                select(ScheduleCellModel).where(
                    ScheduleCellModel.loan_id == self.loan_id, ScheduleCellModel.row_index > row
                )
            ).scalars().all()
            shifted: List[Tuple[int, int, str]] = [(c.row_index + 1, c.column_index, c.value_json) for c in below]
            for cell in below:
                session.delete(cell)
            session.flush()
            session.add_all(
                ScheduleCellModel(loan_id=self.loan_id, row_index=r, column_index=c, value_json=v)
                for r, c, v in shifted
            )
            session.commit()

    def clear(self, start_row: int, start_col: int, num_rows: int, num_cols: int) -> None:
        with self._session_factory() as session:
            session.execute(delete(ScheduleCellModel).where(self._range(start_row, start_col, num_rows, num_cols)))
            session.commit()


def create_store_from_env(url: str | None) -> ScheduleStore:
    return ScheduleStore(url or "sqlite:///loan_schedule.db")
