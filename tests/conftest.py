"""
Pytest fixtures for the split-bill ledger test suite.

Provides:
- Structured logging setup and a ``captured_logs`` helper
- A deterministic clock
- A three-member group (alice, bob, carol)
- In-memory and SQLite-backed repositories; ``repo`` runs a test against both
- Service fixtures wired to ``repo``

The SQLite engine is created once per session.  Each test gets its own
connection-level transaction that is rolled back at teardown.
"""

import json
import logging
from collections.abc import Generator
from datetime import date
from decimal import Decimal
from io import StringIO
from uuid import uuid4

import pytest
from sqlalchemy.orm import Session

from splitbill_kernel.db.engine import (
    create_tables,
    init_engine_from_url,
    reset_engine,
)
from splitbill_kernel.db.immutability import register_immutability_listeners
from splitbill_kernel.db.repository import SqlLedgerRepository
from splitbill_kernel.domain.clock import DeterministicClock
from splitbill_kernel.domain.dtos import MemberRecord, SplitSpec
from splitbill_kernel.domain.memory_repository import InMemoryLedgerRepository
from splitbill_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from splitbill_kernel.services import (
    ExpenseService,
    ReconciliationService,
    SettlementRecorder,
)


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture splitbill_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, expense_service):
            expense_service.add_expense(...)
            logs = captured_logs()
            assert any(r["message"] == "expense_added" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("splitbill_kernel")
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)


# =============================================================================
# Domain fixtures
# =============================================================================


@pytest.fixture
def clock() -> DeterministicClock:
    return DeterministicClock()


@pytest.fixture
def group_id():
    return uuid4()


@pytest.fixture
def members(group_id) -> dict[str, MemberRecord]:
    """alice, bob and carol in one group."""
    return {
        name: MemberRecord(id=uuid4(), group_id=group_id, name=name)
        for name in ("alice", "bob", "carol")
    }


# =============================================================================
# Database fixtures
# =============================================================================


@pytest.fixture(scope="session")
def db_engine():
    """Single in-memory SQLite engine for the whole test session."""
    eng = init_engine_from_url("sqlite://")
    create_tables()
    register_immutability_listeners()
    yield eng
    reset_engine()


@pytest.fixture
def session(db_engine) -> Generator[Session, None, None]:
    """
    Session joined to an outer connection transaction.

    Anything the test writes (including "commits") is rolled back at
    teardown.
    """
    conn = db_engine.connect()
    trans = conn.begin()
    sess = Session(bind=conn, join_transaction_mode="create_savepoint", expire_on_commit=False)
    yield sess
    sess.close()
    if trans.is_active:
        trans.rollback()
    conn.close()


# =============================================================================
# Repository fixtures
# =============================================================================


@pytest.fixture
def memory_repo(members) -> InMemoryLedgerRepository:
    repo = InMemoryLedgerRepository()
    for member in members.values():
        repo.add_member(member)
    return repo


@pytest.fixture
def sql_repo(session, members) -> SqlLedgerRepository:
    repo = SqlLedgerRepository(session)
    for member in members.values():
        repo.add_member(member)
    return repo


@pytest.fixture(params=["memory", "sql"])
def repo(request):
    """The same test against both repository implementations."""
    if request.param == "memory":
        return request.getfixturevalue("memory_repo")
    return request.getfixturevalue("sql_repo")


# =============================================================================
# Service fixtures
# =============================================================================


@pytest.fixture
def expense_service(repo, clock) -> ExpenseService:
    return ExpenseService(repo, clock, currency_symbol="$")


@pytest.fixture
def settlement_recorder(repo, clock) -> SettlementRecorder:
    return SettlementRecorder(repo, clock, currency_symbol="$")


@pytest.fixture
def reconciliation(repo, clock) -> ReconciliationService:
    return ReconciliationService(repo, clock)


@pytest.fixture
def add_equal_expense(expense_service, group_id, members, clock):
    """
    Record an expense split evenly (to the cent) between the named members.

    Usage::

        expense = add_equal_expense("dinner", "90", "alice", ["alice", "bob", "carol"])
    """

    def _add(description, amount, payer, participants, expense_date=None, category=None):
        total = Decimal(amount)
        share = (total / len(participants)).quantize(Decimal("0.01"))
        shares = [share] * len(participants)
        shares[0] += total - sum(shares)
        clock.advance(60)
        return expense_service.add_expense(
            group_id=group_id,
            description=description,
            amount=total,
            paid_by=members[payer].id,
            expense_date=expense_date or date(2024, 1, 1),
            splits=[
                SplitSpec(members[name].id, s) for name, s in zip(participants, shares)
            ],
            category=category,
        )

    return _add
