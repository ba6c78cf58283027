"""
End-to-End Tests
================
Full session: real co-processor (TenSEAL BFV), contract and local chain.
"""

import asyncio

import pytest

from grid_ledger.config import GridLedgerConfig
from grid_ledger.errors import ErrorKind
from grid_ledger.session import build_session


async def ready_session(**overrides):
    session = build_session(GridLedgerConfig(**overrides))
    await session.store.initialize_encryption()
    await session.store.refresh()
    return session


class TestGridLedgerSession:

    def test_create_verify_analyze(self):
        """Test create verify analyze"""
        async def scenario():
            session = await ready_session()
            store = session.store

            created = await store.create("Plant A", 600, 1000)
            before = store.load_view(created.value)
            verified = await store.request_verification(created.value)
            return session, created, before, verified

        session, created, before, verified = asyncio.run(scenario())
        store = session.store
        record = store.get(created.value)

        assert created.ok
        assert before.label == "FHE Encrypted"
        assert verified.ok
        assert verified.value == 600
        assert record.verified is True
        assert record.clear_load == 600
        assert record.creator == session.config.account_address
        assert store.load_view(record.id).label == "600 MW (Verified)"

        analysis = store.analyze(record.id)
        assert (analysis.balance, analysis.efficiency, analysis.stability,
                analysis.risk, analysis.optimization) == (60, 60, 90, 30, 40)

        assert session.security_logger.verify_no_violations()
        report = session.security_logger.generate_audit_report()
        assert report['client_store_audit']['provisional_committed'] is False
        assert set(report['entities']) == {'client', 'coprocessor', 'ledger'}

    def test_concurrent_verification_single_winner(self):
        """Test concurrent verification single winner"""
        async def scenario():
            session = await ready_session()
            record_id = (await session.store.create("Plant A", 600, 1000)).value
            outcomes = await asyncio.gather(
                session.store.request_verification(record_id),
                session.store.request_verification(record_id),
            )
            return session, record_id, outcomes

        session, record_id, outcomes = asyncio.run(scenario())

        assert all(o.ok for o in outcomes)
        assert sorted(str(o.kind) for o in outcomes) == sorted(
            [str(None), str(ErrorKind.ALREADY_VERIFIED)]
        )
        assert all(o.value == 600 for o in outcomes)
        accepted = [e for e in session.security_logger.get_entries_for_entity('ledger')
                    if e.details.get('accepted')]
        assert len(accepted) == 1
        assert session.store.get(record_id).clear_load == 600

    def test_concurrent_creates(self):
        """Test concurrent creates"""
        async def scenario():
            session = await ready_session()
            outcomes = await asyncio.gather(
                session.store.create("Plant A", 100, 1000),
                session.store.create("Plant B", 200, 2000),
            )
            return session, outcomes

        session, outcomes = asyncio.run(scenario())

        assert all(o.ok for o in outcomes)
        assert outcomes[0].value != outcomes[1].value
        assert session.store.statistics().total == 2
        assert session.store.statistics().average_capacity == pytest.approx(1500.0)

    def test_user_rejection(self):
        """Test user rejection"""
        async def scenario():
            session = await ready_session()
            session.connect(session.config.account_address, approve=lambda request: False)
            return session, await session.store.create("Plant A", 600, 1000)

        session, outcome = asyncio.run(scenario())

        assert outcome.kind is ErrorKind.TRANSACTION_REJECTED
        assert session.contract.get_all_ids() == []

    def test_encryption_not_initialized(self):
        """Test encryption not initialized"""
        async def scenario():
            session = build_session(GridLedgerConfig())
            return await session.store.create("Plant A", 600, 1000)

        outcome = asyncio.run(scenario())
        assert outcome.kind is ErrorKind.ENCRYPTION_UNAVAILABLE
        assert outcome.message == "FHE co-processor is not initialized"

    def test_disconnected(self):
        """Test disconnected"""
        async def scenario():
            session = await ready_session()
            session.disconnect()
            return await session.store.refresh()

        outcome = asyncio.run(scenario())
        assert outcome.kind is ErrorKind.NOT_CONNECTED

    def test_no_account_configured(self):
        """Test no account configured"""
        async def scenario():
            session = build_session(GridLedgerConfig(account_address=None))
            return await session.store.initialize_encryption()

        outcome = asyncio.run(scenario())
        assert outcome.kind is ErrorKind.NOT_CONNECTED

    def test_block_time_delays_finality(self):
        """Test block time delays finality"""
        async def scenario():
            session = await ready_session(block_time_seconds=0.01)
            outcome = await session.store.create("Plant A", 600, 1000)
            return session, outcome

        session, outcome = asyncio.run(scenario())
        assert outcome.ok
        assert session.chain.block_number == 1
