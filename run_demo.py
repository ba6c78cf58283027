"""
Confidential Grid Load Ledger - Demo Runner
===========================================
Single entry point to run the system.

Usage:
    python run_demo.py              # Run the HTTP API
    python run_demo.py --cli        # Run CLI walkthrough
"""

import argparse
import asyncio
import logging

from grid_ledger.config import GridLedgerConfig
from grid_ledger.logger import configure_logging
from grid_ledger.session import build_session


log = logging.getLogger("grid_ledger.demo")


async def cli_walkthrough(config: GridLedgerConfig):
    session = build_session(config)
    store = session.store

    print("=" * 70)
    print("Confidential Grid Load Ledger")
    print("FHE-encrypted load values with on-chain verification (BFV/TenSEAL)")
    print("=" * 70)

    print("\n[1] INITIALIZATION")
    print("-" * 40)
    outcome = await store.initialize_encryption()
    print(f"  Account: {store.account}")
    print(f"  Co-processor: {outcome.message}")
    await store.refresh()

    print("\n[2] CREATE")
    print("-" * 40)
    created = await store.create("Plant A", 600, 1000)
    print(f"  {created.message}")
    if not created.ok:
        return
    record_id = created.value
    record = store.get(record_id)
    print(f"  Record: {record_id} capacity={record.capacity} MW")
    print(f"  Load: {store.load_view(record_id).label}")

    print("\n[3] VERIFY")
    print("-" * 40)
    verified = await store.request_verification(record_id)
    print(f"  {verified.message}")
    print(f"  Load: {store.load_view(record_id).label}")

    again = await store.request_verification(record_id)
    print(f"  Second request: {again.message}")

    print("\n[4] ANALYSIS")
    print("-" * 40)
    for key, value in store.analyze(record_id).to_dict().items():
        print(f"  {key}: {value}")
    stats = store.statistics()
    print(f"  Records: {stats.total}, verified: {stats.verified}, "
          f"avg capacity: {stats.average_capacity:.1f} MW")

    print("\n[5] SECURITY AUDIT")
    print("-" * 40)
    audit = session.security_logger.generate_audit_report()
    print(f"  Total operations logged: {audit['total_log_entries']}")
    print(f"  Entities: {audit['entities']}")
    print(f"  Violations: {len(audit['security_violations'])}")
    print(f"\n  CONCLUSION: {audit['conclusion']}")

    print("\n" + "=" * 70)
    print("Demo Complete!")
    print("=" * 70)


def run_cli_demo(config: GridLedgerConfig):
    """Run command-line walkthrough"""
    asyncio.run(cli_walkthrough(config))


def run_server(config: GridLedgerConfig):
    """Run the HTTP API"""
    from grid_ledger.server import run_server as start_uvicorn

    log.info("Starting server on http://%s:%d", config.host, config.port)
    start_uvicorn(config)


def main():
    parser = argparse.ArgumentParser(
        description="Confidential Grid Load Ledger Demo"
    )
    parser.add_argument('--cli', action='store_true',
                        help='Run command-line walkthrough (no web server)')
    parser.add_argument('--port', type=int, default=None,
                        help='Web server port (default: 8000)')

    args = parser.parse_args()
    configure_logging()

    overrides = {'port': args.port} if args.port is not None else {}
    config = GridLedgerConfig.from_env(**overrides)

    if args.cli:
        run_cli_demo(config)
    else:
        run_server(config)


if __name__ == "__main__":
    main()
