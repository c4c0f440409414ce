import argparse
import asyncio
import logging
import sys
from pathlib import Path

from config.config import ConfigurationError, SystemConfig, load_config, save_config
from ledger.errors import LedgerError
from ledger.local_ledger import LocalLedger
from pool.client import ShieldedPoolClient
from utils.utils import (
    check_command_exists,
    create_performance_report,
    format_duration,
    setup_logging,
)
from wallet.account import Account
from wallet.errors import WalletError
from wallet.tokens import TokenRegistry
from zk.errors import ZKError
from zk.prover import SnarkjsProver

logger = logging.getLogger(__name__)

DEMO_TOKEN = "0x" + "11" * 20


def run_address(config: SystemConfig):
    registry = TokenRegistry(config.protocol.max_tokens)
    account = Account(registry)

    print("=" * 80)
    print("NEW SHIELDED ACCOUNT")
    print("=" * 80)
    print(f"  Address:     0x{account.address}")
    print(f"  Private key: {account.private_key:#066x}")
    print("\nKeep the private key secret: it spends every note paid to this address.")


def run_config(config: SystemConfig, path: Path):
    save_config(config, path)
    print(f"Configuration written to {path}")


async def run_demo(config: SystemConfig) -> bool:
    print("=" * 80)
    print("SHIELDED POOL - LOCAL LEDGER DEMONSTRATION")
    print("=" * 80)

    if not check_command_exists(config.prover.snarkjs_command[0]):
        print(f"\n {config.prover.snarkjs_command[0]} not found in PATH")
        return False

    ledger = LocalLedger(config.protocol)
    ledger.add_token(DEMO_TOKEN)
    client = ShieldedPoolClient(ledger, SnarkjsProver(config.prover), config)

    try:
        await client.initialize()
        alice = client.create_account()
        bob = client.create_account()

        print(f"\n  Token:        {DEMO_TOKEN}")
        print(f"  Tree depth:   {config.protocol.tree_depth}")
        print(f"  Proof system: {config.prover.protocol}")

        print("\nDepositing 100 units to alice...")
        await client.deposit(alice, DEMO_TOKEN, 100)
        print("Depositing 50 units to alice...")
        await client.deposit(alice, DEMO_TOKEN, 50)

        print("Alice pays bob 120 units and withdraws 10...")
        await client.transfer(alice, bob.address, DEMO_TOKEN, 120, withdraw=10)

        print("\nBALANCES:")
        for name, account in (("alice", alice), ("bob", bob)):
            print(f"  {name}: {await client.balance(account, DEMO_TOKEN)}")
        print(f"  pool custody: {ledger.custody()[DEMO_TOKEN]}")
        print(f"  notes in tree: {client.observer.tree.num_leaves}")

        summary = client.monitor.get_summary()
        print(f"\nProving time: {format_duration(summary['total_duration'])}")
        print(create_performance_report(client.monitor))

        metrics_path = config.log_dir / "metrics.json"
        client.monitor.save_metrics(metrics_path)
        print(f"Metrics saved to {metrics_path}")
        return True

    except (ZKError, WalletError, LedgerError) as e:
        logger.error(f"Demo failed: {e}")
        print(f"\n Demo failed: {e}")
        return False
    finally:
        client.close()


def main():
    parser = argparse.ArgumentParser(
        description='Shielded multi-asset pool client')
    parser.add_argument('--config', type=str,
                        default='config.yaml', help='Config file path')
    parser.add_argument(
        '--mode', choices=['address', 'config', 'demo'], default='demo')
    parser.add_argument('--log-level', type=str, default=None)

    args = parser.parse_args()

    config = load_config(Path(args.config))
    try:
        config.validate()
    except ConfigurationError as e:
        print(f"Invalid configuration: {e}")
        sys.exit(2)

    setup_logging(args.log_level or config.log_level, log_dir=config.log_dir)

    if args.mode == 'address':
        run_address(config)
    elif args.mode == 'config':
        run_config(config, Path(args.config))
    elif args.mode == 'demo':
        success = asyncio.run(run_demo(config))
        sys.exit(0 if success else 1)


if __name__ == "__main__":
    main()
