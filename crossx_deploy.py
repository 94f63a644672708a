#!/usr/bin/env python3
"""
CrossX - Multi-chain Deployer
Deploys a published (or locally compiled) contract to several chains at one
predicted address, paying all relay fees from a single origin transaction.

Usage:
- Set PRIVATE_KEY and CROSSX_FACTORY_ADDRESS in your .env
- python crossx_deploy.py --link https://crossx.vercel.app/deploy/<cid> --salt 42 --chains base-goerli,optimism-goerli
- python crossx_deploy.py --build artifacts/contracts --salt 42 --chains avalanche-fuji
- python crossx_deploy.py --status <origin tx hash>
- python crossx_deploy.py --list-chains
"""

import argparse
import asyncio
import sys
from typing import List, Optional

from web3 import Web3

from crossx.config import load_config, setup_logging
from crossx.database import DeploymentDatabase
from crossx.errors import CrossXError
from crossx.models import DeploymentState
from crossx.orchestrator import DeploymentSession
from crossx.services import DestinationObserver, IPFSService
from crossx.services.artifact_locator import locate
from crossx.services.link_generator import build_explorer_link, resolve_link


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Deploy one bytecode to many chains at one address")
    source = parser.add_mutually_exclusive_group()
    source.add_argument("--link", help="Deployment link or content ID printed by crossx_publish.py")
    source.add_argument("--build", help="Local build output directory to take the newest artifact from")
    source.add_argument("--status", metavar="TX_HASH", help="Show destination status of a past deployment")
    source.add_argument("--list-chains", action="store_true", help="Show the configured destination chains")
    parser.add_argument("--salt", help="Salt selecting the deployment address")
    parser.add_argument("--chains", default="", help="Comma-separated destination chain names")
    parser.add_argument("--offline", action="store_true", help="Predict the address locally (CREATE2)")
    parser.add_argument("--wait", type=float, default=0, help="Seconds to wait for origin confirmation")
    parser.add_argument("--yes", action="store_true", help="Skip the confirmation prompt")
    return parser.parse_args(argv)


def print_chains(config):
    print(f"🌐 Origin chain: {config.origin_chain}")
    for chain in config.chains:
        print(f"   • {chain.name}: domain {chain.domain_id}, "
              f"relay fee {Web3.from_wei(chain.relay_fee, 'ether')} ETH")


async def show_status(config, tx_hash: str) -> int:
    db = DeploymentDatabase(config.db_path)
    deployment = db.get_deployment(tx_hash)
    if not deployment:
        print(f"❌ No deployment recorded for {tx_hash}")
        return 1

    print(f"📋 Deployment {tx_hash}")
    print(f"   Origin status: {deployment['status']}")
    print(f"   Address: {deployment['predicted_address']}")
    print(f"   Explorer: {build_explorer_link(tx_hash)}")

    observer = DestinationObserver(config.chains)
    try:
        results = await observer.check(deployment['predicted_address'], deployment['destinations'])
    except CrossXError as e:
        print(f"❌ Could not check destinations: {e}")
        return 1
    for chain, deployed in results.items():
        label = {True: "✅ deployed", False: "⏳ not yet", None: "❔ unknown"}[deployed]
        print(f"   {chain}: {label}")
    return 0


async def run(args: argparse.Namespace) -> int:
    try:
        config = load_config(require_wallet=not (args.list_chains or args.status))
    except CrossXError as e:
        print(f"\n❌ CONFIGURATION ERROR: {e}")
        print("   Please ensure you have a .env file with all required variables.")
        return 1

    setup_logging()

    if args.list_chains:
        print_chains(config)
        return 0
    if args.status:
        return await show_status(config, args.status)

    destinations = [name.strip() for name in args.chains.split(",") if name.strip()]

    try:
        if args.link:
            print("🔗 Resolving deployment link...")
            artifact = await resolve_link(args.link, IPFSService.from_config(config))
        else:
            artifact = locate(args.build or "artifacts/contracts")
    except CrossXError as e:
        print(f"❌ Could not load artifact: {e}")
        return 1

    db = DeploymentDatabase(config.db_path)
    session = DeploymentSession.from_config(config, artifact.bytecode, db=db, offline=args.offline)

    try:
        print(f"\n🔧 Preparing deployment of {artifact.name}")
        snapshot = await session.request_address(args.salt)
        if snapshot.state == DeploymentState.FAILED:
            print(f"❌ Address generation failed: {snapshot.error_kind.value}: {snapshot.error_message}")
            return 1
        print(f"🎯 Predicted address: {snapshot.predicted_address}")

        try:
            quotes = session.aggregator.quote(destinations)
        except CrossXError as e:
            print(f"❌ {e}")
            return 1
        total = sum(q.fee for q in quotes)
        for quote in quotes:
            print(f"   • {quote.chain} (domain {quote.domain_id}): {Web3.from_wei(quote.fee, 'ether')} ETH")
        print(f"💰 Total relay fee: {Web3.from_wei(total, 'ether')} ETH")

        if not args.yes:
            confirm = input("\n⚠️  This will send a real transaction on the origin chain! Continue? (y/N): ")
            if confirm.lower() != 'y':
                print("❌ Deployment cancelled")
                return 1

        snapshot = await session.request_deploy(destinations)
        if snapshot.state == DeploymentState.FAILED:
            print(f"\n❌ DEPLOYMENT FAILED: {snapshot.error_kind.value}: {snapshot.error_message}")
            return 1

        tx_hash = snapshot.transaction.origin_tx_hash
        print(f"\n📝 Transaction sent: {tx_hash}")
        print(f"   Explorer: {build_explorer_link(tx_hash)}")

        if args.wait:
            print("⏳ Waiting for confirmation...")
            snapshot = await session.refresh_status(timeout=args.wait)

        if snapshot.state == DeploymentState.SUCCEEDED:
            print("\n🎉 DEPLOYMENT SUCCESSFUL!")
        elif snapshot.state == DeploymentState.FAILED:
            print(f"\n❌ Origin transaction failed: {snapshot.error_message}")
            return 1
        else:
            print("\n⏳ Origin transaction pending. Track the cross-chain legs on the explorer.")
        print(f"   Address on every chain: {snapshot.predicted_address}")
        return 0
    finally:
        session.close()


def main(argv: Optional[List[str]] = None):
    sys.exit(asyncio.run(run(parse_args(argv))))


if __name__ == "__main__":
    main()
