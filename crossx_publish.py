#!/usr/bin/env python3
"""
CrossX - Artifact Publisher
Compiles the project, picks the newest compiled artifact, publishes it to IPFS
and prints the link that opens the multi-chain deploy flow.

Usage:
- Set PINATA_API_KEY/PINATA_SECRET_KEY (or WEB3_STORAGE_TOKEN) in your .env
- Run inside a Hardhat project: python crossx_publish.py
- Already compiled? python crossx_publish.py --skip-compile

Exit codes: 0 ok, 1 configuration error, 2 compile failure,
3 artifact not found, 4 publish failure.
"""

import argparse
import os
import sys
from typing import List, Optional

from crossx.config import load_config, setup_logging
from crossx.database import DeploymentDatabase
from crossx.errors import ArtifactNotFound, CompileError, CrossXError, PublishError
from crossx.services import IPFSService
from crossx.services.artifact_locator import DEFAULT_COMPILE_COMMAND, compile_contracts, locate
from crossx.services.link_generator import build_link

EXIT_OK = 0
EXIT_CONFIG = 1
EXIT_COMPILE = 2
EXIT_NOT_FOUND = 3
EXIT_PUBLISH = 4


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Publish a compiled contract and print its deploy link")
    parser.add_argument("--project", default=os.getcwd(), help="Project root (default: current directory)")
    parser.add_argument("--artifacts", default=os.path.join("artifacts", "contracts"),
                        help="Build output directory, relative to the project root")
    parser.add_argument("--compile-command", default=DEFAULT_COMPILE_COMMAND)
    parser.add_argument("--skip-compile", action="store_true", help="Use existing build output")
    parser.add_argument("--host", default=None, help="Host of the deploy UI (default: DEPLOY_LINK_HOST)")
    parser.add_argument("--no-db", action="store_true", help="Do not record the publication locally")
    return parser.parse_args(argv)


def run(args: argparse.Namespace) -> int:
    try:
        config = load_config(require_wallet=False)
    except CrossXError as e:
        print(f"❌ CONFIGURATION ERROR: {e}")
        return EXIT_CONFIG

    logger = setup_logging()
    project = os.path.abspath(args.project)

    try:
        if not args.skip_compile:
            print(f"🔨 Compiling contracts: {args.compile_command}")
            compile_contracts(project, args.compile_command)

        artifact = locate(os.path.join(project, args.artifacts), project_root=project)
        print(f"📦 Found artifact: {artifact.name} ({len(artifact.bytecode)} bytes)")

        print("📄 Uploading artifact to IPFS...")
        content_id = IPFSService.from_config(config).publish(artifact)
        link = build_link(content_id, args.host or config.link_host)

    except CompileError as e:
        print(f"❌ Compilation failed: {e}")
        return EXIT_COMPILE
    except ArtifactNotFound as e:
        print(f"❌ {e}")
        return EXIT_NOT_FOUND
    except PublishError as e:
        print(f"❌ Publishing failed: {e}")
        return EXIT_PUBLISH
    except CrossXError as e:
        print(f"❌ {e}")
        return EXIT_CONFIG

    if not args.no_db:
        DeploymentDatabase(config.db_path).record_publication(content_id, artifact.name, link)
    logger.info(f"Published {artifact.name} as {content_id}")

    print(f"✅ Artifact published: {content_id}")
    print("Deploy your contracts at", link)
    return EXIT_OK


def main(argv: Optional[List[str]] = None):
    sys.exit(run(parse_args(argv)))


if __name__ == "__main__":
    main()
