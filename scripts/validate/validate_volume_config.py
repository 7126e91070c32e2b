#!/usr/bin/env python3
"""Validate an encrypted volume configuration and print the planned resources.

Steps
-----
1. Load the raw input from a named environment preset or a JSON file.
2. Validate it, reporting every violation at once (exit code 1 on failure).
3. Resolve the provider context from arguments or the current AWS credentials.
4. Plan the intent graph and emit it as JSON (stdout or ``--output-json``).
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Dict, Optional, Sequence

import boto3
from botocore.exceptions import BotoCoreError, ClientError

repo_root = Path(__file__).resolve().parents[2]
if str(repo_root) not in sys.path:
    sys.path.append(str(repo_root))

from encrypted_volume.config.environments import get_environment_config  # noqa: E402
from encrypted_volume.config.validation import validate  # noqa: E402
from encrypted_volume.context import ProviderContext, resolve_provider_context  # noqa: E402
from encrypted_volume.errors import ConfigValidationError  # noqa: E402
from encrypted_volume.planning import plan  # noqa: E402


def _load_raw(args: argparse.Namespace) -> Dict[str, Any]:
    if args.config_file:
        return json.loads(Path(args.config_file).read_text(encoding="utf-8"))
    return get_environment_config(args.environment)["volume"]


def _provider_context(args: argparse.Namespace) -> ProviderContext:
    if args.account_id and args.region:
        return ProviderContext(account_id=args.account_id, region=args.region, partition=args.partition)
    session = boto3.session.Session(region_name=args.region) if args.region else boto3.session.Session()
    return resolve_provider_context(session)


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Validate an encrypted volume configuration and plan its resources")
    parser.add_argument("--environment", "-e", default="dev", help="Environment preset (dev|staging|prod)")
    parser.add_argument("--config-file", "-f", help="JSON file with the raw volume input (overrides --environment)")
    parser.add_argument("--account-id", help="AWS account id (resolved via STS when omitted)")
    parser.add_argument("--region", help="AWS region (defaults to the session region)")
    parser.add_argument("--partition", default="aws", help="AWS partition used with --account-id/--region")
    parser.add_argument("--output-json", help="Write the plan to this path instead of stdout")
    args = parser.parse_args(argv)

    raw = _load_raw(args)
    try:
        config = validate(raw)
    except ConfigValidationError as exc:
        print(f"Configuration is invalid ({len(exc.violations)} violation(s)):", file=sys.stderr)
        for violation in exc.violations:
            print(f"  - {violation.field} [{violation.rule}]: {violation.message}", file=sys.stderr)
        return 1

    try:
        context = _provider_context(args)
    except (BotoCoreError, ClientError, ValueError) as exc:
        print(f"Could not resolve AWS account/region: {exc}", file=sys.stderr)
        return 2

    resource_plan = plan(config, context)
    document = json.dumps(resource_plan.to_dict(), indent=2, sort_keys=True)
    if args.output_json:
        Path(args.output_json).write_text(document + "\n", encoding="utf-8")
        print(f"Planned {len(resource_plan)} resource(s); plan written to {args.output_json}")
    else:
        print(document)
    return 0


if __name__ == "__main__":
    sys.exit(main())
