#!/usr/bin/env python3
"""
insights-decorator -- Publish an analysis outcome to a Bitbucket Cloud pull request.

Uploads a Code Insights report and annotations for the analysed commit,
optionally approves or unapproves the pull request, and keeps one summary
comment up to date.

Usage:
  python main.py analysis.json
  python main.py analysis.json --approve
  python main.py analysis.json --project my-workspace --repo my-repo
  python main.py analysis.json --json

Environment variables (or .env):
  BITBUCKET_TOKEN                Basic credential, or OAuth2 consumer secret.
  BITBUCKET_OAUTH2_KEY           OAuth2 consumer key. Enables OAuth2 when set.
  BITBUCKET_PROJECT_KEY          Workspace / project key.
  BITBUCKET_REPOSITORY_SLUG      Repository slug.
  BITBUCKET_URL                  API base URL (default https://api.bitbucket.org).
  PULL_REQUEST_APPROVAL_ENABLED  true to approve/unapprove from the gate status.
  HTTP_TIMEOUT                   Per-request timeout in seconds (default 10).
  LOG_LEVEL                      Logging level (default INFO).
"""

import argparse
import json
import logging
import sys
from dataclasses import asdict
from typing import Optional

from pydantic import ValidationError

from bitbucket.cloud import BitbucketCloudClient
from bitbucket.decorator import decorate
from core.config import Settings, get_settings
from core.loader import load_analysis

logger = logging.getLogger("insights.cli")


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="insights-decorator",
        description="Decorate a Bitbucket Cloud pull request with analysis results.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py analysis.json
  python main.py analysis.json --approve
  BITBUCKET_OAUTH2_KEY=key BITBUCKET_TOKEN=secret python main.py analysis.json
        """,
    )
    parser.add_argument("analysis", metavar="ANALYSIS_JSON", help="Path to the analysis export (JSON)")
    approval = parser.add_mutually_exclusive_group()
    approval.add_argument(
        "--approve",
        dest="approve",
        action="store_true",
        default=None,
        help="Approve the pull request when the gate passed, unapprove otherwise",
    )
    approval.add_argument(
        "--no-approve",
        dest="approve",
        action="store_false",
        help="Leave the pull request approval untouched",
    )
    parser.add_argument("--project", metavar="KEY", help="Override BITBUCKET_PROJECT_KEY")
    parser.add_argument("--repo", metavar="SLUG", help="Override BITBUCKET_REPOSITORY_SLUG")
    parser.add_argument("--json", action="store_true", help="Print the decoration result as JSON")
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    # Command-line overrides take precedence over environment and .env values.
    overrides = {}
    if args.project:
        overrides["bitbucket_project_key"] = args.project
    if args.repo:
        overrides["bitbucket_repository_slug"] = args.repo

    try:
        settings = Settings(**overrides) if overrides else get_settings()
    except ValidationError as e:
        print(f"  [!] Invalid configuration: {e}", file=sys.stderr)
        return 1

    _configure_logging(settings.log_level)

    try:
        analysis = load_analysis(args.analysis)
    except ValueError as e:
        print(f"  [!] Could not load analysis: {e}", file=sys.stderr)
        return 1

    approval_enabled = settings.pull_request_approval_enabled if args.approve is None else args.approve
    configuration = settings.to_configuration()
    client = BitbucketCloudClient(configuration, timeout=settings.http_timeout)
    try:
        result = decorate(analysis, configuration, approval_enabled=approval_enabled, client=client)
    finally:
        client.close()

    if args.json:
        print(json.dumps(asdict(result), indent=2))
    elif result.decorated:
        suffix = " (truncated)" if result.annotations_truncated else ""
        print(
            f"Decorated pull request #{analysis.pull_request_id}: "
            f"{result.annotations_uploaded} annotation(s) uploaded{suffix}."
        )
    elif result.error:
        print(f"  [!] Decoration failed: {result.error}", file=sys.stderr)
    else:
        print("Decoration skipped: Code Insights is not available.")

    if result.error:
        logger.debug("Exiting with failure for project %s", analysis.project_key)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
