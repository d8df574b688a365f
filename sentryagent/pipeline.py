#!/usr/bin/env python3
"""
Command line entry points for SentryAgent.

sentryagent           - run the audit workflow in-process and print the report
sentryagent-client    - drive the workflow on a running server over HTTP
sentryagent-server    - serve the HTTP API with uvicorn
sentryagent-validate  - check the configuration and exit

The in-process audit runs four steps:
1. Fetch the repository digest from gitingest
2. Detect languages and contract files
3. Run the vulnerability agents over the contract files
4. Build the report
"""
# Ignore pydantic warnings emitted by litellm's models
import warnings
warnings.filterwarnings("ignore", category=UserWarning, module="pydantic")

import argparse
import asyncio
import json
import sys
from typing import Optional

from sentryagent.client.workflow_client import DEFAULT_BASE_URL, POLL_INTERVAL, WorkflowClient
from sentryagent.llm.agents import TextGenerator
from sentryagent.llm.llm_client import LLMClient
from sentryagent.report_display import render_report
from sentryagent.utils.config import AuditSettings, load_audit_settings
from sentryagent.utils.config_validator import validate_all_config, validate_and_exit_on_error
from sentryagent.utils.exceptions import LLMConfigError, WorkflowClientError
from sentryagent.utils.logger import get_logger, setup_logging
from sentryagent.workflow.audit_workflow import WORKFLOW_KEY, WorkflowRegistry, build_audit_workflow
from sentryagent.workflow.engine import RunStatus

logger = get_logger(__name__)


def _log_exception_cause(e: Exception) -> None:
    """
    Log the cause of an exception if it is not already part of its message.
    """
    cause = getattr(e, 'cause', None) or getattr(e, '__cause__', None)
    if cause:
        cause_str = str(cause)
        if cause_str not in str(e):
            logger.error("   Cause: %s", cause)


def build_generator(settings: AuditSettings) -> LLMClient:
    """
    Create the LLM client used by the agents.

    Raises:
        LLMConfigError: If the LLM configuration is invalid.
    """
    return LLMClient(timeout=settings.llm_timeout, temperature=settings.llm_temperature).init_llm_client()


def build_registry(generator: TextGenerator, settings: AuditSettings) -> WorkflowRegistry:
    registry = WorkflowRegistry()
    registry.register(WORKFLOW_KEY, build_audit_workflow(generator, settings))
    return registry


def analyze_pipeline(
    repo_url: str,
    token: Optional[str] = None,
    scan_id: Optional[str] = None,
    model: Optional[str] = None,
    include_security_analysis: bool = True,
    as_json: bool = False,
) -> int:
    """
    Run the audit workflow in-process and print the report.

    Args:
        repo_url: Repository to audit.
        token: Optional access token for private repositories.
        scan_id: Optional scan id. Defaults to the current epoch millis.
        model: Optional model override for this run.
        include_security_analysis: Run the vulnerability agents.
        as_json: Print the report as JSON instead of rendering it.

    Returns:
        int: Process exit code (0 on completion, 1 on failure).
    """
    logger.info("Starting SentryAgent Web3 Audit")
    logger.info("=" * 60)
    logger.info("Repository: %s", repo_url)
    if model:
        logger.info("Model override: %s", model)
    if not include_security_analysis:
        logger.info("Mode: structure only (security analysis disabled)")
    logger.info("")

    validate_and_exit_on_error()

    try:
        settings = load_audit_settings()
        generator = build_generator(settings)
    except LLMConfigError as e:
        logger.error("[-] LLM configuration error: %s", e)
        _log_exception_cause(e)
        logger.error("   Please check your LLM configuration and API credentials in .env file.")
        return 1

    workflow = build_audit_workflow(generator, settings)
    input_data = {
        "repoUrl": repo_url,
        "token": token,
        "model": model,
        "includeSecurityAnalysis": include_security_analysis,
    }
    if scan_id:
        input_data["scanId"] = scan_id

    result = asyncio.run(workflow.execute(input_data, run_id=scan_id))

    if result.status != RunStatus.COMPLETED:
        logger.error("[-] Audit failed: %s", result.error)
        return 1

    report = result.result.to_wire()
    if as_json:
        print(json.dumps(report, indent=2))
    else:
        render_report(report)
    logger.info("[+] Audit completed successfully!")
    return 0


def main_analyze() -> None:
    """
    CLI entry point for an in-process audit.

    Expected usage:
        sentryagent <repoUrl> [--token TOKEN] [--model MODEL] [--json]
    """
    parser = argparse.ArgumentParser(
        prog="sentryagent",
        description="SentryAgent - Web3 smart contract security audit with LLM agents"
    )
    parser.add_argument("repo_url", help="Repository URL (e.g. https://github.com/org/repo)")
    parser.add_argument("--token", default=None, help="Access token for private repositories")
    parser.add_argument("--scan-id", default=None, help="Scan id (defaults to the current epoch millis)")
    parser.add_argument("--model", default=None, help="Override the configured LLM model for this run")
    parser.add_argument(
        "--no-security",
        action="store_true",
        help="Skip the vulnerability agents and only report the repository structure"
    )
    parser.add_argument("--json", action="store_true", help="Print the report as JSON")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    parser.add_argument("--log-file", default=None, metavar="PATH", help="Also append logs to PATH")

    args = parser.parse_args()
    setup_logging(verbose=args.verbose, log_file=args.log_file)

    sys.exit(analyze_pipeline(
        repo_url=args.repo_url,
        token=args.token,
        scan_id=args.scan_id,
        model=args.model,
        include_security_analysis=not args.no_security,
        as_json=args.json,
    ))


def main_client() -> None:
    """
    CLI entry point that runs an audit on a remote SentryAgent server.

    Expected usage:
        sentryagent-client --repo <repoUrl> [--base-url URL]
    """
    parser = argparse.ArgumentParser(
        prog="sentryagent-client",
        description="Run a SentryAgent audit through the workflow HTTP API"
    )
    parser.add_argument("--base-url", default=DEFAULT_BASE_URL, help="Server base URL")
    parser.add_argument("--repo", required=True, help="Repository URL to audit")
    parser.add_argument("--token", default="", help="Access token for private repositories")
    parser.add_argument("--scan-id", default=None, help="Scan id")
    parser.add_argument("--no-security", action="store_true", help="Skip the vulnerability agents")
    parser.add_argument("--poll-interval", type=float, default=POLL_INTERVAL, help="Seconds between status polls")
    parser.add_argument("--json", action="store_true", help="Print the report as JSON")

    args = parser.parse_args()
    setup_logging()

    logger.info("SentryAgent Audit Client")
    logger.info("=" * 60)
    logger.info("Server: %s", args.base_url)
    logger.info("Repository: %s", args.repo)
    logger.info("")

    client = WorkflowClient(base_url=args.base_url, poll_interval=args.poll_interval)
    try:
        report = client.run_audit(
            args.repo,
            token=args.token,
            scan_id=args.scan_id,
            include_security_analysis=not args.no_security,
        )
    except WorkflowClientError as e:
        logger.error("[-] Audit failed: %s", e)
        _log_exception_cause(e)
        sys.exit(1)
    except KeyboardInterrupt:
        logger.error("[-] Cancelled")
        sys.exit(1)

    if args.json:
        print(json.dumps(report, indent=2))
    else:
        render_report(report)
    sys.exit(0)


def main_server() -> None:
    """
    CLI entry point that serves the HTTP API.

    Expected usage:
        sentryagent-server [--host HOST] [--port PORT]
    """
    import uvicorn

    from sentryagent.server.app import create_app

    parser = argparse.ArgumentParser(prog="sentryagent-server", description="Serve the SentryAgent HTTP API")
    parser.add_argument("--host", default="127.0.0.1", help="Bind address")
    parser.add_argument("--port", type=int, default=4111, help="Bind port")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")

    args = parser.parse_args()
    setup_logging(verbose=args.verbose)
    validate_and_exit_on_error()

    try:
        settings = load_audit_settings()
        generator = build_generator(settings)
    except LLMConfigError as e:
        logger.error("[-] Configuration error: %s", e)
        _log_exception_cause(e)
        sys.exit(1)

    app = create_app(build_registry(generator, settings))
    logger.info("[+] Serving SentryAgent on http://%s:%d", args.host, args.port)
    uvicorn.run(app, host=args.host, port=args.port, log_level="info")


def main_validate() -> None:
    """
    CLI entry point that validates the configuration.

    Expected usage: sentryagent-validate
    """
    setup_logging()
    is_valid, errors = validate_all_config()
    if is_valid:
        logger.info("[+] Configuration is valid")
        sys.exit(0)
    for error in errors:
        logger.error(error)
    sys.exit(1)


if __name__ == "__main__":
    main_analyze()
