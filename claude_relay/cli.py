"""
Command line entry point:
- default: run the OpenAI-compatible server
- --message: send one message through a throwaway session and print the reply
- --status: report installation / authentication and offer to log in
- --login-url: print the captured login URL (or the manual instruction)
- --init-config: (re)write the sample clay.yaml
"""

from __future__ import annotations

import argparse
import asyncio
import sys

from claude_relay.auth.flow import complete_oauth_flow, get_auth_url
from claude_relay.config_file import write_sample_config
from claude_relay.environment import ClaudeEnvironment
from claude_relay.logging_config import logger, setup_logging
from claude_relay.session import AuthenticationRequired, ProcessFailure, SessionRegistry
from claude_relay.settings import settings


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="claude-relay",
        description="Claude Relay - OpenAI-compatible API server for Claude CLI",
    )
    parser.add_argument(
        "-d",
        "--dir",
        default=None,
        help="Base directory holding clay.yaml, .bun/ and .claude-home/ (default: CLAY_DIR or .)",
    )
    parser.add_argument("-p", "--port", type=int, default=None, help="Port to run the server on")
    parser.add_argument("--host", default=None, help="Address to bind the server to")
    parser.add_argument("-m", "--message", help="Send a message to Claude and print the reply")
    parser.add_argument(
        "--status", action="store_true", help="Show status instead of starting server"
    )
    parser.add_argument(
        "--login-url", action="store_true", help="Print the authentication URL and exit"
    )
    parser.add_argument(
        "--init-config", action="store_true", help="Write a fresh sample clay.yaml and exit"
    )
    return parser.parse_args(argv)


def build_environment(args: argparse.Namespace) -> ClaudeEnvironment:
    overrides: dict = {}
    if args.dir:
        overrides["base_dir"] = args.dir
    if args.port:
        overrides["port"] = args.port
    effective = settings.model_copy(update=overrides) if overrides else settings
    return ClaudeEnvironment.from_settings(effective)


def ensure_authenticated(environment: ClaudeEnvironment) -> bool:
    if environment.check_authentication():
        return True
    try:
        return complete_oauth_flow(
            environment, timeout=settings.auth_capture_timeout_seconds
        )
    except AuthenticationRequired as exc:
        print(f"Authentication failed: {exc}", file=sys.stderr)
        return False


async def send_single_message(environment: ClaudeEnvironment, message: str) -> str:
    registry = SessionRegistry(environment)
    try:
        session = await registry.get_or_create()
        return await session.send_message(message)
    finally:
        registry.close_all()


def run_message(environment: ClaudeEnvironment, message: str) -> int:
    if not ensure_authenticated(environment):
        print("Continuing without confirmed authentication...", file=sys.stderr)
    try:
        reply = asyncio.run(send_single_message(environment, message))
    except AuthenticationRequired as exc:
        print(f"{exc}", file=sys.stderr)
        print(environment.setup_token_instructions(), file=sys.stderr)
        return 1
    except ProcessFailure as exc:
        print(f"{exc}", file=sys.stderr)
        return 1
    print(reply)
    return 0


def run_status(environment: ClaudeEnvironment) -> int:
    authenticated, detail = environment.auth_status()
    print("Claude Relay Status:")
    print(f"  Installation directory: {environment.base_dir}")
    print(f"  Claude installed: {str(environment.is_installed()).lower()}")
    print(f"  Authenticated: {str(authenticated).lower()} ({detail})")
    print()
    if authenticated:
        print("Ready to start server!")
        return 0
    if ensure_authenticated(environment):
        print("Authentication complete! You can now start the server.")
        return 0
    print("You can try again by running the command again.", file=sys.stderr)
    return 1


def run_server(environment: ClaudeEnvironment, host: str) -> int:
    import uvicorn

    from claude_relay.routes import create_app

    if not environment.check_authentication():
        print("Authentication required before starting server.")
        if ensure_authenticated(environment):
            print("Authentication complete!")

    app = create_app(environment)
    print("Starting Claude Relay OpenAI-compatible API server...")
    logger.info("Claude Relay server starting on %s:%d", host, environment.port)
    uvicorn.run(app, host=host, port=environment.port, log_config=None)
    return 0


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    setup_logging()
    environment = build_environment(args)

    if args.init_config:
        path = write_sample_config(environment.base_dir, overwrite=True)
        print(f"Generated {path}")
        return 0

    if not environment.is_installed():
        print(
            f"Claude CLI not found at {environment.claude_path}. "
            "Install it (or set CLAUDE_PATH) and run again.",
            file=sys.stderr,
        )
        return 1

    if args.login_url:
        print(get_auth_url(environment, timeout=settings.auth_capture_timeout_seconds))
        return 0
    if args.message is not None:
        return run_message(environment, args.message)
    if args.status:
        return run_status(environment)
    return run_server(environment, args.host or settings.host)


if __name__ == "__main__":
    sys.exit(main())
