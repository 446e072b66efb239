from __future__ import annotations

import asyncio
import time
from collections.abc import Callable

from claude_relay.auth.capture import capture_login_url
from claude_relay.auth_store import save_auth_record
from claude_relay.environment import ClaudeEnvironment
from claude_relay.logging_config import logger
from claude_relay.session.exceptions import AuthenticationRequired

AUTH_POLL_INTERVAL_SECONDS = 0.5


def get_auth_url(environment: ClaudeEnvironment, timeout: float = 10.0) -> str:
    """The captured login URL, or a ``Run: ...`` instruction when none was found."""
    url = capture_login_url(environment, timeout=timeout)
    if url:
        return url
    return f"Run: {environment.claude_path} setup-token"


def get_auth_instructions(environment: ClaudeEnvironment, timeout: float = 10.0) -> str:
    url = get_auth_url(environment, timeout=timeout)
    if url.startswith("http"):
        return f"Authentication URL: {url}"
    return f"For authentication URL and instructions, run: {environment.claude_path} setup-token"


def complete_auth(environment: ClaudeEnvironment, session_token: str) -> bool:
    """
    Persist a pasted token and report whether the CLI now considers itself logged in.
    """
    try:
        save_auth_record(environment, session_token)
    except ValueError as exc:
        raise AuthenticationRequired(str(exc)) from exc
    authenticated = environment.check_authentication()
    logger.info("auth: token saved, cli authenticated=%s", authenticated)
    return authenticated


async def wait_for_authentication(
    environment: ClaudeEnvironment,
    timeout: float,
    *,
    interval: float = AUTH_POLL_INTERVAL_SECONDS,
) -> None:
    start = time.monotonic()
    while True:
        authenticated, reason = environment.auth_status()
        if authenticated:
            return
        if time.monotonic() - start > timeout:
            raise AuthenticationRequired(
                f"Authentication timeout after {timeout:.1f}s ({reason})"
            )
        await asyncio.sleep(interval)


def complete_oauth_flow(
    environment: ClaudeEnvironment,
    *,
    timeout: float = 10.0,
    input_fn: Callable[[str], str] = input,
    print_fn: Callable[..., None] = print,
) -> bool:
    print_fn("Authentication required. Please complete the following steps:")

    auth_url = get_auth_url(environment, timeout=timeout)
    if auth_url.startswith("http"):
        print_fn(f"1. Visit this URL in your browser: {auth_url}")
    else:
        print_fn(f"1. {auth_url}")
        print_fn("   Then visit the URL shown")
    print_fn("2. Complete the authentication process")
    print_fn("3. Copy the authorization code you receive")

    code = input_fn("\nPaste the authorization code here: ").strip()
    if not code:
        raise AuthenticationRequired("No authentication code provided")
    return complete_auth(environment, code)


__all__ = [
    "complete_auth",
    "complete_oauth_flow",
    "get_auth_instructions",
    "get_auth_url",
    "wait_for_authentication",
]
