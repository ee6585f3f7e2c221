"""Credential prompts and the retry loop around authenticated portal calls."""

from __future__ import annotations

import logging
from typing import Callable, Protocol, TypeVar

from rhtsupport_reporter.core.errors import UserCancelled
from rhtsupport_reporter.core.models import Credentials

logger = logging.getLogger(__name__)

HTTP_UNAUTHORIZED = 401

# (question, hide_input) -> answer
AskCallback = Callable[[str, bool], str]


class PortalResult(Protocol):
    error: int
    http_status: int


R = TypeVar("R", bound=PortalResult)


def ask_login(ask: AskCallback, message: str) -> str:
    login = ask(message, False)
    if not login:
        raise UserCancelled("Can't continue without login")
    return login


def ask_password(ask: AskCallback, message: str) -> str:
    password = ask(message, True)
    if not password:
        raise UserCancelled("Can't continue without password")
    return password


def ask_credentials(credentials: Credentials, ask: AskCallback) -> None:
    """Replace `credentials` after the portal rejected them."""
    login = ask_login(ask, "Invalid password or login. Please enter your Red Hat login:")
    password = ask_password(
        ask, f"Invalid password or login. Please enter the password for '{login}':"
    )
    credentials.login = login
    credentials.password = password


def ask_missing_credentials(credentials: Credentials, ask: AskCallback) -> None:
    """Fill in whatever the configuration left empty."""
    if not credentials.login:
        credentials.login = ask_login(
            ask, "Login is not provided by configuration. Please enter your RHTS login:"
        )
    if not credentials.password:
        credentials.password = ask_password(
            ask,
            "Password is not provided by configuration. "
            f"Please enter the password for '{credentials.login}':",
        )


def call_with_credentials(
    credentials: Credentials,
    call: Callable[[Credentials], R],
    ask: AskCallback,
) -> R:
    """Run `call` until it stops failing with 401.

    Each 401 replaces `credentials` in place with freshly prompted ones.
    There is no retry limit; an empty answer raises UserCancelled.
    """
    while True:
        result = call(credentials)
        if not result.error or result.http_status != HTTP_UNAUTHORIZED:
            return result
        logger.info("Portal rejected credentials for '%s'", credentials.login)
        ask_credentials(credentials, ask)
