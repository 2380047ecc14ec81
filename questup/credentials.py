"""Credential resolution for the generative endpoint.

Credentials come from a chain of providers tried in order: the configured
environment value first, then an interactive key-selection dialog offered
by the host. The first non-empty value wins. Credentials are resolved for
every call and never stored by the resolver.
"""

import asyncio
import getpass
import logging
import os
from abc import ABC, abstractmethod
from typing import Callable, Optional, Protocol, Sequence

from .config import Settings, settings
from .errors import AuthMissingError

logger = logging.getLogger(__name__)

# Placeholder left behind when an unset value is stringified at build time
UNSET_SENTINEL = "undefined"

DEFAULT_ENV_VAR = "API_KEY"


def is_usable_credential(value: Optional[str]) -> bool:
    """Return True if value is a non-empty credential that is not a placeholder."""
    if value is None:
        return False
    value = value.strip()
    return bool(value) and value != UNSET_SENTINEL


class CredentialProvider(ABC):
    """A single source of credentials."""

    @abstractmethod
    async def get_credential(self) -> Optional[str]:
        """Return a credential, or None if this source has none."""

    async def request_new_credential(self) -> Optional[str]:
        """Ask the user for a different credential.

        Non-interactive sources cannot, and return None.
        """
        return None

    def get_source_name(self) -> str:
        return self.__class__.__name__.replace("CredentialProvider", "").lower()


class EnvironmentCredentialProvider(CredentialProvider):
    """Reads the configured credential.

    The process environment is read at call time so a key injected by a
    dialog replaces the one loaded with the settings (for example from
    ``.env``).
    """

    def __init__(
        self,
        env_var: str = DEFAULT_ENV_VAR,
        app_settings: Optional[Settings] = None,
    ):
        self.env_var = env_var
        self._settings = app_settings

    async def get_credential(self) -> Optional[str]:
        value = os.environ.get(self.env_var)
        if is_usable_credential(value):
            return value
        current = self._settings if self._settings is not None else settings
        return current.api_key


class KeySelectionDialog(Protocol):
    """Host capability for choosing a credential interactively."""

    async def has_selected_api_key(self) -> bool:
        """Return True if the user already selected a key."""
        ...

    async def open_select_key(self) -> None:
        """Open the dialog; returns once the user has finished with it."""
        ...


class DialogCredentialProvider(CredentialProvider):
    """Obtains a credential through a host key-selection dialog.

    The dialog gives no reliable success signal: once ``open_select_key``
    returns, the selected key is read from ``credential_source`` (by default
    the ``API_KEY`` environment variable, where hosts inject it).
    """

    def __init__(
        self,
        dialog: KeySelectionDialog,
        credential_source: Optional[Callable[[], Optional[str]]] = None,
    ):
        self.dialog = dialog
        self._credential_source = credential_source or (
            lambda: os.environ.get(DEFAULT_ENV_VAR)
        )

    async def get_credential(self) -> Optional[str]:
        if not await self.dialog.has_selected_api_key():
            logger.info("No API key selected, opening key selection dialog")
            await self.dialog.open_select_key()
        return self._credential_source()

    async def request_new_credential(self) -> Optional[str]:
        logger.info("Opening key selection dialog for a new API key")
        await self.dialog.open_select_key()
        return self._credential_source()


class TerminalKeyDialog:
    """KeySelectionDialog for terminals: prompts for a key without echo."""

    def __init__(
        self,
        env_var: str = DEFAULT_ENV_VAR,
        prompt: str = "Gemini API key: ",
        reader: Callable[[str], str] = getpass.getpass,
    ):
        self.env_var = env_var
        self.prompt = prompt
        self._reader = reader

    async def has_selected_api_key(self) -> bool:
        return is_usable_credential(os.environ.get(self.env_var))

    async def open_select_key(self) -> None:
        # getpass blocks, so it runs on a worker thread
        value = (await asyncio.to_thread(self._reader, self.prompt)).strip()
        if value:
            os.environ[self.env_var] = value


class CredentialResolver:
    """Resolves a credential from an ordered chain of providers.

    Usage:
        resolver = CredentialResolver([EnvironmentCredentialProvider()])
        api_key = await resolver.resolve()
    """

    def __init__(self, providers: Sequence[CredentialProvider]):
        """Initialize the resolver.

        Args:
            providers: Providers in resolution order
        """
        self.providers = list(providers)

    async def resolve(self) -> str:
        """Return the first usable credential.

        Raises:
            AuthMissingError: If no provider yields a usable credential
        """
        for provider in self.providers:
            value = await provider.get_credential()
            if is_usable_credential(value):
                logger.debug(f"Resolved credential from {provider.get_source_name()}")
                return value.strip()
        raise AuthMissingError(
            "No API key available. Connect or select an API key to continue."
        )

    async def reselect(self) -> str:
        """Ask interactive providers for a new credential.

        Used after the endpoint rejected the current credential.

        Raises:
            AuthMissingError: If no provider yields a new credential
        """
        for provider in self.providers:
            value = await provider.request_new_credential()
            if is_usable_credential(value):
                return value.strip()
        raise AuthMissingError("No API key was selected.")


def default_resolver(dialog: Optional[KeySelectionDialog] = None) -> CredentialResolver:
    """Build the standard chain: environment value, then the dialog if given."""
    providers: list[CredentialProvider] = [EnvironmentCredentialProvider()]
    if dialog is not None:
        providers.append(DialogCredentialProvider(dialog))
    return CredentialResolver(providers)
