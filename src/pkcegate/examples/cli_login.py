"""
Log in from a terminal and send one command to the gateway.

Opens the authorization URL in a browser, then asks you to paste the URL the
identity provider redirected to. Tokens are kept in ~/.pkcegate/tokens.json.

Needs PKCEGATE_CLIENT_ID, PKCEGATE_DOMAIN, PKCEGATE_REDIRECT_URI,
PKCEGATE_LOGOUT_URI and PKCEGATE_API_ENDPOINT (a .env file works).
"""

import asyncio
import json
import logging
import sys
import webbrowser

from dotenv import load_dotenv

from pkcegate.auth.client.models.errors import OAuth2Error
from pkcegate.auth.client.oauth_client import PKCEAuth
from pkcegate.auth.client.services.commands import CommandClient
from pkcegate.auth.client.session import AuthSessionController, AuthState
from pkcegate.auth.client.storage import InMemoryStore, JsonFileStore, TokenStore
from pkcegate.config import ClientConfig

TOKEN_FILE = "~/.pkcegate/tokens.json"


class TerminalNavigator:
    """Navigator that opens URLs in the default browser.

    The "current URL" is whatever the user pastes back after the redirect.
    """

    def __init__(self, start_url: str = "", open_browser=webbrowser.open):
        self._url = start_url
        self._open_browser = open_browser

    def current_url(self) -> str:
        return self._url

    def redirect(self, url: str) -> None:
        print(f"Opening {url}")
        self._open_browser(url)

    def replace_url(self, url: str) -> None:
        self._url = url

    def paste_callback(self, url: str) -> None:
        self._url = url.strip()


async def main() -> None:
    config = ClientConfig.from_env()
    store = TokenStore(ephemeral=InMemoryStore(), persistent=JsonFileStore(TOKEN_FILE))
    auth = PKCEAuth(config, token_store=store)
    navigator = TerminalNavigator(start_url=config.redirect_uri)
    session = AuthSessionController(auth, navigator)

    try:
        if await session.load() != AuthState.AUTHENTICATED:
            session.login()
            navigator.paste_callback(input("Paste the redirect URL: "))
            await session.load()

        if session.state != AuthState.AUTHENTICATED:
            print(f"Login failed: {session.error_message or session.state.value}")
            sys.exit(1)

        print(f"Logged in as {session.user_email}")
        if config.api_endpoint and len(sys.argv) > 1:
            client = CommandClient(config.api_endpoint, store)
            command = {"command": sys.argv[1], "value": sys.argv[2] if len(sys.argv) > 2 else None}
            try:
                result = await client.send_command(command)
            except OAuth2Error as e:
                print(f"Command failed: {e}")
                sys.exit(1)
            finally:
                await client.close()
            print(json.dumps(result, indent=2))
    finally:
        await auth.close()


if __name__ == "__main__":
    load_dotenv()
    logging.basicConfig(level=logging.INFO)
    asyncio.run(main())
