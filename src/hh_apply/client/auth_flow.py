"""
Client-side OAuth2 authorization-code flow.

The controller plays the browser's part: it stores an anti-CSRF state value,
sends the user to hh.ru, and on return validates that state before handing
the code to an exchange backend. The exchange backend is anything with an
``async exchange_code(code)`` method; the CLI passes ``BackendClient``.
"""

import enum
import secrets
import string
import webbrowser
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional, Union
from urllib.parse import parse_qs, urlencode, urlsplit

from hh_apply.errors import MissingParameters, ProviderAuthError, StateMismatch
from hh_apply.oauth.exchange import ExchangeResult
from hh_apply.utils import LogEvent, LogRecord, error, info, now_ms, warning

from . import storage as keys
from .storage import ClientStorage

BASE36_ALPHABET = string.digits + string.ascii_lowercase


class FlowState(str, enum.Enum):
    IDLE = "idle"
    REDIRECTING = "redirecting"
    AWAITING_CALLBACK = "awaiting_callback"
    VALIDATING_STATE = "validating_state"
    EXCHANGING = "exchanging"
    AUTHENTICATED = "authenticated"
    FAILED = "failed"


@dataclass
class AuthorizeConfig:
    client_id: str
    redirect_uri: str
    authorize_url: str = "https://hh.ru/oauth/authorize"


def to_base36(number: int) -> str:
    if number == 0:
        return "0"
    digits = []
    while number:
        number, remainder = divmod(number, 36)
        digits.append(BASE36_ALPHABET[remainder])
    return "".join(reversed(digits))


def generate_state(clock: Callable[[], int] = now_ms) -> str:
    """Two random base-36 segments around a base-36 millisecond timestamp."""
    def segment() -> str:
        return "".join(secrets.choice(BASE36_ALPHABET) for _ in range(13))

    return "_".join([segment(), to_base36(clock()), segment()])


def parse_callback(query: Union[str, Mapping[str, Any]]) -> Dict[str, str]:
    """Accept a full callback URL, a bare query string or an already-parsed mapping."""
    if isinstance(query, str):
        raw = urlsplit(query).query if "?" in query or "://" in query else query
        return {name: values[0] for name, values in parse_qs(raw).items() if values}
    return {name: value for name, value in query.items() if value is not None}


class AuthFlowController:
    def __init__(
        self,
        config: AuthorizeConfig,
        storage: ClientStorage,
        exchange,
        navigator: Callable[[str], Any] = webbrowser.open,
        clock: Callable[[], int] = now_ms,
    ):
        self.config = config
        self.storage = storage
        self.exchange = exchange
        self.navigator = navigator
        self.clock = clock
        self.state = FlowState.IDLE

    def build_authorize_url(self, state: str) -> str:
        params = {
            "response_type": "code",
            "client_id": self.config.client_id,
            "state": state,
            "redirect_uri": self.config.redirect_uri,
        }
        return f"{self.config.authorize_url}?{urlencode(params)}"

    def initiate_login(self) -> str:
        """Reset the session, store a fresh state value and open the consent page."""
        self.state = FlowState.REDIRECTING
        self.storage.clear(keys.SESSION_KEYS + (keys.STATE,))

        state = generate_state(self.clock)
        self.storage.set(keys.STATE, state)
        url = self.build_authorize_url(state)

        info(LogRecord(
            event=LogEvent.OAUTH_LOGIN_INITIATED.value,
            message="Redirecting to hh.ru for authorization",
            data={"authorize_url": self.config.authorize_url},
        ))
        self.navigator(url)
        self.state = FlowState.AWAITING_CALLBACK
        return url

    async def handle_callback(self, query: Union[str, Mapping[str, Any]]) -> ExchangeResult:
        """
        Finish the flow from the provider's redirect.

        The stored state is consumed on every call, so a callback can never
        be replayed.

        Raises:
            ProviderAuthError: the provider redirected back with ``error``.
            MissingParameters: ``code`` or ``state`` is absent.
            StateMismatch: no stored state, or it differs from the callback's.
        """
        params = parse_callback(query)
        self.state = FlowState.VALIDATING_STATE
        stored_state = self.storage.pop(keys.STATE)

        if params.get("error"):
            self.state = FlowState.FAILED
            warning(LogRecord(
                event=LogEvent.OAUTH_CALLBACK_PROVIDER_ERROR.value,
                message=f"Provider returned error: {params['error']}",
                data={"description": params.get("error_description")},
            ))
            raise ProviderAuthError(400, params["error"], params.get("error_description"))

        code, returned_state = params.get("code"), params.get("state")
        if not code or not returned_state:
            self.state = FlowState.FAILED
            warning(LogRecord(
                event=LogEvent.OAUTH_MISSING_PARAMETERS.value,
                message="Callback is missing code or state",
                data={"has_code": bool(code), "has_state": bool(returned_state)},
            ))
            raise MissingParameters()

        if not stored_state or not secrets.compare_digest(str(stored_state), returned_state):
            self.state = FlowState.FAILED
            warning(LogRecord(
                event=LogEvent.OAUTH_STATE_MISMATCH.value,
                message="Callback state does not match the stored value",
                data={"had_stored_state": bool(stored_state)},
            ))
            raise StateMismatch()

        self.state = FlowState.EXCHANGING
        try:
            result = await self.exchange.exchange_code(code)
            self.storage.update({
                keys.ACCESS_TOKEN: result.access_token,
                keys.REFRESH_TOKEN: result.refresh_token,
                keys.TOKEN_EXPIRATION: result.expires_at,
                keys.USER: result.user,
            })
        except Exception as e:
            self.state = FlowState.FAILED
            self.storage.clear(keys.SESSION_KEYS)
            error(LogRecord(
                event=LogEvent.OAUTH_CALLBACK_FAILED.value,
                message=f"Authorization failed: {e}",
            ), exc=e)
            raise

        self.state = FlowState.AUTHENTICATED
        info(LogRecord(
            event=LogEvent.OAUTH_CALLBACK_SUCCESS.value,
            message=f"Signed in as user {result.user.get('id')}",
            data={"user_id": result.user.get("id")},
        ))
        return result

    def logout(self) -> None:
        self.storage.clear(keys.SESSION_KEYS + (keys.STATE,))
        self.state = FlowState.IDLE

    def current_user(self) -> Optional[Dict[str, Any]]:
        return self.storage.get(keys.USER)

    def is_authenticated(self) -> bool:
        expiration = self.storage.get(keys.TOKEN_EXPIRATION)
        return bool(self.storage.get(keys.ACCESS_TOKEN)) and bool(expiration) and expiration > self.clock()
