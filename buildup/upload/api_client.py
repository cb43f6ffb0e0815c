"""
Buildup API Client

Builds and issues requests against the build, error and trigger endpoints,
classifies responses as success, retryable or fatal, and runs calls under
the bounded retry policy.
"""

import logging
from typing import Any, Callable, Dict, List, Optional, TypeVar

import backoff
import requests
from rich.console import Console

from .models import AttemptOutcome, SubmissionAttempt, MAX_NETWORK_ATTEMPTS
from .exceptions import APIConnectionError, SubmissionError

logger = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES = frozenset({408, 429, 500, 502, 503, 504})

# Raised before anything is sent; never retried
INVALID_URL_ERRORS = (
    requests.exceptions.MissingSchema,
    requests.exceptions.InvalidSchema,
    requests.exceptions.InvalidURL
)

T = TypeVar("T")


def should_retry(status_code: int) -> bool:
    return status_code in RETRYABLE_STATUS_CODES


def is_success(status_code: int) -> bool:
    return 200 <= status_code <= 299


def is_waf_response(response: requests.Response) -> bool:
    """403 issued by the load balancer firewall rather than the API itself"""
    if response.status_code != 403:
        return False

    server = response.headers.get("Server", "")
    return server.startswith("awselb/")


def add_if_not_empty(params: Dict[str, Any], key: str, value: Optional[str]) -> None:
    if key and value:
        params[key] = value


def fetch_json_body(response: requests.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return None


def _giveup(error: Exception) -> bool:
    return not (isinstance(error, SubmissionError) and error.retryable)


class BuildupAPIClient:
    """Handles HTTP interactions with the Buildup service"""

    def __init__(self, upload_token: str, user_agent: str, verbose: bool = False,
                 console: Console = None, upload_id: Optional[str] = None):
        self.upload_token = upload_token
        self.user_agent = user_agent
        self.upload_id = upload_id
        self.verbose = verbose
        self.console = console or Console()
        self.attempts: List[SubmissionAttempt] = []
        self.session = requests.Session()
        self.session.headers.update(self.get_headers())

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.session.close()

    def get_headers(self) -> Dict[str, str]:
        headers = {
            "Authorization": f"Upload-Token {self.upload_token}",
            "User-Agent": self.user_agent
        }
        if self.upload_id:
            headers["X-Upload-Id"] = self.upload_id
        return headers

    def post(self, url: str, data: Any, content_type: str, description: str) -> requests.Response:
        """POST without a timeout; transport failures become APIConnectionError."""
        request = requests.Request("POST", url, data=data, headers={"Content-Type": content_type})

        try:
            prepared = self.session.prepare_request(request)
            self._dump_request(prepared)
            response = self.session.send(prepared)
        except INVALID_URL_ERRORS as e:
            raise SubmissionError(
                f"Unable to create {description} request, error: {e}, url: {url!r}", url=url
            )
        except requests.exceptions.RequestException as e:
            raise APIConnectionError(
                f"Unable to upload {description}, error: {e}, url: {url!r}", url=url
            )

        self._dump_response(response)

        return response

    def post_with_retry(self, send: Callable[[int], T], max_attempts: int = MAX_NETWORK_ATTEMPTS,
                        label: str = "request") -> T:
        """
        Call send(attempt_index) until it succeeds or fails fatally.

        A retryable SubmissionError is retried unless it came from the final
        attempt; any other error gives up immediately.
        """
        counter = {"attempt": 0}

        def on_backoff(details):
            logger.warning(f"Failed {label} attempts: {details['tries']} -- retrying")
            self.console.print(f"\nFailed {label} attempts: {details['tries']} -- retrying…\n", style="yellow")

        @backoff.on_exception(
            backoff.constant,
            SubmissionError,
            max_tries=max_attempts,
            giveup=_giveup,
            on_backoff=on_backoff,
            interval=0,
            jitter=None,
            raise_on_giveup=True
        )
        def attempt():
            index = counter["attempt"]
            counter["attempt"] += 1
            retry_allowed = counter["attempt"] < max_attempts

            try:
                result = send(index)
            except SubmissionError as e:
                outcome = AttemptOutcome.RETRYABLE_FAILURE if (e.retryable and retry_allowed) else AttemptOutcome.FATAL_FAILURE
                self.attempts.append(SubmissionAttempt(
                    attempt_index=index,
                    retry_allowed=retry_allowed,
                    outcome=outcome,
                    http_status=e.status_code
                ))
                raise

            self.attempts.append(SubmissionAttempt(
                attempt_index=index,
                retry_allowed=retry_allowed,
                outcome=AttemptOutcome.SUCCESS,
                http_status=getattr(result, "status_code", None)
            ))
            return result

        return attempt()

    def _dump_request(self, prepared: requests.PreparedRequest) -> None:
        if not self.verbose:
            return

        lines = [f"{prepared.method} {prepared.url}"]
        lines.extend(f"{key}: {value}" for key, value in prepared.headers.items())
        body = prepared.body
        if isinstance(body, bytes):
            body = body.decode("utf-8", errors="replace")
        elif body is not None and not isinstance(body, str):
            body = "(binary payload)"

        self.console.print("\n--- Request ---", style="dim")
        self.console.print("\n".join(lines), markup=False, highlight=False)
        if body:
            self.console.print(f"\n{body}", markup=False, highlight=False)

    def _dump_response(self, response: requests.Response) -> None:
        if not self.verbose:
            return

        lines = [f"HTTP {response.status_code} {response.reason}"]
        lines.extend(f"{key}: {value}" for key, value in response.headers.items())

        self.console.print("\n--- Response ---", style="dim")
        self.console.print("\n".join(lines), markup=False, highlight=False)
        if response.text:
            self.console.print(f"\n{response.text}", markup=False, highlight=False)
