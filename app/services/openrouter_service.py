"""
OpenRouter Service - chat completion client for film recommendations

Sends a user prompt together with a fixed system instruction and sampling
parameters to the OpenRouter chat-completion endpoint, retries transient
failures with exponential backoff and validates the response shape.
"""
import copy
import logging
import os
import time
import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional, TypeVar

import requests
from pydantic import ValidationError

from app.schemas.openrouter import (
    ChatCompletionResponse,
    ModelParameters,
    RequestPayload,
    ServiceConfig,
)
from app.utils.errors import UpstreamFailureError

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_API_ENDPOINT = "https://openrouter.ai/api/v1/chat/completions"
DEFAULT_MODEL = "openai/gpt-4o-mini"

# Error codes
MISSING_API_KEY = "MISSING_API_KEY"
INVALID_MODEL_PARAMETERS = "INVALID_MODEL_PARAMETERS"
INVALID_REQUEST_PAYLOAD = "INVALID_REQUEST_PAYLOAD"
INVALID_USER_MESSAGE = "INVALID_USER_MESSAGE"
API_REQUEST_FAILED = "API_REQUEST_FAILED"
INVALID_RESPONSE_FORMAT = "INVALID_RESPONSE_FORMAT"
MAX_RETRIES_EXCEEDED = "MAX_RETRIES_EXCEEDED"

SYSTEM_MESSAGE = (
    "You are a movie recommendation assistant. Always respond with a valid JSON object "
    "of the form {\"movies\": [...]} where every movie object has the following fields: "
    "title (string), year (number), description (string), genres (array of strings), "
    "actors (array of strings) and director (string). Never include any additional text "
    "or explanations outside the JSON object. If the user provides multiple preferences, "
    "give priority to the most specific ones (e.g., specific actors and directors). "
    "Avoid suggesting movies that are difficult to match with the provided criteria."
)

MOVIES_JSON_SCHEMA = {
    "type": "object",
    "properties": {
        "movies": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["title", "year", "description", "genres", "actors", "director"],
                "properties": {
                    "title": {"type": "string"},
                    "year": {"type": "number"},
                    "description": {"type": "string"},
                    "genres": {"type": "array", "items": {"type": "string"}},
                    "actors": {"type": "array", "items": {"type": "string"}},
                    "director": {"type": "string"},
                },
            },
        },
    },
    "required": ["movies"],
}

DEFAULT_MODEL_PARAMETERS: Dict[str, Any] = {
    "temperature": 0.1,
    "top_p": 0.6,
    "max_tokens": 2000,
    "response_format": {
        "type": "json_schema",
        "json_schema": {"name": "movies", "schema": MOVIES_JSON_SCHEMA},
    },
}


def _utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


class OpenRouterError(UpstreamFailureError):
    """
    Failure talking to OpenRouter.

    Attributes:
        code: machine-readable error code (see module constants)
        context: {timestamp, request_id, attempt?, max_attempts?}
        cause: the wrapped underlying error, if any
        upstream_status: HTTP status returned by the API, if any
    """

    def __init__(
        self,
        message: str,
        code: str,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[BaseException] = None,
        upstream_status: Optional[int] = None,
    ):
        super().__init__(message)
        self.code = code
        self.context = context
        self.cause = cause
        self.upstream_status = upstream_status

    @property
    def is_client_error(self) -> bool:
        return (
            self.code == API_REQUEST_FAILED
            and self.upstream_status is not None
            and 400 <= self.upstream_status < 500
        )

    def __repr__(self):
        return f"<OpenRouterError(code={self.code}, message='{self.message}')>"


class OpenRouterService:
    """
    Chat completion client.

    Build one instance per process and share it; all configuration is fixed
    at construction except the sampling parameters (see set_model_parameters).
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        api_endpoint: Optional[str] = None,
        model: Optional[str] = None,
        config: Optional[ServiceConfig] = None,
        session: Optional[requests.Session] = None,
        sleep: Optional[Callable[[float], None]] = None,
    ):
        self._api_key = api_key if api_key is not None else os.getenv("OPENROUTER_API_KEY")
        if not self._api_key:
            raise OpenRouterError("OpenRouter API key is not configured", MISSING_API_KEY)

        self._api_endpoint = api_endpoint or os.getenv("OPENROUTER_API_ENDPOINT") or DEFAULT_API_ENDPOINT
        self._model = model if model is not None else os.getenv("OPENROUTER_MODEL", DEFAULT_MODEL)
        self._config = config or ServiceConfig()
        self._session = session or requests.Session()
        self._sleep = sleep or time.sleep
        self._system_message = SYSTEM_MESSAGE

        self._model_parameters = self._validate_model_parameters(
            copy.deepcopy(DEFAULT_MODEL_PARAMETERS), "Invalid default model parameters"
        )

        logger.info(
            f"OpenRouter client ready: endpoint={self._api_endpoint} model={self._model} "
            f"max_attempts={self._config.retry.max_attempts} timeout={self._config.timeout}s"
        )

    @property
    def model(self) -> str:
        return self._model

    @property
    def config(self) -> ServiceConfig:
        return self._config

    @property
    def model_parameters(self) -> Dict[str, Any]:
        return copy.deepcopy(self._model_parameters)

    # ==================== PUBLIC API ====================

    def send_chat_request(self, message: str) -> ChatCompletionResponse:
        """
        Send a single user message and return the validated completion.

        Raises:
            OpenRouterError: INVALID_USER_MESSAGE, INVALID_REQUEST_PAYLOAD,
                API_REQUEST_FAILED (4xx), MAX_RETRIES_EXCEEDED or
                INVALID_RESPONSE_FORMAT
        """
        request_id = str(uuid.uuid4())
        try:
            payload = self._build_request_payload(message, request_id)
            response = self._retry_operation(lambda: self._send_request(payload, request_id), request_id)
            return self._parse_response(response, request_id)
        except Exception as exc:
            self._log_error(exc, request_id)
            raise

    def set_model_parameters(self, **params: Any) -> None:
        """Merge params into the current sampling parameters after validating them"""
        merged = {**copy.deepcopy(self._model_parameters), **params}
        self._model_parameters = self._validate_model_parameters(merged, "Invalid model parameters")

    # ==================== INTERNALS ====================

    @staticmethod
    def _validate_model_parameters(params: Dict[str, Any], message: str) -> Dict[str, Any]:
        try:
            ModelParameters.model_validate(params)
        except ValidationError as exc:
            raise OpenRouterError(
                message,
                INVALID_MODEL_PARAMETERS,
                context={"timestamp": _utc_timestamp()},
                cause=exc,
            ) from exc
        return params

    def _build_request_payload(self, user_message: str, request_id: str) -> Dict[str, Any]:
        if not user_message or not user_message.strip():
            raise OpenRouterError(
                "User message cannot be empty",
                INVALID_USER_MESSAGE,
                context={"timestamp": _utc_timestamp(), "request_id": request_id},
            )

        payload = {
            "model": self._model,
            "messages": [
                {"role": "system", "content": self._system_message},
                {"role": "user", "content": user_message},
            ],
            **copy.deepcopy(self._model_parameters),
        }

        try:
            RequestPayload.model_validate(payload)
        except ValidationError as exc:
            raise OpenRouterError(
                "Invalid request payload",
                INVALID_REQUEST_PAYLOAD,
                context={"timestamp": _utc_timestamp(), "request_id": request_id},
                cause=exc,
            ) from exc
        return payload

    def _send_request(self, payload: Dict[str, Any], request_id: str) -> requests.Response:
        response = self._session.post(
            self._api_endpoint,
            json=payload,
            headers={
                "Content-Type": "application/json",
                "Authorization": f"Bearer {self._api_key}",
                "X-Request-ID": request_id,
            },
            timeout=self._config.timeout,
        )

        if not 200 <= response.status_code < 300:
            raise OpenRouterError(
                f"API request failed with status {response.status_code}",
                API_REQUEST_FAILED,
                context={"timestamp": _utc_timestamp(), "request_id": request_id},
                upstream_status=response.status_code,
            )

        logger.debug(f"OpenRouter request {request_id} succeeded with status {response.status_code}")
        return response

    def _retry_operation(self, operation: Callable[[], T], request_id: str) -> T:
        """
        Run operation with exponential backoff.

        Client errors (4xx) are raised immediately; timeouts, connection
        errors and 5xx responses are retried until max_attempts is reached.
        """
        retry = self._config.retry
        delay = retry.initial_delay
        last_error: Optional[Exception] = None

        for attempt in range(1, retry.max_attempts + 1):
            try:
                return operation()
            except (OpenRouterError, requests.RequestException) as exc:
                last_error = exc

                if isinstance(exc, OpenRouterError) and exc.is_client_error:
                    raise

                if attempt == retry.max_attempts:
                    break

                logger.warning(
                    f"OpenRouter attempt {attempt}/{retry.max_attempts} failed "
                    f"(request_id={request_id}): {exc}. Retrying in {delay:.2f}s"
                )
                self._sleep(delay)
                delay = min(delay * retry.backoff_factor, retry.max_delay)

        raise OpenRouterError(
            "Max retry attempts reached",
            MAX_RETRIES_EXCEEDED,
            context={
                "timestamp": _utc_timestamp(),
                "request_id": request_id,
                "attempt": retry.max_attempts,
                "max_attempts": retry.max_attempts,
            },
            cause=last_error,
        ) from last_error

    @staticmethod
    def _parse_response(response: requests.Response, request_id: str) -> ChatCompletionResponse:
        try:
            data = response.json()
            return ChatCompletionResponse.model_validate(data)
        except (ValueError, ValidationError) as exc:
            raise OpenRouterError(
                "Invalid response format from API",
                INVALID_RESPONSE_FORMAT,
                context={"timestamp": _utc_timestamp(), "request_id": request_id},
                cause=exc,
            ) from exc

    @staticmethod
    def _log_error(exc: Exception, request_id: str) -> None:
        if isinstance(exc, OpenRouterError):
            context = exc.context or {"timestamp": _utc_timestamp(), "request_id": request_id}
            logger.error(
                f"[OpenRouter] Error: {exc.message} code={exc.code} context={context} cause={exc.cause!r}"
            )
        else:
            logger.error(
                f"[OpenRouter] Unexpected error (request_id={request_id}): {exc}",
                exc_info=True,
            )
