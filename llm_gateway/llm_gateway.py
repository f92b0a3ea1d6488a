from __future__ import annotations  # Schema-validated chat completion calls for bouncer agents

import json
import logging
import os
import threading
from typing import Any, Callable, Dict, List, Optional, Protocol, Sequence, Type, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from config.routing import LlmRoute

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)

Message = Dict[str, str]

PREVIEW_CHARS = 120


class HttpClient(Protocol):  # Injectable transport; httpx.Client satisfies it
    def post(self, url: str, *, json: Dict[str, Any], headers: Dict[str, str], timeout: float) -> "HttpResponse": ...


class HttpResponse(Protocol):
    @property
    def status_code(self) -> int: ...

    def json(self) -> Any: ...


class LlmGatewayError(RuntimeError):  # Transport, status or payload failure
    pass


class LlmTimeoutError(LlmGatewayError):  # Route exceeded its timeout_s
    pass


class LlmOutputError(LlmGatewayError):  # Model replied but never matched the schema
    pass


_route_locks: Dict[str, threading.Lock] = {}
_route_locks_guard = threading.Lock()


def _route_lock(route: LlmRoute) -> threading.Lock:
    key = route.name or route.base_url + route.endpoint
    with _route_locks_guard:
        return _route_locks.setdefault(key, threading.Lock())


def call(
    task: str,
    schema: Type[T],
    *,
    cfg: LlmRoute,
    client: Optional[HttpClient] = None,
    options: Optional[Dict[str, Any]] = None,
) -> T:
    """Send ``task`` as a single user message and return the validated reply."""

    return chat([{"role": "user", "content": task}], schema, cfg=cfg, client=client, options=options)


def chat(
    messages: Sequence[Message],
    schema: Type[T],
    *,
    cfg: LlmRoute,
    client: Optional[HttpClient] = None,
    options: Optional[Dict[str, Any]] = None,
) -> T:
    """Run a chat completion against ``cfg`` until the reply validates as ``schema``.

    Validation failures are retried ``cfg.max_retries`` times with a hint
    describing the previous error; transport and status failures are not.
    Routes marked ``sequential`` are serialized process-wide.
    """

    if cfg.sequential:
        with _route_lock(cfg):
            return _complete(messages, schema, cfg, client, options)
    return _complete(messages, schema, cfg, client, options)


def _complete(
    messages: Sequence[Message],
    schema: Type[T],
    cfg: LlmRoute,
    client: Optional[HttpClient],
    options: Optional[Dict[str, Any]],
) -> T:
    conversation = _schema_preamble(schema, cfg) + _checked_messages(messages)
    url = f"{cfg.base_url}{cfg.endpoint}"
    headers = _headers(cfg)
    attempts = cfg.max_retries + 1
    logger.info("LLM call route=%s model=%s attempts=%d preview=%s", cfg.name, cfg.model, attempts, _preview(messages))

    last_error: Optional[Exception] = None
    for attempt in range(1, attempts + 1):
        sent = list(conversation)
        if last_error is not None:
            sent.append({"role": "system", "content": _retry_hint(last_error, cfg.enforce_json)})
        content = _content_of(_post(url, _payload(cfg, sent, options), headers, cfg, client), cfg)
        try:
            parsed = _validate(schema, content)
        except (json.JSONDecodeError, ValidationError) as exc:
            logger.warning("LLM reply rejected route=%s attempt=%d: %s", cfg.name, attempt, exc)
            last_error = exc
            continue
        logger.info("LLM call done route=%s attempt=%d", cfg.name, attempt)
        return parsed
    raise LlmOutputError(f"route {cfg.name} never produced a valid {schema.__name__}") from last_error


def _schema_preamble(schema: Type[BaseModel], cfg: LlmRoute) -> List[Message]:
    if not cfg.enforce_json:
        return []
    schema_json = json.dumps(schema.model_json_schema(by_alias=True), indent=2)
    return [{"role": "system", "content": "Reply with a single JSON object matching this schema:\n" + schema_json}]


def _checked_messages(messages: Sequence[Message]) -> List[Message]:
    checked: List[Message] = []
    for item in messages:
        if not isinstance(item, dict):
            raise TypeError("Each chat message must be a dict with role/content")
        role = str(item.get("role", "")).strip()
        if not role:
            raise ValueError("Chat message missing role")
        checked.append({"role": role, "content": str(item.get("content", ""))})
    return checked


def _headers(cfg: LlmRoute) -> Dict[str, str]:
    headers = {"Content-Type": "application/json"}
    api_key = os.getenv(cfg.api_key_env) if cfg.api_key_env else None
    if api_key:
        headers["Authorization"] = f"Bearer {api_key}"
    headers.update(cfg.extra_headers)
    return headers


def _payload(cfg: LlmRoute, messages: List[Message], options: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    payload: Dict[str, Any] = {"model": cfg.model, "messages": messages}
    if cfg.temperature is not None:
        payload["temperature"] = cfg.temperature
    if cfg.response_format:
        payload["response_format"] = {"type": cfg.response_format}
    payload.update(options or {})
    return payload


def _post(
    url: str,
    payload: Dict[str, Any],
    headers: Dict[str, str],
    cfg: LlmRoute,
    client: Optional[HttpClient],
) -> Any:
    owned: Optional[httpx.Client] = None
    if client is None:
        owned = client = httpx.Client(timeout=cfg.timeout_s)
    try:
        response = client.post(url, json=payload, headers=headers, timeout=cfg.timeout_s)
        if response.status_code >= 400:
            logger.error("LLM status %s route=%s", response.status_code, cfg.name)
            raise LlmGatewayError(f"LLM returned status {response.status_code}")
        return response.json()
    except httpx.TimeoutException as exc:
        logger.error("LLM timeout route=%s after %.1fs", cfg.name, cfg.timeout_s)
        raise LlmTimeoutError(f"route {cfg.name} timed out") from exc
    except httpx.HTTPError as exc:
        logger.error("LLM transport failure route=%s: %s", cfg.name, exc)
        raise LlmGatewayError("LLM transport failed") from exc
    except ValueError as exc:
        raise LlmGatewayError("LLM payload was not JSON") from exc
    finally:
        if owned is not None:
            owned.close()


def _content_of(data: Any, cfg: LlmRoute) -> str:  # OpenAI-style choices or a bare {"content": ...}
    if isinstance(data, dict):
        choices = data.get("choices")
        if isinstance(choices, list) and choices and isinstance(choices[0], dict):
            message = choices[0].get("message")
            content = message.get("content") if isinstance(message, dict) else None
            if isinstance(content, list):
                content = "".join(part.get("text", "") for part in content if isinstance(part, dict))
            if isinstance(content, str):
                return content
        if isinstance(data.get("content"), str):
            return data["content"]
    raise LlmGatewayError(f"LLM response from route {cfg.name} has no content")


def _validate(schema: Type[T], content: str) -> T:
    cleaned = _strip_code_fences(content)
    try:
        return schema.model_validate_json(cleaned)
    except (json.JSONDecodeError, ValidationError) as exc:
        from_raw: Optional[Callable[[str], T]] = getattr(schema, "from_raw_content", None)
        if from_raw is None:
            raise
        try:
            return from_raw(cleaned)
        except (ValueError, ValidationError):
            raise exc


def _strip_code_fences(content: str) -> str:
    text = content.strip()
    if not text.startswith("```"):
        return text
    lines = text.splitlines()[1:]
    if lines and lines[-1].strip() == "```":
        lines = lines[:-1]
    return "\n".join(lines).strip()


def _retry_hint(error: Exception, enforce_json: bool) -> str:
    reason = str(error).splitlines()[0].strip() if str(error) else ""
    if len(reason) > 200:
        reason = reason[:197] + "..."
    hint = "The previous reply failed validation."
    if reason:
        hint += f" Reason: {reason}."
    if enforce_json:
        return hint + " Return a single JSON object that matches the schema."
    return hint + " Follow the requested format precisely."


def _preview(messages: Sequence[Message]) -> str:
    for message in messages:
        text = str(message.get("content", "")).strip()
        if text:
            first = text.splitlines()[0]
            return first if len(first) <= PREVIEW_CHARS else first[: PREVIEW_CHARS - 3] + "..."
    return ""


__all__ = [
    "HttpClient",
    "HttpResponse",
    "LlmGatewayError",
    "LlmOutputError",
    "LlmTimeoutError",
    "call",
    "chat",
]
