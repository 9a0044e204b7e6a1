"""
Ingestion - Converts agent-side records into ToolCalls.

Supports three sources: agent hook events (tool_name / tool_input /
tool_response), chat-completions message lists with tool_calls and tool
responses, and JSONL files holding either shape one record per line.
"""

import json
import uuid
from pathlib import Path
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple

from tracemem.models import ToolCall, now_ms
from tracemem.utils.logger import get_logger

logger = get_logger("Ingestion")

SINGLE_PATH_KEYS = ("file_path", "path", "notebook_path")
MULTI_PATH_KEYS = ("files", "paths")


def _as_path_list(value: Any) -> List[str]:
    if not value:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, (list, tuple)):
        return [str(v) for v in value if v]
    return []


def infer_files_affected(
    arguments: Optional[Mapping[str, Any]],
    result: Any = None,
) -> List[str]:
    """
    Work out which files a call touched from its arguments or result.

    A single path argument wins, then a list argument, then ``result["files"]``.
    """
    arguments = arguments or {}
    for key in SINGLE_PATH_KEYS:
        if arguments.get(key):
            return _as_path_list(arguments[key])
    for key in MULTI_PATH_KEYS:
        files = _as_path_list(arguments.get(key))
        if files:
            return files
    if isinstance(result, Mapping):
        return _as_path_list(result.get("files"))
    return []


def _error_from_response(response: Any) -> Optional[str]:
    if not isinstance(response, Mapping):
        return None
    if response.get("error"):
        return str(response["error"])
    if response.get("is_error"):
        content = response.get("content") or response.get("message")
        return str(content) if content else "tool reported an error"
    return None


def tool_call_from_hook_event(event: Mapping[str, Any]) -> ToolCall:
    """
    Build a ToolCall from an agent hook payload.

    Args:
        event: Dict with ``tool_name``, optional ``tool_input``,
            ``tool_response``, ``timestamp``, ``tool_use_id``, ``error``
            and ``duration_ms``

    Returns:
        ToolCall with files and error inferred from the payload
    """
    arguments = dict(event.get("tool_input") or {})
    response = event.get("tool_response")
    error = event.get("error") or _error_from_response(response)
    timestamp = event.get("timestamp")

    return ToolCall(
        id=str(event.get("tool_use_id") or event.get("id") or uuid.uuid4()),
        tool=str(event["tool_name"]),
        timestamp=now_ms() if timestamp is None else int(timestamp),
        arguments=arguments,
        result=None if error else response,
        error=str(error) if error else None,
        files_affected=tuple(infer_files_affected(arguments, response)),
        duration=event.get("duration_ms"),
    )


def _parse_json(text: Any) -> Any:
    if not isinstance(text, str):
        return text
    try:
        return json.loads(text) if text else {}
    except json.JSONDecodeError:
        return {"_raw": text}


def extract_tool_calls(
    messages: List[Dict],
    timestamp: Optional[int] = None,
) -> List[ToolCall]:
    """
    Extract ToolCalls from chat-completions messages.

    Pairs every assistant ``tool_calls`` entry with the ``role="tool"``
    message carrying the same ``tool_call_id``. Calls without a response are
    skipped. All calls share ``timestamp`` (defaults to now) since chat
    messages carry no timing.
    """
    ts = now_ms() if timestamp is None else timestamp
    pending: Dict[str, Tuple[str, Dict]] = {}
    calls: List[ToolCall] = []

    for msg in messages:
        role = msg.get("role")
        if role == "assistant" and msg.get("tool_calls"):
            for tc in msg["tool_calls"]:
                # Handle both dict and object formats
                if isinstance(tc, dict):
                    call_id = tc.get("id", "")
                    func = tc.get("function", {})
                    tool_name = func.get("name", "unknown")
                    args_str = func.get("arguments", "{}")
                else:
                    call_id = getattr(tc, "id", "")
                    func = getattr(tc, "function", None)
                    tool_name = getattr(func, "name", "unknown") if func else "unknown"
                    args_str = getattr(func, "arguments", "{}") if func else "{}"
                arguments = _parse_json(args_str)
                if not isinstance(arguments, dict):
                    arguments = {"_raw": arguments}
                pending[call_id] = (tool_name, arguments)
        elif role == "tool":
            call_id = msg.get("tool_call_id", "")
            if call_id not in pending:
                continue
            tool_name, arguments = pending.pop(call_id)
            output = _parse_json(msg.get("content", ""))
            error = _error_from_response(output)
            calls.append(
                ToolCall(
                    id=call_id or str(uuid.uuid4()),
                    tool=tool_name,
                    timestamp=ts,
                    arguments=arguments,
                    result=None if error else output,
                    error=error,
                    files_affected=tuple(infer_files_affected(arguments, output)),
                )
            )

    logger.debug(f"Extracted {len(calls)} tool calls from {len(messages)} messages")
    return calls


def read_tool_calls_jsonl(path: str) -> Iterator[ToolCall]:
    """
    Yield ToolCalls from a JSONL file.

    Each line is either a ``ToolCall.to_dict()`` record (has ``tool``) or a
    hook event (has ``tool_name``). Blank lines are skipped.

    Raises:
        ValueError: On a line that is not JSON or matches neither shape
    """
    with Path(path).open("r", encoding="utf-8") as f:
        for line_no, line in enumerate(f, 1):
            line = line.strip()
            if not line:
                continue
            try:
                record = json.loads(line)
            except json.JSONDecodeError as e:
                raise ValueError(f"{path}:{line_no}: invalid JSON: {e}") from e
            if not isinstance(record, dict):
                raise ValueError(f"{path}:{line_no}: expected a JSON object")
            if "tool_name" in record:
                yield tool_call_from_hook_event(record)
            elif "tool" in record:
                yield ToolCall.from_dict(record)
            else:
                raise ValueError(f"{path}:{line_no}: record has neither 'tool' nor 'tool_name'")
