"""Tool registry: name → typed handler, validated once at dispatch."""

from __future__ import annotations

import logging
from collections.abc import Callable
from time import perf_counter
from typing import Any

from langchain_core.tools import StructuredTool
from pydantic import BaseModel, ConfigDict, ValidationError

from src.models import FunctionCall, ToolResult
from src.services.metrics import metrics

logger = logging.getLogger(__name__)

INVALID_ARGUMENTS = "InvalidArguments"


class ToolArgs(BaseModel):
    """Base schema for tool arguments.

    Arguments arrive untyped from the model, so scalar values are coerced to
    ``str`` and anything that cannot be coerced is rejected.
    """

    model_config = ConfigDict(coerce_numbers_to_str=True, str_strip_whitespace=True)


class ToolSpec(BaseModel):
    """Declarative tool specification for registration and validation."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    name: str
    description: str
    args_schema: type[ToolArgs]
    handler: Callable[[Any], ToolResult]

    def invoke(self, payload: dict[str, Any]) -> ToolResult:
        data = self.args_schema.model_validate(payload)
        return self.handler(data)


def _describe_validation_error(exc: ValidationError) -> str:
    problems = []
    for err in exc.errors():
        field = ".".join(str(part) for part in err["loc"]) or "arguments"
        problems.append(f"{field}: {err['msg']}")
    return "; ".join(problems)


class ToolRegistry:
    """Stores tool specs, dispatches model calls and exports LangChain tools."""

    def __init__(self) -> None:
        self._tools: dict[str, ToolSpec] = {}

    def register(self, spec: ToolSpec) -> None:
        if spec.name in self._tools:
            raise ValueError(f"Tool already registered: {spec.name}")
        self._tools[spec.name] = spec

    def has(self, name: str) -> bool:
        return name in self._tools

    def names(self) -> list[str]:
        return list(self._tools)

    def dispatch(self, call: FunctionCall) -> ToolResult:
        """Run the tool named by *call*.

        Raises ``KeyError`` for an unknown tool; the orchestration loop checks
        :meth:`has` first.  Invalid arguments come back as a failed
        ``ToolResult`` so the model can ask the customer for what is missing.
        """
        spec = self._tools.get(call.name)
        if spec is None:
            raise KeyError(f"Unknown tool: {call.name}")

        start = perf_counter()
        try:
            result = spec.invoke(call.args)
        except ValidationError as exc:
            detail = _describe_validation_error(exc)
            logger.warning("Invalid arguments for %s: %s", call.name, detail)
            result = ToolResult(
                success=False,
                message=f"Invalid arguments for {call.name}: {detail}",
                error=INVALID_ARGUMENTS,
            )
        latency_ms = (perf_counter() - start) * 1000.0

        metrics.record_tool_call(call.name, success=result.success, latency_ms=latency_ms)
        logger.info("Tool %s -> success=%s", call.name, result.success)
        return result

    def as_langchain_tools(self) -> list[StructuredTool]:
        """Tool declarations the chat model can bind to."""
        return [
            StructuredTool.from_function(
                name=spec.name,
                description=spec.description,
                args_schema=spec.args_schema,
                func=self._build_function(spec),
            )
            for spec in self._tools.values()
        ]

    def _build_function(self, spec: ToolSpec) -> Callable[..., dict[str, Any]]:
        def _callable(**kwargs: Any) -> dict[str, Any]:
            return self.dispatch(FunctionCall(name=spec.name, args=kwargs)).to_payload()

        return _callable
