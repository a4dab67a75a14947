"""Capability router.

Maps command names to the tools and prompts this server offers and
normalizes every tool outcome into a ToolEnvelope.

Architecture:
- ToolDefinition: a named tool (description, JSON Schema parameters, handler)
- PromptDefinition: a named prompt template
- CapabilityRouter: registry plus the fixed dispatch contract used by
  the command dispatcher
- build_default_router: wires the get-weather tool and check-weather prompt
  to a WeatherProvider
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

from .errors import InvalidArgument
from .protocol import ToolEnvelope
from .weather import WeatherProvider

logger = logging.getLogger(__name__)

# async (arguments) -> text
ToolHandler = Callable[[dict[str, Any]], Awaitable[str]]

# (arguments) -> prompt text
PromptRenderer = Callable[[dict[str, Any]], str]


@dataclass
class ToolDefinition:
    """Definition of a tool.

    Attributes:
        name: Unique identifier for the tool
        description: Human-readable description
        parameters: JSON Schema for the tool's input parameters
        handler: Async function that implements the tool
        timeout: Optional timeout in seconds for execution
        error_prefix: Prepended to failure reasons in error envelopes
    """

    name: str
    description: str
    parameters: dict[str, Any]
    handler: ToolHandler
    timeout: float | None = None
    error_prefix: str = "Error"

    def __post_init__(self) -> None:
        """Validate the tool definition."""
        if not self.name:
            raise ValueError("Tool name cannot be empty")
        if not callable(self.handler):
            raise ValueError("Tool handler must be callable")

    def missing_arguments(self, arguments: dict[str, Any]) -> list[str]:
        required = self.parameters.get("required", [])
        return [name for name in required if arguments.get(name) in (None, "")]

    def describe(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.parameters,
        }


@dataclass
class PromptArgument:
    name: str
    description: str = ""
    required: bool = True


@dataclass
class PromptDefinition:
    """A prompt template clients can request."""

    name: str
    description: str
    renderer: PromptRenderer
    arguments: list[PromptArgument] = field(default_factory=list)

    def describe(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "arguments": [
                {"name": a.name, "description": a.description, "required": a.required}
                for a in self.arguments
            ],
        }


class CapabilityRouter:
    """Registry of tools and prompts with a fixed dispatch contract.

    call_tool never raises: unknown tools, bad arguments and handler
    failures all come back as error envelopes.
    """

    def __init__(self) -> None:
        self._tools: dict[str, ToolDefinition] = {}
        self._prompts: dict[str, PromptDefinition] = {}

    def register_tool(self, tool: ToolDefinition) -> None:
        """Register a tool.

        Raises:
            ValueError: If a tool with the same name is already registered
        """
        if tool.name in self._tools:
            raise ValueError(f"Tool '{tool.name}' already registered")
        self._tools[tool.name] = tool
        logger.info(f"Registered tool: {tool.name}")

    def register_prompt(self, prompt: PromptDefinition) -> None:
        if prompt.name in self._prompts:
            raise ValueError(f"Prompt '{prompt.name}' already registered")
        self._prompts[prompt.name] = prompt
        logger.info(f"Registered prompt: {prompt.name}")

    def get_tool(self, name: str) -> ToolDefinition | None:
        return self._tools.get(name)

    def list_tools(self) -> list[dict[str, Any]]:
        return [t.describe() for t in self._tools.values()]

    def list_prompts(self) -> list[dict[str, Any]]:
        return [p.describe() for p in self._prompts.values()]

    async def call_tool(self, name: str | None, arguments: dict[str, Any]) -> ToolEnvelope:
        """Invoke a tool and normalize its outcome.

        Args:
            name: Tool name
            arguments: Tool parameters matching the JSON Schema

        Returns:
            ToolEnvelope with isError set on any failure
        """
        tool = self._tools.get(name or "")
        if tool is None:
            return ToolEnvelope.failure(f"Unknown tool: {name}")

        missing = tool.missing_arguments(arguments)
        if missing:
            return ToolEnvelope.failure(
                f"{tool.error_prefix}: missing required argument(s): {', '.join(missing)}"
            )

        try:
            if tool.timeout:
                text = await asyncio.wait_for(tool.handler(arguments), timeout=tool.timeout)
            else:
                text = await tool.handler(arguments)
        except TimeoutError:
            return ToolEnvelope.failure(
                f"{tool.error_prefix}: tool execution timed out after {tool.timeout}s"
            )
        except Exception as e:
            logger.error(f"Tool '{name}' execution error: {e}")
            return ToolEnvelope.failure(f"{tool.error_prefix}: {e}")

        return ToolEnvelope.success(text)

    def get_prompt(self, name: str | None, arguments: dict[str, Any]) -> dict[str, Any]:
        """Render a prompt into a user message.

        Raises:
            InvalidArgument: unknown prompt or missing required argument
        """
        prompt = self._prompts.get(name or "")
        if prompt is None:
            raise InvalidArgument(f"Unknown prompt: {name}")

        for arg in prompt.arguments:
            if arg.required and not arguments.get(arg.name):
                raise InvalidArgument(f"Prompt '{name}' requires argument '{arg.name}'")

        return {
            "description": prompt.description,
            "messages": [
                {
                    "role": "user",
                    "content": {"type": "text", "text": prompt.renderer(arguments)},
                }
            ],
        }


def build_default_router(provider: WeatherProvider) -> CapabilityRouter:
    """Create a router exposing the weather capability."""
    router = CapabilityRouter()

    async def get_weather(arguments: dict[str, Any]) -> str:
        return await provider.fetch(str(arguments["city"]))

    router.register_tool(
        ToolDefinition(
            name="get-weather",
            description="Get the current weather for a city",
            parameters={
                "type": "object",
                "properties": {
                    "city": {
                        "type": "string",
                        "description": "The name of the city to get weather information for",
                    },
                },
                "required": ["city"],
            },
            handler=get_weather,
            error_prefix="Error fetching weather data",
        )
    )

    router.register_prompt(
        PromptDefinition(
            name="check-weather",
            description="Ask for a summary of the current weather in a city",
            arguments=[
                PromptArgument(name="city", description="The name of the city to check weather for")
            ],
            renderer=lambda args: (
                f"Please use the get-weather tool to check the current weather in "
                f"{args['city']} and summarize it for me."
            ),
        )
    )

    return router
